"""Domain layer: library records and the playback engine."""
