"""Tests for sequential and shuffled navigation."""

import random

import pytest

from global_music_player.domain.playback.navigation import NavigationPolicy


@pytest.fixture
def policy() -> NavigationPolicy:
    return NavigationPolicy(random.Random(7))


class TestSequential:
    """Shuffle off: plain index order."""

    def test_next_and_previous(self, policy):
        assert policy.next_index(4, 1, wrap=False) == 2
        assert policy.previous_index(4, 1, wrap=False) == 0

    def test_ends_are_hard_stops_without_wrap(self, policy):
        assert policy.next_index(4, 3, wrap=False) is None
        assert policy.previous_index(4, 0, wrap=False) is None
        assert policy.has_next(4, 3, wrap=False) is False
        assert policy.has_previous(4, 0, wrap=False) is False

    def test_ends_wrap_when_allowed(self, policy):
        assert policy.next_index(4, 3, wrap=True) == 0
        assert policy.previous_index(4, 0, wrap=True) == 3

    @pytest.mark.parametrize("wrap", [True, False])
    def test_empty_playlist_has_nowhere_to_go(self, policy, wrap):
        assert policy.next_index(0, -1, wrap) is None
        assert policy.previous_index(0, -1, wrap) is None

    def test_single_track_wraps_onto_itself(self, policy):
        assert policy.next_index(1, 0, wrap=True) == 0
        assert policy.next_index(1, 0, wrap=False) is None


class TestShuffle:
    """Shuffle on: Fisher-Yates permutation anchored at the current track."""

    @pytest.mark.parametrize("length", [1, 2, 5, 20])
    def test_order_is_permutation(self, policy, length):
        policy.set_shuffle(True, length, 0)
        assert sorted(policy.order) == list(range(length))

    @pytest.mark.parametrize("current", [0, 3, 9])
    def test_current_track_comes_first(self, policy, current):
        policy.set_shuffle(True, 10, current)
        assert policy.order[0] == current

    def test_walk_visits_each_index_once(self, policy):
        policy.set_shuffle(True, 8, 5)

        visited = [5]
        index = 5
        while policy.has_next(8, index, wrap=False):
            index = policy.next_index(8, index, wrap=False)
            visited.append(index)

        assert visited == list(policy.order)

    def test_previous_walks_back(self, policy):
        policy.set_shuffle(True, 6, 0)
        order = policy.order

        assert policy.previous_index(6, order[3], wrap=False) == order[2]
        assert policy.previous_index(6, order[0], wrap=True) == order[-1]

    def test_disable_drops_order(self, policy):
        policy.set_shuffle(True, 5, 0)
        policy.set_shuffle(False, 5, 0)

        assert policy.shuffle_enabled is False
        assert policy.order == ()
        assert policy.next_index(5, 2, wrap=False) == 3

    def test_regenerate_is_noop_when_off(self, policy):
        policy.regenerate(5, 0)
        assert policy.order == ()

    def test_length_mismatch_triggers_regeneration(self, policy):
        policy.set_shuffle(True, 3, 0)
        next_index = policy.next_index(5, 0, wrap=False)

        assert sorted(policy.order) == list(range(5))
        assert next_index == policy.order[1]

    def test_same_seed_same_order(self):
        first = NavigationPolicy(random.Random(99))
        second = NavigationPolicy(random.Random(99))
        first.set_shuffle(True, 12, 4)
        second.set_shuffle(True, 12, 4)

        assert first.order == second.order

    def test_reset_forgets_order(self, policy):
        policy.set_shuffle(True, 5, 0)
        policy.reset()
        assert policy.order == ()
