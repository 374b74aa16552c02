"""
Tests for Schedule / TeamStats bookkeeping.

The incremental swap path must always agree with a full replay of the matches.
"""

import pytest

from match_engine.services.random_source import SeededRandomSource
from match_engine.services.records import AllianceColor
from match_engine.services.round_robin import RoundRobinGenerator
from match_engine.services.schedule_types import (
    Schedule,
    ScheduledMatch,
    Slot,
    recompute_team_stats,
)

RED = AllianceColor.RED
BLUE = AllianceColor.BLUE


def _two_match_schedule() -> Schedule:
    return Schedule(
        matches=[
            ScheduledMatch(match_number=1, red=[1, 2], blue=[3, 4], surrogates={1}),
            ScheduledMatch(match_number=2, red=[5, 6], blue=[7, 8]),
        ],
        team_count=8,
    )


def _random_slot(schedule: Schedule, rng: SeededRandomSource) -> Slot:
    return Slot(
        rng.randrange(len(schedule.matches)),
        RED if rng.random() < 0.5 else BLUE,
        rng.randrange(schedule.stations_per_alliance),
    )


class TestRecompute:
    def test_stats_for_single_match(self):
        schedule = _two_match_schedule()
        stats = schedule.team_stats[1]
        assert stats.appearances == [0]
        assert stats.partners == {2: 1}
        assert stats.opponents == {3: 1, 4: 1}
        assert stats.red_count == 1
        assert stats.blue_count == 0
        assert stats.station_appearances == [1, 0, 0, 0]

    def test_blue_stations_follow_red_stations(self):
        schedule = _two_match_schedule()
        assert schedule.team_stats[8].station_appearances == [0, 0, 0, 1]

    def test_team_without_matches_has_empty_stats(self):
        schedule = Schedule(matches=[ScheduledMatch(1, [1, 2], [3, 4])], team_count=5)
        assert schedule.team_stats[5].appearances == []
        assert schedule.team_stats[5].station_appearances == [0, 0, 0, 0]


class TestSwap:
    def test_swap_exchanges_teams(self):
        schedule = _two_match_schedule()
        schedule.swap(Slot(0, BLUE, 1), Slot(1, RED, 0))
        assert schedule.matches[0].blue == [3, 5]
        assert schedule.matches[1].red == [4, 6]

    def test_surrogate_flag_travels_with_team(self):
        schedule = _two_match_schedule()
        schedule.swap(Slot(0, RED, 0), Slot(1, RED, 0))
        assert schedule.matches[0].red == [5, 2]
        assert schedule.matches[0].surrogates == set()
        assert schedule.matches[1].surrogates == {1}

    def test_same_match_rejected(self):
        schedule = _two_match_schedule()
        with pytest.raises(ValueError):
            schedule.swap(Slot(0, RED, 0), Slot(0, BLUE, 0))

    def test_swap_twice_restores_state(self):
        schedule = _two_match_schedule()
        before = schedule.copy()
        move = (Slot(0, RED, 1), Slot(1, BLUE, 0))
        schedule.swap(*move)
        schedule.swap(*move)
        assert [m.teams() for m in schedule.matches] == [m.teams() for m in before.matches]
        assert schedule.team_stats == before.team_stats

    def test_illegal_swap_detected(self):
        schedule = Schedule(
            matches=[
                ScheduledMatch(1, [1, 2], [3, 4]),
                ScheduledMatch(2, [1, 5], [6, 7]),
            ],
            team_count=7,
        )
        # team 2 -> match 2 is fine, but team 1 is already there
        assert not schedule.swap_is_legal(Slot(0, RED, 1), Slot(1, RED, 0))
        assert schedule.swap_is_legal(Slot(0, RED, 1), Slot(1, RED, 1))


class TestIncrementalMatchesRecompute:
    """Many seeded random swaps; cached stats must equal a full replay after each one."""

    @pytest.mark.parametrize("team_count,rounds,seed", [(8, 3, 1), (10, 4, 2), (12, 5, 3), (7, 2, 4)])
    def test_random_swaps(self, team_count, rounds, seed):
        rng = SeededRandomSource(seed)
        schedule = RoundRobinGenerator(rng=rng).generate(team_count, rounds)
        applied = 0
        for _ in range(400):
            first = _random_slot(schedule, rng)
            second = _random_slot(schedule, rng)
            if first.match_index == second.match_index or not schedule.swap_is_legal(first, second):
                continue
            schedule.swap(first, second)
            applied += 1
            expected = recompute_team_stats(schedule.matches, schedule.team_count, schedule.stations_per_alliance)
            assert schedule.team_stats == expected
        assert applied > 0


class TestSurrogateMarking:
    def test_appearances_beyond_rounds_are_surrogates(self):
        schedule = Schedule(
            matches=[
                ScheduledMatch(1, [1, 2], [3, 4]),
                ScheduledMatch(2, [5, 6], [1, 2]),
            ],
            team_count=6,
        )
        schedule.mark_surrogates(1)
        assert schedule.matches[0].surrogates == set()
        assert schedule.matches[1].surrogates == {1, 2}

    def test_marking_replaces_previous_flags(self):
        schedule = _two_match_schedule()
        schedule.mark_surrogates(1)
        assert schedule.matches[0].surrogates == set()


class TestCopy:
    def test_copy_is_independent(self):
        schedule = _two_match_schedule()
        clone = schedule.copy()
        clone.swap(Slot(0, RED, 0), Slot(1, BLUE, 1))
        assert schedule.matches[0].red == [1, 2]
        assert schedule.team_stats[1].appearances == [0]
        assert clone.team_stats[1].appearances == [1]
