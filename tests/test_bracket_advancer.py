"""
Tests for bracket match lifecycle, advancement and final placements.
"""

import pytest

from match_engine.errors import (
    IncompleteBracketError,
    InvalidMatchTransitionError,
    MatchNotCompletedError,
    MissingWinningAllianceError,
    NoAdvancementRecordError,
)
from match_engine.services.bracket_advancer import (
    BracketAdvancer,
    PlayoffRankingFinalizer,
    complete_match,
    start_match,
)
from match_engine.services.bracket_builder import BracketBuilder
from match_engine.services.records import AllianceColor, AllianceEntry, MatchRecord, MatchState

RED = AllianceColor.RED
BLUE = AllianceColor.BLUE


def _bracket(seed_count: int, rounds: int, teams_per_alliance: int = 1):
    """Built bracket whose match ids equal their match numbers."""
    seeds = [
        [s * 10 + i for i in range(teams_per_alliance)] for s in range(1, seed_count + 1)
    ]
    plan = BracketBuilder(teams_per_alliance).build(seeds, rounds)
    for match in plan.matches:
        match.id = match.match_number
    by_id = {m.id: m for m in plan.matches}
    return plan, by_id, BracketAdvancer.from_links(plan.advancements)


def _play(advancer, by_id, match_id, winner):
    match = complete_match(by_id[match_id], winner)
    try:
        result = advancer.advance(match)
    except NoAdvancementRecordError:
        return
    BracketAdvancer.apply(result, by_id[result.target_match_id])


class TestStateMachine:
    def test_start_then_complete(self):
        match = MatchRecord(match_number=1, round_number=1)
        start_match(match)
        assert match.status is MatchState.IN_PROGRESS
        complete_match(match, RED, red_score=3, blue_score=1)
        assert match.status is MatchState.COMPLETED
        assert match.winning_alliance is RED
        assert (match.red_score, match.blue_score) == (3, 1)

    def test_pending_can_complete_directly(self):
        match = complete_match(MatchRecord(match_number=1, round_number=1), BLUE)
        assert match.status is MatchState.COMPLETED

    def test_winner_required(self):
        match = MatchRecord(match_number=1, round_number=1)
        with pytest.raises(MissingWinningAllianceError):
            complete_match(match, None)
        assert match.status is MatchState.PENDING

    def test_draw_allowed_when_winner_optional(self):
        match = complete_match(MatchRecord(match_number=1, round_number=1), None, 4, 4, require_winner=False)
        assert match.status is MatchState.COMPLETED
        assert match.winning_alliance is None

    def test_cannot_restart_or_recomplete(self):
        match = complete_match(MatchRecord(match_number=1, round_number=1), RED)
        with pytest.raises(InvalidMatchTransitionError):
            start_match(match)
        with pytest.raises(InvalidMatchTransitionError):
            complete_match(match, BLUE)

    def test_cannot_start_twice(self):
        match = start_match(MatchRecord(match_number=1, round_number=1))
        with pytest.raises(InvalidMatchTransitionError):
            start_match(match)


class TestAdvance:
    def test_winner_moves_to_target_alliance(self):
        plan, by_id, advancer = _bracket(4, 2)
        complete_match(by_id[2], BLUE)
        result = advancer.advance(by_id[2])
        assert result.target_match_id == 3
        assert result.target_color is BLUE
        assert [e.team_id for e in result.entries] == [30]

        BracketAdvancer.apply(result, by_id[3])
        assert by_id[3].team_ids(BLUE) == [30]
        assert by_id[3].red == []

    def test_moves_exactly_teams_per_alliance(self):
        plan, by_id, advancer = _bracket(4, 2, teams_per_alliance=2)
        complete_match(by_id[1], RED)
        result = advancer.advance(by_id[1])
        assert len(result.entries) == 2
        assert [(e.team_id, e.station) for e in result.entries] == [(10, 1), (11, 2)]

    def test_surrogates_not_carried_forward(self):
        plan, by_id, advancer = _bracket(4, 2, teams_per_alliance=2)
        by_id[1].red[1] = AllianceEntry(team_id=11, station=2, is_surrogate=True)
        complete_match(by_id[1], RED)
        assert [e.team_id for e in advancer.advance(by_id[1]).entries] == [10]

    def test_incomplete_match(self):
        plan, by_id, advancer = _bracket(4, 2)
        start_match(by_id[1])
        with pytest.raises(MatchNotCompletedError):
            advancer.advance(by_id[1])

    def test_completed_without_winner(self):
        plan, by_id, advancer = _bracket(4, 2)
        by_id[1].status = MatchState.COMPLETED
        with pytest.raises(MissingWinningAllianceError):
            advancer.advance(by_id[1])

    def test_final_has_no_advancement(self):
        plan, by_id, advancer = _bracket(4, 2)
        _play(advancer, by_id, 1, RED)
        _play(advancer, by_id, 2, RED)
        complete_match(by_id[3], RED)
        with pytest.raises(NoAdvancementRecordError):
            advancer.advance(by_id[3])


class TestPlayoffRankingFinalizer:
    def test_four_team_bracket(self):
        plan, by_id, advancer = _bracket(4, 2)
        _play(advancer, by_id, 1, RED)  # 10 beats 40
        _play(advancer, by_id, 2, RED)  # 20 beats 30
        assert by_id[3].team_ids(RED) == [10]
        assert by_id[3].team_ids(BLUE) == [20]
        _play(advancer, by_id, 3, BLUE)

        placements = PlayoffRankingFinalizer().finalize(plan.matches)
        assert placements == {20: 1, 10: 2, 40: 3, 30: 3}

    def test_eight_team_bracket(self):
        plan, by_id, advancer = _bracket(8, 3)
        for match_id in (1, 2, 3, 4, 5, 6, 7):
            _play(advancer, by_id, match_id, RED)

        placements = PlayoffRankingFinalizer().finalize(plan.matches)
        assert placements[10] == 1
        assert sorted(placements.values()) == [1, 2, 3, 3, 5, 5, 5, 5]
        # round-1 losers are the four lowest seeds
        assert {team for team, rank in placements.items() if rank == 5} == {50, 60, 70, 80}

    def test_incomplete_bracket(self):
        plan, by_id, advancer = _bracket(4, 2)
        _play(advancer, by_id, 1, RED)
        with pytest.raises(IncompleteBracketError):
            PlayoffRankingFinalizer().finalize(plan.matches)

    def test_no_matches(self):
        with pytest.raises(IncompleteBracketError):
            PlayoffRankingFinalizer().finalize([])
