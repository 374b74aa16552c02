"""
Bracket match lifecycle, winner advancement and final placements.

Match states: PENDING -> IN_PROGRESS -> COMPLETED (PENDING -> COMPLETED is
allowed too). Completion requires a recorded winning alliance.

Advancement copies the non-surrogate teams of the winning alliance into the
target alliance of the next-round match, keeping station positions. The engine
does not dedupe: the caller must run each advancement at most once, inside one
transaction, so two completions can't fill the same slot twice.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from match_engine.errors import (
    IncompleteBracketError,
    InvalidMatchTransitionError,
    MatchNotCompletedError,
    MissingWinningAllianceError,
    NoAdvancementRecordError,
)
from match_engine.services.records import (
    AllianceColor,
    AllianceEntry,
    BracketAdvancement,
    MatchId,
    MatchRecord,
    MatchState,
    TeamId,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    MatchState.PENDING: {MatchState.IN_PROGRESS, MatchState.COMPLETED},
    MatchState.IN_PROGRESS: {MatchState.COMPLETED},
    MatchState.COMPLETED: set(),
}


def start_match(match: MatchRecord) -> MatchRecord:
    _check_transition(match, MatchState.IN_PROGRESS)
    match.status = MatchState.IN_PROGRESS
    return match


def complete_match(
    match: MatchRecord,
    winning_alliance: Optional[AllianceColor],
    red_score: Optional[int] = None,
    blue_score: Optional[int] = None,
    require_winner: bool = True,
) -> MatchRecord:
    """
    Move a match to COMPLETED.

    Bracket matches need a winner. Qualification and Swiss matches pass
    require_winner=False so a draw can be recorded with no winning alliance.
    """
    _check_transition(match, MatchState.COMPLETED)
    if winning_alliance is None and require_winner:
        raise MissingWinningAllianceError(f"Match {match.id or match.match_number} has no winning alliance")
    match.winning_alliance = winning_alliance
    if red_score is not None:
        match.red_score = red_score
    if blue_score is not None:
        match.blue_score = blue_score
    match.status = MatchState.COMPLETED
    return match


def _check_transition(match: MatchRecord, target: MatchState) -> None:
    if target not in ALLOWED_TRANSITIONS[match.status]:
        raise InvalidMatchTransitionError(
            f"Match {match.id or match.match_number} cannot go from {match.status.value} to {target.value}"
        )


@dataclass
class AdvancementResult:
    source_match_id: MatchId
    target_match_id: MatchId
    target_color: AllianceColor
    entries: List[AllianceEntry]


class BracketAdvancer:
    def __init__(self, advancements: Mapping[MatchId, BracketAdvancement]):
        self.advancements = advancements

    @classmethod
    def from_links(cls, links: Sequence[BracketAdvancement]) -> "BracketAdvancer":
        return cls({link.source_match_id: link for link in links})

    def advance(self, match: MatchRecord) -> AdvancementResult:
        """Work out which teams go where once `match` is completed."""
        if match.status is not MatchState.COMPLETED:
            raise MatchNotCompletedError(f"Match {match.id} is not completed")
        if match.winning_alliance is None:
            raise MissingWinningAllianceError(f"Match {match.id} has no winning alliance")

        link = self.advancements.get(match.id)
        if link is None:
            raise NoAdvancementRecordError(f"No advancement information for match {match.id}")

        entries = [
            AllianceEntry(team_id=e.team_id, station=e.station)
            for e in sorted(match.alliance(match.winning_alliance), key=lambda e: e.station)
            if not e.is_surrogate
        ]
        logger.info(
            "Advancing %s from match %s to match %s (%s)",
            [e.team_id for e in entries],
            match.id,
            link.target_match_id,
            link.target_color.value,
        )
        return AdvancementResult(
            source_match_id=match.id,
            target_match_id=link.target_match_id,
            target_color=link.target_color,
            entries=entries,
        )

    @staticmethod
    def apply(result: AdvancementResult, target: MatchRecord) -> MatchRecord:
        """Place advanced teams into an in-memory target match."""
        target.alliance(result.target_color).extend(result.entries)
        return target


class PlayoffRankingFinalizer:
    """
    Placements once every bracket match is completed.

    Final: winner 1, loser 2. Losers of earlier round k share rank
    2^(final_round - k) + 1 (semifinal losers 3, quarterfinal losers 5, ...).
    """

    def finalize(self, matches: Sequence[MatchRecord]) -> Dict[TeamId, int]:
        if not matches:
            raise IncompleteBracketError("No bracket matches to finalize")
        incomplete = [m for m in matches if m.status is not MatchState.COMPLETED]
        if incomplete:
            raise IncompleteBracketError(
                f"Cannot finalize rankings: {len(incomplete)} matches are still incomplete"
            )
        missing_winner = [m for m in matches if m.winning_alliance is None]
        if missing_winner:
            raise MissingWinningAllianceError(
                f"Cannot finalize rankings: match {missing_winner[0].id} has no winning alliance"
            )

        final_round = max(m.round_number for m in matches)
        placements: Dict[TeamId, int] = {}
        for match in sorted(matches, key=lambda m: (-m.round_number, m.match_number)):
            winner = match.winning_alliance
            losers = match.team_ids(winner.opposite, include_surrogates=False)
            if match.round_number == final_round:
                for team_id in match.team_ids(winner, include_surrogates=False):
                    placements[team_id] = 1
                for team_id in losers:
                    placements[team_id] = 2
            else:
                rank = 2 ** (final_round - match.round_number) + 1
                for team_id in losers:
                    placements.setdefault(team_id, rank)

        logger.info("Finalized playoff placements for %d teams", len(placements))
        return placements
