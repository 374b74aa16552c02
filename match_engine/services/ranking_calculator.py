"""
Standings recomputation.

Rankings are never patched incrementally: every call replays all completed
matches of the scope from scratch, so running it twice on the same input yields
identical values. Surrogate appearances do not count.

The recorded winning alliance alone decides a completed match. A match with no
winning alliance is a tie for both sides, whatever its totals; recording a
result derives the winner from the totals before it reaches this module.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Optional, Sequence

from match_engine.services.records import AllianceColor, MatchRecord, MatchState, TeamId, TeamRanking

logger = logging.getLogger(__name__)

WIN = "WIN"
LOSS = "LOSS"
TIE = "TIE"


def match_outcome(match: MatchRecord, color: AllianceColor) -> str:
    if match.winning_alliance is None:
        return TIE
    return WIN if match.winning_alliance is color else LOSS


def ranking_order(rankings: Sequence[TeamRanking]) -> List[TeamRanking]:
    """Ranking points, OWP, point differential, points scored; all descending, stable."""
    return sorted(
        rankings,
        key=lambda r: (r.ranking_points, r.opponent_win_percentage, r.point_differential, r.points_scored),
        reverse=True,
    )


def playoff_seed_order(rankings: Sequence[TeamRanking]) -> List[TeamRanking]:
    """Seeding order for brackets: wins, then tiebreaker1, then tiebreaker2."""
    return sorted(rankings, key=lambda r: (r.wins, r.tiebreaker1, r.tiebreaker2), reverse=True)


@dataclass
class _Tally:
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points_scored: int = 0
    points_conceded: int = 0
    # insertion-ordered so the OWP sum is accumulated in the same order every run
    opponents: Dict[TeamId, None] = field(default_factory=dict)

    @property
    def matches_played(self) -> int:
        return self.wins + self.losses + self.ties


class RankingCalculator:
    def compute(
        self,
        matches: Iterable[MatchRecord],
        team_ids: Optional[Sequence[TeamId]] = None,
        tournament_id: Optional[Hashable] = None,
        stage_id: Optional[Hashable] = None,
    ) -> List[TeamRanking]:
        """
        Rankings for one scope, ordered and stamped with rank 1..N.

        team_ids lists every team that should get a row even without a
        completed match; teams seen in matches are added after them.
        """
        tallies: Dict[TeamId, _Tally] = {}
        for team_id in team_ids or ():
            tallies.setdefault(team_id, _Tally())

        completed = [m for m in matches if m.status is MatchState.COMPLETED]
        completed.sort(key=lambda m: (m.round_number, m.match_number))

        for match in completed:
            for color in (AllianceColor.RED, AllianceColor.BLUE):
                outcome = match_outcome(match, color)
                own_total = match.score_for(color) or 0
                other_total = match.score_for(color.opposite) or 0
                opponents = match.team_ids(color.opposite, include_surrogates=False)
                for team_id in match.team_ids(color, include_surrogates=False):
                    tally = tallies.setdefault(team_id, _Tally())
                    tally.points_scored += own_total
                    tally.points_conceded += other_total
                    if outcome == WIN:
                        tally.wins += 1
                    elif outcome == LOSS:
                        tally.losses += 1
                    else:
                        tally.ties += 1
                    for opponent in opponents:
                        tally.opponents[opponent] = None

        rankings: List[TeamRanking] = []
        for team_id, tally in tallies.items():
            rankings.append(
                TeamRanking(
                    team_id=team_id,
                    tournament_id=tournament_id,
                    stage_id=stage_id,
                    wins=tally.wins,
                    losses=tally.losses,
                    ties=tally.ties,
                    points_scored=tally.points_scored,
                    points_conceded=tally.points_conceded,
                    opponent_win_percentage=self._opponent_win_percentage(tally, tallies),
                )
            )

        ordered = ranking_order(rankings)
        for position, ranking in enumerate(ordered, start=1):
            ranking.rank = position

        logger.info(
            "Recomputed rankings for %d teams from %d completed matches (tournament=%s stage=%s)",
            len(ordered),
            len(completed),
            tournament_id,
            stage_id,
        )
        return ordered

    @staticmethod
    def _opponent_win_percentage(tally: _Tally, tallies: Dict[TeamId, _Tally]) -> float:
        if not tally.opponents:
            return 0.0
        total = 0.0
        for opponent in tally.opponents:
            opp = tallies.get(opponent)
            if opp is not None and opp.matches_played > 0:
                total += opp.wins / opp.matches_played
        return total / len(tally.opponents)
