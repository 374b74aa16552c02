"""
Swiss round pairing.

Teams are ordered by standing and consumed one full match at a time (four
teams with the default two per alliance), so every match groups
performance-adjacent teams. The RED/BLUE split of each group is chosen to avoid
repeat opponents. Teams left over when a full group no longer fits sit out the
round; no short-handed match is created.
"""

import logging
from typing import List, Optional, Sequence

from match_engine.services.field_balancer import FieldBalancer
from match_engine.services.matchup_history import MatchupHistoryTracker
from match_engine.services.records import AllianceEntry, MatchRecord, TeamRanking

logger = logging.getLogger(__name__)


def standings_order(rankings: Sequence[TeamRanking]) -> List[TeamRanking]:
    """Ranking points, then opponent win percentage, then point differential, all descending (stable)."""
    return sorted(
        rankings,
        key=lambda r: (r.ranking_points, r.opponent_win_percentage, r.point_differential),
        reverse=True,
    )


class SwissPairingEngine:
    def __init__(self, teams_per_alliance: int = 2):
        if teams_per_alliance < 1:
            raise ValueError(f"teams_per_alliance must be at least 1, got {teams_per_alliance}")
        self.teams_per_alliance = teams_per_alliance
        self.teams_per_match = teams_per_alliance * 2

    def pair_round(
        self,
        rankings: Sequence[TeamRanking],
        history: MatchupHistoryTracker,
        fields: FieldBalancer,
        previous_round: int,
        last_match_number: int = 0,
        stage_id: Optional[object] = None,
    ) -> List[MatchRecord]:
        round_number = previous_round + 1
        match_number = last_match_number + 1
        ordered = [r.team_id for r in standings_order(rankings)]

        matches: List[MatchRecord] = []
        for start in range(0, len(ordered) - self.teams_per_match + 1, self.teams_per_match):
            group = ordered[start : start + self.teams_per_match]
            red, blue = history.best_split(group)
            field = fields.assign()
            matches.append(
                MatchRecord(
                    match_number=match_number,
                    round_number=round_number,
                    stage_id=stage_id,
                    red=[AllianceEntry(team_id=t, station=i + 1) for i, t in enumerate(red)],
                    blue=[AllianceEntry(team_id=t, station=i + 1) for i, t in enumerate(blue)],
                    field_id=field.id,
                )
            )
            logger.debug("Swiss match %d: %s vs %s on field %s", match_number, red, blue, field.id)
            match_number += 1

        leftover = len(ordered) % self.teams_per_match
        if leftover:
            logger.warning(
                "Only %d unpaired teams remaining, they sit out round %d: %s",
                leftover,
                round_number,
                ordered[len(ordered) - leftover :],
            )

        logger.info("Generated %d Swiss matches for round %d", len(matches), round_number)
        return matches
