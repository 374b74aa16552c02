"""
Single-elimination bracket construction.

Round 1 pairs seed i with seed (2^R + 1 - i): best against worst. Round-1
matches are laid out in bracket-fold order so that, if chalk holds, seeds 1
and 2 can only meet in the final. Later rounds are created up front as empty
placeholders, and each match gets an advancement link to the next-round match
its winner feeds: even positions feed RED, odd positions feed BLUE.

Advancement links are keyed by match number until the MatchSink assigns
persisted ids; BracketPlan.resolve() rewrites them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence

from match_engine.errors import InsufficientSeedsError
from match_engine.services.records import (
    AllianceColor,
    AllianceEntry,
    BracketAdvancement,
    MatchId,
    MatchRecord,
    TeamId,
)

logger = logging.getLogger(__name__)


def bracket_fold_positions(n: int) -> List[int]:
    """Standard bracket-fold positions for *n* entries.

    Returns a flat list of seed numbers in bracket position order.
    Consecutive pairs indicate which seeds meet if chalk holds:
      4-entry  -> [1, 4, 2, 3]       -> (1v4), (2v3)
      8-entry  -> [1, 8, 4, 5, ...]   -> (1v8), (4v5), ...
    """
    if n == 1:
        return [1]
    if n == 2:
        return [1, 2]

    half = bracket_fold_positions(n // 2)

    expanded: List[int] = []
    for s in half:
        expanded.append(s)
        expanded.append(n + 1 - s)

    mid = len(expanded) // 2
    top = expanded[:mid]
    bot = expanded[mid:]
    if len(bot) >= 4:
        bot = bot[:-4] + bot[-2:] + bot[-4:-2]

    return top + bot


@dataclass
class BracketPlan:
    matches: List[MatchRecord]
    advancements: List[BracketAdvancement]  # keyed by match number
    number_of_rounds: int
    rounds: Dict[int, List[MatchRecord]] = field(default_factory=dict)

    def resolve(self, ids_by_number: Dict[int, MatchId]) -> List[BracketAdvancement]:
        """Advancement links rewritten from match numbers to persisted match ids."""
        return [
            BracketAdvancement(
                source_match_id=ids_by_number[adv.source_match_id],
                target_match_id=ids_by_number[adv.target_match_id],
                target_color=adv.target_color,
            )
            for adv in self.advancements
        ]


class BracketBuilder:
    def __init__(self, teams_per_alliance: int = 1):
        self.teams_per_alliance = teams_per_alliance

    def build(
        self,
        seeds: Sequence[Sequence[TeamId]],
        number_of_rounds: int,
        first_match_number: int = 1,
        stage_id: Optional[Hashable] = None,
    ) -> BracketPlan:
        """
        seeds: performance-ordered alliance rosters, best first. Only the first
        2^R are used.
        """
        if number_of_rounds < 1:
            raise ValueError(f"number_of_rounds must be >= 1, got {number_of_rounds}")

        bracket_size = 2 ** number_of_rounds
        if len(seeds) < bracket_size:
            raise InsufficientSeedsError(
                f"Not enough seeded teams for a {number_of_rounds}-round playoff. "
                f"Need {bracket_size}, got {len(seeds)}"
            )
        for position, roster in enumerate(seeds[:bracket_size], start=1):
            if len(roster) != self.teams_per_alliance:
                raise ValueError(
                    f"Seed {position} has {len(roster)} teams, expected {self.teams_per_alliance}"
                )

        rounds: Dict[int, List[MatchRecord]] = {}
        match_number = first_match_number

        first_round: List[MatchRecord] = []
        for top_seed in bracket_fold_positions(bracket_size // 2):
            high = seeds[top_seed - 1]
            low = seeds[bracket_size - top_seed]
            first_round.append(
                MatchRecord(
                    match_number=match_number,
                    round_number=1,
                    stage_id=stage_id,
                    red=self._roster(high),
                    blue=self._roster(low),
                )
            )
            match_number += 1
        rounds[1] = first_round

        for round_number in range(2, number_of_rounds + 1):
            placeholders: List[MatchRecord] = []
            for _ in range(2 ** (number_of_rounds - round_number)):
                placeholders.append(
                    MatchRecord(match_number=match_number, round_number=round_number, stage_id=stage_id)
                )
                match_number += 1
            rounds[round_number] = placeholders

        advancements: List[BracketAdvancement] = []
        for round_number in range(1, number_of_rounds):
            next_round = rounds[round_number + 1]
            for position, match in enumerate(rounds[round_number]):
                advancements.append(
                    BracketAdvancement(
                        source_match_id=match.match_number,
                        target_match_id=next_round[position // 2].match_number,
                        target_color=AllianceColor.RED if position % 2 == 0 else AllianceColor.BLUE,
                    )
                )

        matches = [m for r in sorted(rounds) for m in rounds[r]]
        logger.info(
            "Built %d-round bracket: %d matches, %d advancement links",
            number_of_rounds,
            len(matches),
            len(advancements),
        )
        return BracketPlan(
            matches=matches,
            advancements=advancements,
            number_of_rounds=number_of_rounds,
            rounds=rounds,
        )

    @staticmethod
    def _roster(team_ids: Sequence[TeamId]) -> List[AllianceEntry]:
        return [AllianceEntry(team_id=t, station=i + 1) for i, t in enumerate(team_ids)]
