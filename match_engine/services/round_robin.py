"""
Initial qualification schedule.

Produces ceil(N * R / (2A)) matches of 2A distinct teams. When N is a multiple
of the match size a fixed rotation covers every team exactly R times. Otherwise
each new match takes the 2A teams with the fewest appearances so far (ties by
team index); teams pulled in beyond their R appearances are flagged as
surrogates so their result does not count.
"""

import logging
import math
from typing import List, Optional

from match_engine.errors import InsufficientTeamsError
from match_engine.services.random_source import RandomSource
from match_engine.services.schedule_types import Schedule, ScheduledMatch

logger = logging.getLogger(__name__)


class RoundRobinGenerator:
    def __init__(self, teams_per_alliance: int = 2, rng: Optional[RandomSource] = None):
        self.teams_per_alliance = teams_per_alliance
        self.teams_per_match = teams_per_alliance * 2
        self.rng = rng

    def match_count(self, team_count: int, rounds: int) -> int:
        return math.ceil((team_count * rounds) / self.teams_per_match)

    def generate(self, team_count: int, rounds: int) -> Schedule:
        if team_count < self.teams_per_match:
            raise InsufficientTeamsError(
                f"Not enough teams ({team_count}) to create a schedule. "
                f"Minimum required: {self.teams_per_match}"
            )
        if rounds < 1:
            raise ValueError(f"rounds must be >= 1, got {rounds}")

        total = self.match_count(team_count, rounds)
        if team_count % self.teams_per_match == 0:
            matches = self._rotation(team_count, total)
        else:
            matches = self._fewest_appearances(team_count, total)

        schedule = Schedule(matches=matches, team_count=team_count, stations_per_alliance=self.teams_per_alliance)
        schedule.mark_surrogates(rounds)

        logger.debug(
            "Initial schedule: %d teams, %d rounds, %d matches, %d surrogate appearances",
            team_count,
            rounds,
            len(matches),
            sum(len(m.surrogates) for m in matches),
        )
        return schedule

    def _rotation(self, team_count: int, total: int) -> List[ScheduledMatch]:
        size = self.teams_per_match
        matches: List[ScheduledMatch] = []
        for k in range(1, total + 1):
            teams = [((k - 1) * size + i) % team_count + 1 for i in range(size)]
            matches.append(
                ScheduledMatch(
                    match_number=k,
                    round_number=self._pass_number(k, team_count),
                    red=teams[: self.teams_per_alliance],
                    blue=teams[self.teams_per_alliance :],
                )
            )
        return matches

    def _fewest_appearances(self, team_count: int, total: int) -> List[ScheduledMatch]:
        appearances = [0] * (team_count + 1)
        matches: List[ScheduledMatch] = []
        for k in range(1, total + 1):
            # sorted() is stable, so equal counts keep index order
            ordered = sorted(range(1, team_count + 1), key=lambda team: appearances[team])
            chosen = ordered[: self.teams_per_match]
            for team in chosen:
                appearances[team] += 1
            if self.rng is not None:
                # membership is fixed by appearance count; only stations move
                self.rng.shuffle(chosen)
            matches.append(
                ScheduledMatch(
                    match_number=k,
                    round_number=self._pass_number(k, team_count),
                    red=chosen[: self.teams_per_alliance],
                    blue=chosen[self.teams_per_alliance :],
                )
            )
        return matches

    def _pass_number(self, match_number: int, team_count: int) -> int:
        """1-based pass through the roster that match `match_number` starts in."""
        return (match_number - 1) * self.teams_per_match // team_count + 1
