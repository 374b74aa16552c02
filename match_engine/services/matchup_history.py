"""
Matchup history for the current stage.

Tracks, per team, which teams it has already faced across the alliance line
and scores candidate RED/BLUE splits by how many of those meetings they would
repeat.
"""

from collections import defaultdict
from itertools import combinations
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from match_engine.services.records import AllianceColor, MatchRecord, TeamId

Split = Tuple[List[TeamId], List[TeamId]]


class MatchupHistoryTracker:
    def __init__(self):
        self._opponents: Dict[TeamId, Set[TeamId]] = defaultdict(set)

    @classmethod
    def from_matches(cls, matches: Iterable[MatchRecord]) -> "MatchupHistoryTracker":
        tracker = cls()
        for match in matches:
            tracker.record(match.team_ids(AllianceColor.RED), match.team_ids(AllianceColor.BLUE))
        return tracker

    def record(self, red: Sequence[TeamId], blue: Sequence[TeamId]) -> None:
        for red_team in red:
            for blue_team in blue:
                self._opponents[red_team].add(blue_team)
                self._opponents[blue_team].add(red_team)

    def opponents_of(self, team_id: TeamId) -> Set[TeamId]:
        return set(self._opponents.get(team_id, ()))

    def have_met(self, team_a: TeamId, team_b: TeamId) -> bool:
        return team_b in self._opponents.get(team_a, ())

    def repeat_penalty(self, red: Sequence[TeamId], blue: Sequence[TeamId]) -> int:
        """Number of cross-alliance pairs that have already played each other."""
        return sum(1 for r in red for b in blue if self.have_met(r, b))

    def best_split(self, teams: Sequence[TeamId]) -> Split:
        """
        Choose the RED/BLUE split of a group with the fewest repeats.

        The first team always plays RED, and its partners are tried in
        combination order. For four teams that is {01|23}, {02|13}, {03|12}.
        Only a strictly lower penalty replaces the earlier one, so ties keep the
        default (first half RED, second half BLUE).
        """
        if len(teams) < 2 or len(teams) % 2:
            raise ValueError(f"Expected an even group of at least 2 teams, got {len(teams)}")

        size = len(teams) // 2
        first, rest = teams[0], list(teams[1:])
        candidates: List[Split] = []
        for partners in combinations(range(len(rest)), size - 1):
            red = [first] + [rest[i] for i in partners]
            blue = [team for i, team in enumerate(rest) if i not in partners]
            candidates.append((red, blue))

        best = candidates[0]
        lowest = self.repeat_penalty(*best)
        for red, blue in candidates[1:]:
            penalty = self.repeat_penalty(red, blue)
            if penalty < lowest:
                best, lowest = (red, blue), penalty
        return best
