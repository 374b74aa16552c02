"""
Qualification schedule model.

Teams are addressed by a dense 1-based index so per-team statistics fit in
compact maps. TeamStats is always a function of the match list:
recompute_team_stats() replays every match in order, and Schedule.swap() keeps
the cached stats in step by retracting and re-applying only the two matches a
swap touches. Both paths must produce equal stats.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Set

from match_engine.services.records import AllianceColor


@dataclass
class ScheduledMatch:
    match_number: int
    red: List[int]
    blue: List[int]
    surrogates: Set[int] = field(default_factory=set)
    round_number: int = 1

    def alliance(self, color: AllianceColor) -> List[int]:
        return self.red if color is AllianceColor.RED else self.blue

    def teams(self) -> List[int]:
        return self.red + self.blue

    def copy(self) -> "ScheduledMatch":
        return ScheduledMatch(
            match_number=self.match_number,
            red=list(self.red),
            blue=list(self.blue),
            surrogates=set(self.surrogates),
            round_number=self.round_number,
        )


@dataclass
class TeamStats:
    appearances: List[int] = field(default_factory=list)  # match indices, ascending
    partners: Dict[int, int] = field(default_factory=dict)
    opponents: Dict[int, int] = field(default_factory=dict)
    red_count: int = 0
    blue_count: int = 0
    station_appearances: List[int] = field(default_factory=list)

    def copy(self) -> "TeamStats":
        return TeamStats(
            appearances=list(self.appearances),
            partners=dict(self.partners),
            opponents=dict(self.opponents),
            red_count=self.red_count,
            blue_count=self.blue_count,
            station_appearances=list(self.station_appearances),
        )


class Slot(NamedTuple):
    """A team position: match index, alliance colour, 0-based station."""

    match_index: int
    color: AllianceColor
    station: int


def empty_stats(team_count: int, stations_per_alliance: int) -> Dict[int, TeamStats]:
    return {
        team: TeamStats(station_appearances=[0] * (stations_per_alliance * 2))
        for team in range(1, team_count + 1)
    }


def _bump(counter: Dict[int, int], key: int, delta: int) -> None:
    value = counter.get(key, 0) + delta
    if value:
        counter[key] = value
    else:
        counter.pop(key, None)


def _apply_match(
    stats: Dict[int, TeamStats],
    match: ScheduledMatch,
    match_index: int,
    stations_per_alliance: int,
    sign: int,
) -> None:
    """Add (sign=+1) or retract (sign=-1) one match's contribution."""
    for color, own, other in (
        (AllianceColor.RED, match.red, match.blue),
        (AllianceColor.BLUE, match.blue, match.red),
    ):
        station_offset = 0 if color is AllianceColor.RED else stations_per_alliance
        for position, team in enumerate(own):
            team_stats = stats.get(team)
            if team_stats is None:
                continue
            if sign > 0:
                bisect.insort(team_stats.appearances, match_index)
            else:
                team_stats.appearances.remove(match_index)
            if color is AllianceColor.RED:
                team_stats.red_count += sign
            else:
                team_stats.blue_count += sign
            team_stats.station_appearances[station_offset + position] += sign
            for other_position, partner in enumerate(own):
                if other_position != position:
                    _bump(team_stats.partners, partner, sign)
            for opponent in other:
                _bump(team_stats.opponents, opponent, sign)


def recompute_team_stats(
    matches: List[ScheduledMatch], team_count: int, stations_per_alliance: int
) -> Dict[int, TeamStats]:
    """Full replay of every match, in order. The reference for all stats."""
    stats = empty_stats(team_count, stations_per_alliance)
    for match_index, match in enumerate(matches):
        _apply_match(stats, match, match_index, stations_per_alliance, +1)
    return stats


@dataclass
class Schedule:
    matches: List[ScheduledMatch]
    team_count: int
    stations_per_alliance: int = 2
    score: float = 0.0
    team_stats: Dict[int, TeamStats] = field(default_factory=dict)

    def __post_init__(self):
        if not self.team_stats:
            self.refresh_stats()

    def refresh_stats(self) -> None:
        self.team_stats = recompute_team_stats(self.matches, self.team_count, self.stations_per_alliance)

    def team_at(self, slot: Slot) -> int:
        return self.matches[slot.match_index].alliance(slot.color)[slot.station]

    def swap(self, first: Slot, second: Slot) -> None:
        """
        Exchange the teams at two slots in different matches.

        Surrogate flags travel with the team. Stats are updated incrementally.
        """
        if first.match_index == second.match_index:
            raise ValueError("swap requires two distinct matches")

        match_a = self.matches[first.match_index]
        match_b = self.matches[second.match_index]
        spa = self.stations_per_alliance

        _apply_match(self.team_stats, match_a, first.match_index, spa, -1)
        _apply_match(self.team_stats, match_b, second.match_index, spa, -1)

        team_a = match_a.alliance(first.color)[first.station]
        team_b = match_b.alliance(second.color)[second.station]
        match_a.alliance(first.color)[first.station] = team_b
        match_b.alliance(second.color)[second.station] = team_a

        a_was_surrogate = team_a in match_a.surrogates
        b_was_surrogate = team_b in match_b.surrogates
        match_a.surrogates.discard(team_a)
        match_b.surrogates.discard(team_b)
        if a_was_surrogate:
            match_b.surrogates.add(team_a)
        if b_was_surrogate:
            match_a.surrogates.add(team_b)

        _apply_match(self.team_stats, match_a, first.match_index, spa, +1)
        _apply_match(self.team_stats, match_b, second.match_index, spa, +1)

    def swap_is_legal(self, first: Slot, second: Slot) -> bool:
        """A swap must not put a team twice into the same match."""
        team_a = self.team_at(first)
        team_b = self.team_at(second)
        if team_a == team_b:
            return False
        if team_b in self.matches[first.match_index].teams():
            return False
        if team_a in self.matches[second.match_index].teams():
            return False
        return True

    def mark_surrogates(self, rounds: int) -> None:
        """
        Flag every appearance beyond a team's first `rounds` as a surrogate.

        Only uneven schedules (team_count * rounds not a multiple of the match
        size) have such appearances.
        """
        for match in self.matches:
            match.surrogates.clear()
        for team, team_stats in self.team_stats.items():
            for match_index in team_stats.appearances[rounds:]:
                self.matches[match_index].surrogates.add(team)

    def copy(self) -> "Schedule":
        return Schedule(
            matches=[m.copy() for m in self.matches],
            team_count=self.team_count,
            stations_per_alliance=self.stations_per_alliance,
            score=self.score,
            team_stats={team: s.copy() for team, s in self.team_stats.items()},
        )
