"""
Engine-facing records and collaborator contracts.

The engine owns no storage. The owning service hands it plain records through
TeamRepository and receives generated matches, rankings, placements and bracket
advancement links through the sink protocols below. A SQLModel implementation
of all of them lives in match_engine.repository.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Hashable, List, Optional, Protocol, Sequence

TeamId = Hashable
MatchId = Hashable


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AllianceColor(str, Enum):
    RED = "RED"
    BLUE = "BLUE"

    @property
    def opposite(self) -> "AllianceColor":
        return AllianceColor.BLUE if self is AllianceColor.RED else AllianceColor.RED


class MatchState(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class StageType(str, Enum):
    QUALIFICATION = "QUALIFICATION"
    SWISS = "SWISS"
    PLAYOFF = "PLAYOFF"
    FINAL = "FINAL"


class StageStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


@dataclass
class TeamRecord:
    id: TeamId
    name: str = ""


@dataclass
class FieldRecord:
    id: Hashable
    name: str = ""


@dataclass
class StageRecord:
    id: Hashable
    name: str
    stage_type: StageType
    tournament_id: Optional[Hashable] = None
    status: StageStatus = StageStatus.ACTIVE


@dataclass
class AllianceEntry:
    """One team sitting at one station of an alliance (station is 1-based)."""

    team_id: TeamId
    station: int
    is_surrogate: bool = False


@dataclass
class MatchRecord:
    """
    A match as seen by the engine.

    Used both for generated drafts (id is None until the MatchSink persists it)
    and for matches read back from the repository.
    """

    match_number: int
    round_number: int
    red: List[AllianceEntry] = field(default_factory=list)
    blue: List[AllianceEntry] = field(default_factory=list)
    id: Optional[MatchId] = None
    stage_id: Optional[Hashable] = None
    status: MatchState = MatchState.PENDING
    field_id: Optional[Hashable] = None
    scheduled_time: Optional[datetime] = None
    winning_alliance: Optional[AllianceColor] = None
    red_score: Optional[int] = None
    blue_score: Optional[int] = None

    def alliance(self, color: AllianceColor) -> List[AllianceEntry]:
        return self.red if color is AllianceColor.RED else self.blue

    def team_ids(self, color: AllianceColor, include_surrogates: bool = True) -> List[TeamId]:
        return [
            e.team_id
            for e in sorted(self.alliance(color), key=lambda e: e.station)
            if include_surrogates or not e.is_surrogate
        ]

    def score_for(self, color: AllianceColor) -> Optional[int]:
        return self.red_score if color is AllianceColor.RED else self.blue_score


@dataclass
class TeamRanking:
    """
    Per-team standing for one scope (a stage, or the whole tournament when
    stage_id is None).

    ranking_points and point_differential are derived on every read so they
    can never drift from the counters they come from.
    """

    team_id: TeamId
    tournament_id: Optional[Hashable] = None
    stage_id: Optional[Hashable] = None
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points_scored: int = 0
    points_conceded: int = 0
    opponent_win_percentage: float = 0.0
    rank: Optional[int] = None

    @property
    def matches_played(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def ranking_points(self) -> int:
        return 2 * self.wins + self.ties

    @property
    def point_differential(self) -> int:
        return self.points_scored - self.points_conceded

    @property
    def tiebreaker1(self) -> int:
        return self.points_scored

    @property
    def tiebreaker2(self) -> int:
        return self.point_differential


@dataclass(frozen=True)
class BracketAdvancement:
    """Where the winner of source_match_id is routed."""

    source_match_id: MatchId
    target_match_id: MatchId
    target_color: AllianceColor


# ============================================================================
# Collaborator contracts
# ============================================================================


class TeamRepository(Protocol):
    def get_stage(self, stage_id: Hashable) -> Optional[StageRecord]: ...

    def list_teams(self, stage_id: Hashable) -> List[TeamRecord]: ...

    def list_fields(self, stage_id: Hashable) -> List[FieldRecord]: ...

    def list_matches(self, stage_id: Hashable) -> List[MatchRecord]: ...

    def list_tournament_matches(self, tournament_id: Hashable) -> List[MatchRecord]: ...

    def get_match(self, match_id: MatchId) -> Optional[MatchRecord]: ...

    def list_rankings(
        self, tournament_id: Hashable, stage_id: Optional[Hashable] = None
    ) -> List[TeamRanking]: ...


class MatchSink(Protocol):
    def save_match(self, match: MatchRecord) -> MatchId: ...

    def add_alliance_teams(
        self, match_id: MatchId, color: AllianceColor, entries: Sequence[AllianceEntry]
    ) -> None: ...

    def update_match_state(self, match: MatchRecord) -> None: ...


class RankingSink(Protocol):
    def upsert_rankings(self, rankings: Sequence[TeamRanking]) -> None: ...

    def record_placements(self, stage_id: Hashable, placements: Dict[TeamId, int]) -> None: ...


class AdvancementStore(Protocol):
    def save_advancements(self, advancements: Sequence[BracketAdvancement]) -> None: ...

    def get_advancement(self, source_match_id: MatchId) -> Optional[BracketAdvancement]: ...
