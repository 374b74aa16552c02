from datetime import datetime
from typing import Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, SQLModel

from match_engine.services.records import AllianceColor, MatchState, utc_now


class Match(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("stage_id", "match_number", name="uq_stage_match_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    stage_id: int = Field(foreign_key="stage.id", index=True)
    match_number: int  # 1-based, increasing within the stage
    round_number: int
    status: MatchState = Field(default=MatchState.PENDING, sa_column=Column(String, nullable=False))
    field_id: Optional[int] = Field(default=None, foreign_key="field.id")
    scheduled_time: Optional[datetime] = Field(default=None)

    # Result (None until the match is completed; winner None on a draw)
    winning_alliance: Optional[AllianceColor] = Field(default=None, sa_column=Column(String, nullable=True))
    red_score: Optional[int] = Field(default=None)
    blue_score: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)


class TeamAlliance(SQLModel, table=True):
    """One team at one station of one alliance of a match."""

    __table_args__ = (SAUniqueConstraint("match_id", "color", "station", name="uq_match_color_station"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    color: AllianceColor = Field(sa_column=Column(String, nullable=False))
    station: int  # 1-based
    is_surrogate: bool = Field(default=False)  # result excluded from rankings
