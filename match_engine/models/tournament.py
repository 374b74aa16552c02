from datetime import datetime
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel

from match_engine.services.records import StageStatus, StageType, utc_now


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=utc_now)


class Stage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    # Nullable so a detached stage can exist; it cannot be scheduled until attached
    tournament_id: Optional[int] = Field(default=None, foreign_key="tournament.id", index=True)
    name: str
    stage_type: StageType = Field(sa_column=Column(String, nullable=False))
    status: StageStatus = Field(default=StageStatus.ACTIVE, sa_column=Column(String, nullable=False))
    created_at: datetime = Field(default_factory=utc_now)
