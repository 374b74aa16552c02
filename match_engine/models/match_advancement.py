from typing import Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, SQLModel

from match_engine.services.records import AllianceColor


class MatchAdvancement(SQLModel, table=True):
    """Where the winner of a bracket match goes next (at most one link per source)."""

    __table_args__ = (SAUniqueConstraint("source_match_id", name="uq_advancement_source"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    source_match_id: int = Field(foreign_key="match.id", index=True)
    target_match_id: int = Field(foreign_key="match.id")
    target_color: AllianceColor = Field(sa_column=Column(String, nullable=False))
