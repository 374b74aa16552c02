from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from match_engine.services.records import utc_now


class RankingEntry(SQLModel, table=True):
    """
    Standing of one team in one scope.

    stage_id NULL is the tournament-wide scope. ranking_points and
    point_differential are rewritten from the counters on every upsert.
    """

    __table_args__ = (
        SAUniqueConstraint("tournament_id", "stage_id", "team_id", name="uq_ranking_scope_team"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    stage_id: Optional[int] = Field(default=None, foreign_key="stage.id", index=True)
    team_id: int = Field(foreign_key="team.id", index=True)

    wins: int = Field(default=0)
    losses: int = Field(default=0)
    ties: int = Field(default=0)
    points_scored: int = Field(default=0)
    points_conceded: int = Field(default=0)
    opponent_win_percentage: float = Field(default=0.0)
    ranking_points: int = Field(default=0)
    point_differential: int = Field(default=0)
    rank: Optional[int] = Field(default=None)

    # Final bracket placement (1, 2, 3, 5, ...), playoff stages only
    placement: Optional[int] = Field(default=None)

    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
