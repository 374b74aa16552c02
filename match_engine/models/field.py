from typing import Optional

from sqlmodel import Field, SQLModel


class PlayingField(SQLModel, table=True):
    __tablename__ = "field"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
