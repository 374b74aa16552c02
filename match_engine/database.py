from pathlib import Path

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from match_engine.config import load_settings

settings = load_settings()

DATABASE_URL = settings.database_url

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

if _is_sqlite and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=settings.sql_echo,
    connect_args=_connect_args,
)


def init_db(bind: Engine = engine) -> None:
    """Create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from match_engine.models.field import PlayingField  # noqa: F401
    from match_engine.models.match import Match, TeamAlliance  # noqa: F401
    from match_engine.models.match_advancement import MatchAdvancement  # noqa: F401
    from match_engine.models.ranking_entry import RankingEntry  # noqa: F401
    from match_engine.models.team import Team  # noqa: F401
    from match_engine.models.tournament import Stage, Tournament  # noqa: F401

    SQLModel.metadata.create_all(bind)
