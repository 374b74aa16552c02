"""
Tests for table creation.
"""

from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from match_engine.database import init_db


def test_init_db_creates_every_table():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    init_db(engine)

    assert set(inspect(engine).get_table_names()) == {
        "tournament",
        "stage",
        "team",
        "field",
        "match",
        "teamalliance",
        "rankingentry",
        "matchadvancement",
    }


def test_init_db_is_repeatable():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    init_db(engine)
    init_db(engine)

    assert "match" in inspect(engine).get_table_names()
