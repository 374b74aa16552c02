from typing import Iterable, List

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from match_engine.database import init_db
from match_engine.services.random_source import SeededRandomSource

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so every session shares one database
# 2. init_db() registers every model before create_all()
# 3. Tables are dropped after each test so tests never see each other's rows
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session"""
    init_db(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="rng")
def rng_fixture():
    """Deterministic randomness"""
    return SeededRandomSource(1234)


class ScriptedRandomSource:
    """RandomSource that replays fixed values; falls back to 0 / 0.0 when exhausted."""

    def __init__(self, randranges: Iterable[int] = (), randoms: Iterable[float] = ()):
        self.randranges: List[int] = list(randranges)
        self.randoms: List[float] = list(randoms)
        self.randrange_calls: List[int] = []

    def random(self) -> float:
        return self.randoms.pop(0) if self.randoms else 0.0

    def randrange(self, stop: int) -> int:
        self.randrange_calls.append(stop)
        value = self.randranges.pop(0) if self.randranges else 0
        assert 0 <= value < stop, f"scripted value {value} out of range for randrange({stop})"
        return value

    def shuffle(self, seq: list) -> None:
        seq.reverse()
