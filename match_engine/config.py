"""
Engine configuration.

Values come from the environment (a local .env file is loaded first), each with
a default that matches the reference competition format: 2 teams per alliance,
4 teams per match, 6 minute qualification cycle, 15 minute playoff cycle.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()

QUALITY_LEVELS = ("low", "medium", "high")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class EngineSettings:
    database_url: str = "sqlite:///./match_engine.db"
    sql_echo: bool = False
    teams_per_alliance: int = 2
    iteration_tiers: Dict[str, int] = field(
        default_factory=lambda: {"low": 5000, "medium": 10000, "high": 25000}
    )
    default_quality: str = "medium"
    min_match_separation: int = 1
    qual_cycle_minutes: int = 6
    playoff_cycle_minutes: int = 15
    log_level: str = "INFO"

    def iterations_for(self, quality_level: Optional[str] = None) -> int:
        """Iteration cap for a quality tier (falls back to the default tier)."""
        level = quality_level or self.default_quality
        if level not in self.iteration_tiers:
            raise ValueError(f"quality_level must be one of {QUALITY_LEVELS}, got {level!r}")
        return self.iteration_tiers[level]


def load_settings() -> EngineSettings:
    """Build settings from the current environment."""
    default_quality = os.getenv("MATCH_ENGINE_DEFAULT_QUALITY", "medium").lower()
    if default_quality not in QUALITY_LEVELS:
        raise ValueError(
            f"MATCH_ENGINE_DEFAULT_QUALITY must be one of {QUALITY_LEVELS}, got {default_quality!r}"
        )

    return EngineSettings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./match_engine.db"),
        sql_echo=_env_bool("SQL_ECHO", False),
        teams_per_alliance=_env_int("MATCH_ENGINE_TEAMS_PER_ALLIANCE", 2),
        iteration_tiers={
            "low": _env_int("MATCH_ENGINE_ITERATIONS_LOW", 5000),
            "medium": _env_int("MATCH_ENGINE_ITERATIONS_MEDIUM", 10000),
            "high": _env_int("MATCH_ENGINE_ITERATIONS_HIGH", 25000),
        },
        default_quality=default_quality,
        min_match_separation=_env_int("MATCH_ENGINE_MIN_MATCH_SEPARATION", 1),
        qual_cycle_minutes=_env_int("MATCH_ENGINE_QUAL_CYCLE_MINUTES", 6),
        playoff_cycle_minutes=_env_int("MATCH_ENGINE_PLAYOFF_CYCLE_MINUTES", 15),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic stream handler for hosts that don't configure logging."""
    logging.basicConfig(
        level=(level or load_settings().log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
