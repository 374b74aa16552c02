"""
Scheduling strategies, one per kind of stage.

QUALIFICATION stages get a full FRC-style qualification schedule in one pass
(round-robin seed, annealing, field balancing). SWISS stages get one round at a
time paired from current standings. PLAYOFF and FINAL stages get a
single-elimination bracket plus its advancement links.

Strategies are pure: they read a StageContext and return drafts. Persisting
the drafts is MatchSchedulerService's job.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Type, Union

from pydantic import BaseModel, Field, field_validator

from match_engine.config import QUALITY_LEVELS, EngineSettings
from match_engine.errors import UnknownStageTypeError, UnsupportedTeamsPerAllianceError
from match_engine.services.bracket_builder import BracketBuilder, BracketPlan
from match_engine.services.field_balancer import FieldBalancer
from match_engine.services.matchup_history import MatchupHistoryTracker
from match_engine.services.random_source import RandomSource
from match_engine.services.ranking_calculator import playoff_seed_order
from match_engine.services.records import (
    AllianceColor,
    AllianceEntry,
    FieldRecord,
    MatchRecord,
    StageRecord,
    StageType,
    TeamId,
    TeamRanking,
    TeamRecord,
)
from match_engine.services.round_robin import RoundRobinGenerator
from match_engine.services.schedule_optimizer import OptimizationResult, ScheduleOptimizer
from match_engine.services.schedule_types import ScheduledMatch
from match_engine.services.swiss_pairing import SwissPairingEngine

logger = logging.getLogger(__name__)

SeedId = Union[int, str]


# ============================================================================
# Options
# ============================================================================


class FrcSchedulingOptions(BaseModel):
    rounds: int = Field(ge=1)
    teams_per_alliance: Optional[int] = Field(default=None, ge=1)
    min_match_separation: Optional[int] = Field(default=None, ge=1, le=10)
    max_iterations: Optional[int] = Field(default=None, ge=100, le=100000)
    quality_level: Optional[str] = None
    start_time: Optional[datetime] = None

    @field_validator("quality_level")
    @classmethod
    def validate_quality_level(cls, v):
        if v is not None and v not in QUALITY_LEVELS:
            raise ValueError(f"quality_level must be one of {QUALITY_LEVELS}")
        return v


class SwissSchedulingOptions(BaseModel):
    # None: continue after the highest round already scheduled in the stage
    current_round_number: Optional[int] = Field(default=None, ge=0)
    teams_per_alliance: Optional[int] = Field(default=None, ge=1)
    start_time: Optional[datetime] = None


class PlayoffSchedulingOptions(BaseModel):
    number_of_rounds: int = Field(ge=1)
    teams_per_alliance: int = Field(default=1, ge=1)
    seeds: Optional[List[List[SeedId]]] = None  # alliance rosters, best first
    seed_stage_id: Optional[SeedId] = None  # None: tournament-wide rankings
    start_time: Optional[datetime] = None


SchedulingOptions = Union[FrcSchedulingOptions, SwissSchedulingOptions, PlayoffSchedulingOptions]


# ============================================================================
# Inputs / outputs
# ============================================================================


@dataclass
class StageContext:
    """Everything a strategy may read about the stage being scheduled."""

    stage: StageRecord
    teams: List[TeamRecord] = field(default_factory=list)
    fields: List[FieldRecord] = field(default_factory=list)
    existing_matches: List[MatchRecord] = field(default_factory=list)
    rankings: List[TeamRanking] = field(default_factory=list)

    @property
    def last_match_number(self) -> int:
        return max((m.match_number for m in self.existing_matches), default=0)

    @property
    def last_round_number(self) -> int:
        return max((m.round_number for m in self.existing_matches), default=0)


@dataclass
class GenerationResult:
    matches: List[MatchRecord]
    cycle_minutes: int
    bracket: Optional[BracketPlan] = None
    optimization: Optional[OptimizationResult] = None

    def to_dict(self) -> dict:
        result = {
            "matches_generated": len(self.matches),
            "first_match_number": self.matches[0].match_number if self.matches else None,
            "last_match_number": self.matches[-1].match_number if self.matches else None,
        }
        if self.optimization is not None:
            result["initial_score"] = self.optimization.initial_score
            result["best_score"] = self.optimization.best_score
            result["iterations"] = self.optimization.iterations
        if self.bracket is not None:
            result["number_of_rounds"] = self.bracket.number_of_rounds
            result["advancement_links"] = len(self.bracket.advancements)
        return result


# ============================================================================
# Strategies
# ============================================================================


class SchedulingStrategy:
    name = "base"
    options_type: Type[BaseModel] = BaseModel

    def __init__(self, rng: RandomSource, settings: EngineSettings):
        self.rng = rng
        self.settings = settings

    def parse_options(self, options: Union[BaseModel, dict]) -> BaseModel:
        if isinstance(options, self.options_type):
            return options
        if isinstance(options, BaseModel):
            options = options.model_dump()
        return self.options_type.model_validate(options)

    def cycle_minutes(self) -> int:
        return self.settings.qual_cycle_minutes

    def resolve_teams_per_alliance(self, requested: Optional[int]) -> int:
        """The requested alliance size, which must match the configured one."""
        teams_per_alliance = requested or self.settings.teams_per_alliance
        if teams_per_alliance != self.settings.teams_per_alliance:
            raise UnsupportedTeamsPerAllianceError(
                f"Engine is configured for {self.settings.teams_per_alliance} teams per alliance, "
                f"got {teams_per_alliance}"
            )
        return teams_per_alliance

    def generate(self, context: StageContext, options) -> GenerationResult:
        raise NotImplementedError


class RoundRobinFrcStrategy(SchedulingStrategy):
    """Full qualification schedule: round-robin seed, annealing, field balancing."""

    name = "round_robin_frc"
    options_type = FrcSchedulingOptions

    def generate(self, context: StageContext, options: FrcSchedulingOptions) -> GenerationResult:
        teams_per_alliance = self.resolve_teams_per_alliance(options.teams_per_alliance)
        balancer = FieldBalancer(context.fields, self.rng)

        generator = RoundRobinGenerator(teams_per_alliance, self.rng)
        initial = generator.generate(len(context.teams), options.rounds)

        separation = options.min_match_separation or self.settings.min_match_separation
        iterations = options.max_iterations or self.settings.iterations_for(options.quality_level)
        optimization = ScheduleOptimizer(self.rng, separation).optimize(initial, iterations)

        best = optimization.schedule
        best.mark_surrogates(options.rounds)

        # dense 1-based schedule index -> caller's team id, in roster order
        team_ids: Dict[int, TeamId] = {index: team.id for index, team in enumerate(context.teams, start=1)}
        first_number = context.last_match_number + 1

        matches: List[MatchRecord] = []
        for offset, scheduled in enumerate(best.matches):
            assigned = balancer.assign()
            matches.append(
                MatchRecord(
                    match_number=first_number + offset,
                    round_number=scheduled.round_number,
                    stage_id=context.stage.id,
                    red=self._entries(scheduled, AllianceColor.RED, team_ids),
                    blue=self._entries(scheduled, AllianceColor.BLUE, team_ids),
                    field_id=assigned.id,
                )
            )

        logger.info(
            "Generated %d qualification matches for stage %s (%d teams, %d rounds, score %.2f)",
            len(matches),
            context.stage.id,
            len(context.teams),
            options.rounds,
            optimization.best_score,
        )
        return GenerationResult(matches=matches, cycle_minutes=self.cycle_minutes(), optimization=optimization)

    @staticmethod
    def _entries(
        scheduled: ScheduledMatch, color: AllianceColor, team_ids: Dict[int, TeamId]
    ) -> List[AllianceEntry]:
        return [
            AllianceEntry(team_id=team_ids[index], station=position + 1, is_surrogate=index in scheduled.surrogates)
            for position, index in enumerate(scheduled.alliance(color))
        ]


class SwissStrategy(SchedulingStrategy):
    """One Swiss round from the stage's current standings."""

    name = "swiss"
    options_type = SwissSchedulingOptions

    def generate(self, context: StageContext, options: SwissSchedulingOptions) -> GenerationResult:
        engine = SwissPairingEngine(self.resolve_teams_per_alliance(options.teams_per_alliance))
        balancer = FieldBalancer(context.fields, self.rng)
        history = MatchupHistoryTracker.from_matches(context.existing_matches)

        previous_round = options.current_round_number
        if previous_round is None:
            previous_round = context.last_round_number

        matches = engine.pair_round(
            context.rankings,
            history,
            balancer,
            previous_round=previous_round,
            last_match_number=context.last_match_number,
            stage_id=context.stage.id,
        )
        return GenerationResult(matches=matches, cycle_minutes=self.cycle_minutes())


class PlayoffStrategy(SchedulingStrategy):
    """Single-elimination bracket; later rounds are empty until winners advance."""

    name = "playoff"
    options_type = PlayoffSchedulingOptions

    def cycle_minutes(self) -> int:
        return self.settings.playoff_cycle_minutes

    def generate(self, context: StageContext, options: PlayoffSchedulingOptions) -> GenerationResult:
        if options.seeds is not None:
            seeds: List[List[TeamId]] = [list(roster) for roster in options.seeds]
        else:
            seeds = self.seeds_from_rankings(context.rankings, options.teams_per_alliance)

        plan = BracketBuilder(options.teams_per_alliance).build(
            seeds,
            options.number_of_rounds,
            first_match_number=context.last_match_number + 1,
            stage_id=context.stage.id,
        )

        # bracket matches get fields only when the stage has some
        if context.fields:
            balancer = FieldBalancer(context.fields, self.rng)
            for match in plan.matches:
                match.field_id = balancer.assign().id

        logger.info(
            "Generated %d-round playoff bracket for stage %s (%d matches)",
            options.number_of_rounds,
            context.stage.id,
            len(plan.matches),
        )
        return GenerationResult(matches=plan.matches, cycle_minutes=self.cycle_minutes(), bracket=plan)

    @staticmethod
    def seeds_from_rankings(rankings: Sequence[TeamRanking], teams_per_alliance: int) -> List[List[TeamId]]:
        """Consecutive chunks of the seeding order; an incomplete last chunk is dropped."""
        ordered = [r.team_id for r in playoff_seed_order(rankings)]
        usable = len(ordered) - len(ordered) % teams_per_alliance
        return [ordered[i : i + teams_per_alliance] for i in range(0, usable, teams_per_alliance)]


class StrategyFactory:
    """Maps stage types to strategy instances."""

    def __init__(self, rng: RandomSource, settings: EngineSettings):
        playoff = PlayoffStrategy(rng, settings)
        self._strategies: Dict[StageType, SchedulingStrategy] = {
            StageType.QUALIFICATION: RoundRobinFrcStrategy(rng, settings),
            StageType.SWISS: SwissStrategy(rng, settings),
            StageType.PLAYOFF: playoff,
            StageType.FINAL: playoff,
        }

    def get_strategy(self, stage_type: Union[StageType, str]) -> SchedulingStrategy:
        key = self._coerce(stage_type)
        if key is None or key not in self._strategies:
            raise UnknownStageTypeError(f"No scheduling strategy for stage type {stage_type!r}")
        strategy = self._strategies[key]
        logger.info("Selected %s strategy for %s stage", strategy.name, key.value)
        return strategy

    def available_strategy_types(self) -> List[str]:
        return sorted({strategy.name for strategy in self._strategies.values()})

    def can_handle(self, stage_type: Union[StageType, str]) -> bool:
        key = self._coerce(stage_type)
        return key is not None and key in self._strategies

    @staticmethod
    def _coerce(stage_type: Union[StageType, str]) -> Optional[StageType]:
        if isinstance(stage_type, StageType):
            return stage_type
        try:
            return StageType(str(stage_type).upper())
        except ValueError:
            return None
