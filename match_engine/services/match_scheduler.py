"""
Match scheduler service.

The single entry point the owning application calls. It validates the stage,
picks the strategy for the stage type, feeds it what the repository knows,
stamps start times and hands the drafts to the sinks in emission order.

Every public method is one unit of work: the caller wraps it in a single
transaction and commits once it returns (the SQLModel adapter in
match_engine.repository only flushes).
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Hashable, List, Optional, Union

from pydantic import BaseModel

from match_engine.config import EngineSettings, load_settings
from match_engine.errors import MatchNotFoundError, StageNotFoundError, StageNotReadyError
from match_engine.services.bracket_advancer import (
    AdvancementResult,
    BracketAdvancer,
    PlayoffRankingFinalizer,
    complete_match,
    start_match,
)
from match_engine.services.random_source import RandomSource, SeededRandomSource
from match_engine.services.ranking_calculator import RankingCalculator
from match_engine.services.records import (
    AdvancementStore,
    AllianceColor,
    MatchId,
    MatchRecord,
    MatchSink,
    RankingSink,
    StageRecord,
    StageStatus,
    StageType,
    TeamId,
    TeamRanking,
    TeamRepository,
    as_utc,
    utc_now,
)
from match_engine.services.strategies import (
    GenerationResult,
    PlayoffSchedulingOptions,
    StageContext,
    StrategyFactory,
)

logger = logging.getLogger(__name__)

BRACKET_STAGE_TYPES = (StageType.PLAYOFF, StageType.FINAL)


class MatchSchedulerService:
    def __init__(
        self,
        repository: TeamRepository,
        match_sink: MatchSink,
        ranking_sink: RankingSink,
        advancement_store: AdvancementStore,
        rng: Optional[RandomSource] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.repository = repository
        self.match_sink = match_sink
        self.ranking_sink = ranking_sink
        self.advancement_store = advancement_store
        self.rng = rng or SeededRandomSource()
        self.settings = settings or load_settings()
        self.strategies = StrategyFactory(self.rng, self.settings)
        self.calculator = RankingCalculator()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_matches(self, stage_id: Hashable, options: Union[BaseModel, dict]) -> GenerationResult:
        """
        Generate and persist matches for one stage.

        options is the strategy's options model (or a dict that validates into
        it). Raises StageNotFoundError, StageNotReadyError, UnknownStageTypeError
        or whatever the strategy raises; no match is persisted on failure.
        """
        stage = self._load_stage(stage_id, for_generation=True)
        strategy = self.strategies.get_strategy(stage.stage_type)
        parsed = strategy.parse_options(options)

        context = self._build_context(stage, parsed)
        result = strategy.generate(context, parsed)

        self._stamp_times(result, parsed.start_time)
        ids_by_number = self._persist(result.matches)
        if result.bracket is not None:
            self.advancement_store.save_advancements(result.bracket.resolve(ids_by_number))

        logger.info("Generated %d matches for stage %s", len(result.matches), stage.id)
        return result

    def _build_context(self, stage: StageRecord, options: BaseModel) -> StageContext:
        teams = self.repository.list_teams(stage.id)
        existing = self.repository.list_matches(stage.id)
        context = StageContext(
            stage=stage,
            teams=teams,
            fields=self.repository.list_fields(stage.id),
            existing_matches=existing,
        )

        if stage.stage_type is StageType.SWISS:
            rankings = self.repository.list_rankings(stage.tournament_id, stage.id)
            if not rankings:
                rankings = self._bootstrap_rankings(stage, context)
            context.rankings = rankings
        elif stage.stage_type in BRACKET_STAGE_TYPES and isinstance(options, PlayoffSchedulingOptions):
            if options.seeds is None:
                context.rankings = self.repository.list_rankings(stage.tournament_id, options.seed_stage_id)

        return context

    def _bootstrap_rankings(self, stage: StageRecord, context: StageContext) -> List[TeamRanking]:
        """Stage rankings from whatever has been played so far (all zero on a fresh stage)."""
        rankings = self.calculator.compute(
            context.existing_matches,
            team_ids=[team.id for team in context.teams],
            tournament_id=stage.tournament_id,
            stage_id=stage.id,
        )
        self.ranking_sink.upsert_rankings(rankings)
        logger.info("Initialized %d rankings for Swiss stage %s", len(rankings), stage.id)
        return rankings

    def _stamp_times(self, result: GenerationResult, start_time: Optional[datetime]) -> None:
        start = as_utc(start_time) or utc_now()
        cycle = timedelta(minutes=result.cycle_minutes)
        for match in result.matches:
            match.scheduled_time = start + cycle * (match.match_number - 1)

    def _persist(self, matches: List[MatchRecord]) -> Dict[int, MatchId]:
        ids_by_number: Dict[int, MatchId] = {}
        for match in matches:
            match.id = self.match_sink.save_match(match)
            for color in (AllianceColor.RED, AllianceColor.BLUE):
                entries = match.alliance(color)
                if entries:
                    self.match_sink.add_alliance_teams(match.id, color, entries)
            ids_by_number[match.match_number] = match.id
        return ids_by_number

    # ------------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------------

    def update_rankings(self, tournament_id: Hashable, stage_id: Optional[Hashable] = None) -> List[TeamRanking]:
        """Recompute and upsert rankings for a stage, or for the whole tournament when stage_id is None."""
        if stage_id is not None:
            matches = self.repository.list_matches(stage_id)
            team_ids: List[TeamId] = [team.id for team in self.repository.list_teams(stage_id)]
        else:
            matches = self.repository.list_tournament_matches(tournament_id)
            team_ids = [r.team_id for r in self.repository.list_rankings(tournament_id)]

        rankings = self.calculator.compute(
            matches, team_ids=team_ids, tournament_id=tournament_id, stage_id=stage_id
        )
        self.ranking_sink.upsert_rankings(rankings)
        return rankings

    def get_rankings(self, tournament_id: Hashable, stage_id: Optional[Hashable] = None) -> List[TeamRanking]:
        rankings = self.repository.list_rankings(tournament_id, stage_id)
        return sorted(rankings, key=lambda r: (r.rank is None, r.rank or 0))

    # ------------------------------------------------------------------
    # Match lifecycle
    # ------------------------------------------------------------------

    def start_match(self, match_id: MatchId) -> MatchRecord:
        match = start_match(self._load_match(match_id))
        self.match_sink.update_match_state(match)
        logger.info("Match %s started", match_id)
        return match

    def complete_match(
        self,
        match_id: MatchId,
        winning_alliance: Optional[AllianceColor],
        red_score: Optional[int] = None,
        blue_score: Optional[int] = None,
    ) -> MatchRecord:
        """Complete a bracket match. A winning alliance is required."""
        match = complete_match(self._load_match(match_id), winning_alliance, red_score, blue_score)
        self.match_sink.update_match_state(match)
        logger.info("Match %s completed, %s wins", match_id, winning_alliance.value)
        return match

    def record_result(
        self,
        match_id: MatchId,
        red_score: int,
        blue_score: int,
        winning_alliance: Optional[AllianceColor] = None,
    ) -> MatchRecord:
        """
        Record a match result and refresh the rankings it affects.

        The winner defaults to the higher score. Equal scores are a draw in
        qualification and Swiss stages; in PLAYOFF and FINAL stages a draw
        without an explicit winner raises MissingWinningAllianceError.
        """
        match = self._load_match(match_id)
        stage = self.repository.get_stage(match.stage_id) if match.stage_id is not None else None
        if winning_alliance is None and red_score != blue_score:
            winning_alliance = AllianceColor.RED if red_score > blue_score else AllianceColor.BLUE
        draws_allowed = stage is None or stage.stage_type not in BRACKET_STAGE_TYPES
        complete_match(match, winning_alliance, red_score, blue_score, require_winner=not draws_allowed)
        self.match_sink.update_match_state(match)
        logger.info("Recorded result for match %s: %d-%d", match_id, red_score, blue_score)

        if stage is not None and stage.tournament_id is not None:
            self.update_rankings(stage.tournament_id, stage.id)
            self.update_rankings(stage.tournament_id)
        return match

    # ------------------------------------------------------------------
    # Brackets
    # ------------------------------------------------------------------

    def advance_bracket(self, match_id: MatchId) -> AdvancementResult:
        """
        Copy the winners of a completed bracket match into their next match.

        Must run at most once per match; the caller's transaction is what
        keeps two concurrent completions from filling the same slot.
        """
        match = self._load_match(match_id)
        link = self.advancement_store.get_advancement(match_id)
        advancer = BracketAdvancer({} if link is None else {match.id: link})
        result = advancer.advance(match)
        self.match_sink.add_alliance_teams(result.target_match_id, result.target_color, result.entries)
        return result

    def finalize_playoff_rankings(self, stage_id: Hashable) -> Dict[TeamId, int]:
        stage = self._load_stage(stage_id)
        placements = PlayoffRankingFinalizer().finalize(self.repository.list_matches(stage.id))
        self.ranking_sink.record_placements(stage.id, placements)
        return placements

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _load_stage(self, stage_id: Hashable, for_generation: bool = False) -> StageRecord:
        stage = self.repository.get_stage(stage_id)
        if stage is None:
            raise StageNotFoundError(f"Stage {stage_id} not found")
        if for_generation:
            if stage.tournament_id is None:
                raise StageNotReadyError(f"Stage {stage_id} is not attached to a tournament")
            if stage.status is StageStatus.COMPLETED:
                raise StageNotReadyError(f"Stage {stage_id} is already completed")
        return stage

    def _load_match(self, match_id: MatchId) -> MatchRecord:
        match = self.repository.get_match(match_id)
        if match is None:
            raise MatchNotFoundError(f"Match {match_id} not found")
        return match
