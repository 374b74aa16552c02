"""
SQLModel implementation of the engine's collaborators.

One object backs TeamRepository, MatchSink, RankingSink and AdvancementStore
over a single Session. Writes are flushed (so ids exist) but never committed:
the caller owns the transaction and commits once the service call returns.
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlmodel import Session, select

from match_engine.models.field import PlayingField
from match_engine.models.match import Match, TeamAlliance
from match_engine.models.match_advancement import MatchAdvancement
from match_engine.models.ranking_entry import RankingEntry
from match_engine.models.team import Team
from match_engine.models.tournament import Stage
from match_engine.services.records import (
    AllianceColor,
    AllianceEntry,
    BracketAdvancement,
    FieldRecord,
    MatchRecord,
    MatchState,
    StageRecord,
    StageStatus,
    StageType,
    TeamRanking,
    TeamRecord,
    as_utc,
)

logger = logging.getLogger(__name__)


class SqlMatchRepository:
    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # TeamRepository
    # ------------------------------------------------------------------

    def get_stage(self, stage_id: int) -> Optional[StageRecord]:
        stage = self.session.get(Stage, stage_id)
        if stage is None:
            return None
        return StageRecord(
            id=stage.id,
            name=stage.name,
            stage_type=StageType(stage.stage_type),
            tournament_id=stage.tournament_id,
            status=StageStatus(stage.status),
        )

    def list_teams(self, stage_id: int) -> List[TeamRecord]:
        """Teams of the stage's tournament, in registration order."""
        stage = self.session.get(Stage, stage_id)
        if stage is None or stage.tournament_id is None:
            return []
        teams = self.session.exec(
            select(Team).where(Team.tournament_id == stage.tournament_id).order_by(Team.id)
        ).all()
        return [TeamRecord(id=t.id, name=t.name) for t in teams]

    def list_fields(self, stage_id: int) -> List[FieldRecord]:
        stage = self.session.get(Stage, stage_id)
        if stage is None or stage.tournament_id is None:
            return []
        fields = self.session.exec(
            select(PlayingField).where(PlayingField.tournament_id == stage.tournament_id).order_by(PlayingField.id)
        ).all()
        return [FieldRecord(id=f.id, name=f.name) for f in fields]

    def list_matches(self, stage_id: int) -> List[MatchRecord]:
        matches = self.session.exec(
            select(Match).where(Match.stage_id == stage_id).order_by(Match.match_number)
        ).all()
        return [self._to_record(m) for m in matches]

    def list_tournament_matches(self, tournament_id: int) -> List[MatchRecord]:
        matches = self.session.exec(
            select(Match)
            .join(Stage, Stage.id == Match.stage_id)
            .where(Stage.tournament_id == tournament_id)
            .order_by(Match.stage_id, Match.match_number)
        ).all()
        return [self._to_record(m) for m in matches]

    def get_match(self, match_id: int) -> Optional[MatchRecord]:
        match = self.session.get(Match, match_id)
        if match is None:
            return None
        return self._to_record(match)

    def list_rankings(self, tournament_id: int, stage_id: Optional[int] = None) -> List[TeamRanking]:
        rows = self.session.exec(
            self._ranking_scope(tournament_id, stage_id).order_by(RankingEntry.rank, RankingEntry.id)
        ).all()
        return [
            TeamRanking(
                team_id=row.team_id,
                tournament_id=row.tournament_id,
                stage_id=row.stage_id,
                wins=row.wins,
                losses=row.losses,
                ties=row.ties,
                points_scored=row.points_scored,
                points_conceded=row.points_conceded,
                opponent_win_percentage=row.opponent_win_percentage,
                rank=row.rank,
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # MatchSink
    # ------------------------------------------------------------------

    def save_match(self, match: MatchRecord) -> int:
        row = Match(
            stage_id=match.stage_id,
            match_number=match.match_number,
            round_number=match.round_number,
            status=match.status.value,
            field_id=match.field_id,
            scheduled_time=as_utc(match.scheduled_time),
        )
        self.session.add(row)
        self.session.flush()
        return row.id

    def add_alliance_teams(self, match_id: int, color: AllianceColor, entries: Sequence[AllianceEntry]) -> None:
        for entry in entries:
            self.session.add(
                TeamAlliance(
                    match_id=match_id,
                    team_id=entry.team_id,
                    color=color.value,
                    station=entry.station,
                    is_surrogate=entry.is_surrogate,
                )
            )
        self.session.flush()

    def update_match_state(self, match: MatchRecord) -> None:
        row = self.session.get(Match, match.id)
        if row is None:
            raise ValueError(f"Match {match.id} does not exist")
        row.status = match.status.value
        row.winning_alliance = match.winning_alliance.value if match.winning_alliance is not None else None
        row.red_score = match.red_score
        row.blue_score = match.blue_score
        self.session.add(row)
        self.session.flush()

    # ------------------------------------------------------------------
    # RankingSink
    # ------------------------------------------------------------------

    def upsert_rankings(self, rankings: Sequence[TeamRanking]) -> None:
        for ranking in rankings:
            row = self._ranking_row(ranking.tournament_id, ranking.stage_id, ranking.team_id)
            row.wins = ranking.wins
            row.losses = ranking.losses
            row.ties = ranking.ties
            row.points_scored = ranking.points_scored
            row.points_conceded = ranking.points_conceded
            row.opponent_win_percentage = ranking.opponent_win_percentage
            row.ranking_points = ranking.ranking_points
            row.point_differential = ranking.point_differential
            row.rank = ranking.rank
            self.session.add(row)
        self.session.flush()
        logger.debug("Upserted %d ranking rows", len(rankings))

    def record_placements(self, stage_id: int, placements: Dict[int, int]) -> None:
        stage = self.session.get(Stage, stage_id)
        if stage is None:
            raise ValueError(f"Stage {stage_id} does not exist")
        for team_id, placement in placements.items():
            row = self._ranking_row(stage.tournament_id, stage_id, team_id)
            row.placement = placement
            self.session.add(row)
        self.session.flush()

    # ------------------------------------------------------------------
    # AdvancementStore
    # ------------------------------------------------------------------

    def save_advancements(self, advancements: Sequence[BracketAdvancement]) -> None:
        for link in advancements:
            self.session.add(
                MatchAdvancement(
                    source_match_id=link.source_match_id,
                    target_match_id=link.target_match_id,
                    target_color=link.target_color.value,
                )
            )
        self.session.flush()

    def get_advancement(self, source_match_id: int) -> Optional[BracketAdvancement]:
        row = self.session.exec(
            select(MatchAdvancement).where(MatchAdvancement.source_match_id == source_match_id)
        ).first()
        if row is None:
            return None
        return BracketAdvancement(
            source_match_id=row.source_match_id,
            target_match_id=row.target_match_id,
            target_color=AllianceColor(row.target_color),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_record(self, match: Match) -> MatchRecord:
        # Read alliances with a fresh query; rows added by advancement must show up
        alliances = self.session.exec(
            select(TeamAlliance).where(TeamAlliance.match_id == match.id).order_by(TeamAlliance.station)
        ).all()
        record = MatchRecord(
            id=match.id,
            stage_id=match.stage_id,
            match_number=match.match_number,
            round_number=match.round_number,
            status=MatchState(match.status),
            field_id=match.field_id,
            scheduled_time=as_utc(match.scheduled_time),
            winning_alliance=AllianceColor(match.winning_alliance) if match.winning_alliance else None,
            red_score=match.red_score,
            blue_score=match.blue_score,
        )
        for row in alliances:
            record.alliance(AllianceColor(row.color)).append(
                AllianceEntry(team_id=row.team_id, station=row.station, is_surrogate=row.is_surrogate)
            )
        return record

    @staticmethod
    def _ranking_scope(tournament_id: int, stage_id: Optional[int]):
        query = select(RankingEntry).where(RankingEntry.tournament_id == tournament_id)
        if stage_id is None:
            return query.where(RankingEntry.stage_id.is_(None))
        return query.where(RankingEntry.stage_id == stage_id)

    def _ranking_row(self, tournament_id: int, stage_id: Optional[int], team_id: int) -> RankingEntry:
        """Existing row for (team, scope), or a new zeroed one."""
        row = self.session.exec(
            self._ranking_scope(tournament_id, stage_id).where(RankingEntry.team_id == team_id)
        ).first()
        if row is None:
            row = RankingEntry(tournament_id=tournament_id, stage_id=stage_id, team_id=team_id)
        return row
