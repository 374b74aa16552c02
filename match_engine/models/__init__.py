from match_engine.models.field import PlayingField
from match_engine.models.match import Match, TeamAlliance
from match_engine.models.match_advancement import MatchAdvancement
from match_engine.models.ranking_entry import RankingEntry
from match_engine.models.team import Team
from match_engine.models.tournament import Stage, Tournament

__all__ = [
    "Tournament",
    "Stage",
    "Team",
    "PlayingField",
    "Match",
    "TeamAlliance",
    "RankingEntry",
    "MatchAdvancement",
]
