from dataclasses import dataclass, field
from typing import Any, Dict, List

from utils.standings import ordering_text, scoring_text


# --- Dataclass for one line of a league table ---
@dataclass
class StandingsEntry:
    team_id: str
    name: str
    played: int = 0; wins: int = 0; losses: int = 0; draws: int = 0
    points_for: int = 0; points_against: int = 0; points_difference: int = 0
    sets_for: int = 0; sets_against: int = 0; sets_difference: int = 0
    bonus_points: int = 0; penalty_points: int = 0
    points: int = 0
    h2h: Dict[str, int] = field(default_factory=dict)  # opponent team ID -> wins minus losses

    def to_dict(self) -> Dict[str, Any]:
        return {
            'teamID': self.team_id,
            'name': self.name,
            'played': self.played,
            'wins': self.wins,
            'losses': self.losses,
            'draws': self.draws,
            'pf': self.points_for,
            'pa': self.points_against,
            'pd': self.points_difference,
            'sf': self.sets_for,
            'sa': self.sets_against,
            'sd': self.sets_difference,
            'bp': self.bonus_points,
            'pp': self.penalty_points,
            'pts': self.points,
            'h2h': dict(self.h2h),
        }


@dataclass
class LeagueTable:
    """Sorted standings of a league group plus the rules used to build them."""
    group_id: str
    entries: List[StandingsEntry]
    ordering: List[str]
    points: Any  # LeagueConfigPoints
    draws_allowed: bool = False
    sets: bool = False

    def has_draws(self) -> bool:
        return self.draws_allowed

    def has_sets(self) -> bool:
        return self.sets

    @property
    def ordering_text(self) -> str:
        return ordering_text(self.ordering)

    @property
    def scoring_text(self) -> str:
        return scoring_text(self.points)

    def position_of(self, team_id: str) -> int:
        """1-based position of a team, 0 if it is not in the table."""
        for i, entry in enumerate(self.entries):
            if entry.team_id == team_id:
                return i + 1
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'groupID': self.group_id,
            'entries': [e.to_dict() for e in self.entries],
            'orderingText': self.ordering_text,
            'scoringText': self.scoring_text,
            'hasDraws': self.has_draws(),
            'hasSets': self.has_sets(),
        }
