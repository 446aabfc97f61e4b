from dataclasses import dataclass, field
from typing import Any, Dict, List

from constants import LEAGUE_POINTS_DEFAULTS, ORDERING_LABELS, SET_CONFIG_DEFAULTS
from services.exceptions import ValidationError
from utils.data_validation import validate_non_negative_int


@dataclass
class SetConfig:
    """Rules for groups whose matches are played as a best-of-N sets."""
    max_sets: int = SET_CONFIG_DEFAULTS['maxSets']
    sets_to_win: int = SET_CONFIG_DEFAULTS['setsToWin']
    clear_points: int = SET_CONFIG_DEFAULTS['clearPoints']
    min_points: int = SET_CONFIG_DEFAULTS['minPoints']
    points_to_win: int = SET_CONFIG_DEFAULTS['pointsToWin']
    last_set_points_to_win: int = SET_CONFIG_DEFAULTS['lastSetPointsToWin']
    max_points: int = SET_CONFIG_DEFAULTS['maxPoints']
    last_set_max_points: int = SET_CONFIG_DEFAULTS['lastSetMaxPoints']

    _KEYS = {
        'maxSets': 'max_sets',
        'setsToWin': 'sets_to_win',
        'clearPoints': 'clear_points',
        'minPoints': 'min_points',
        'pointsToWin': 'points_to_win',
        'lastSetPointsToWin': 'last_set_points_to_win',
        'maxPoints': 'max_points',
        'lastSetMaxPoints': 'last_set_max_points',
    }

    def __post_init__(self):
        for key, attr in self._KEYS.items():
            validate_non_negative_int(getattr(self, attr), key)
        if self.max_sets < 1:
            raise ValidationError('Invalid maxSets: must be at least 1', 'maxSets')
        if self.sets_to_win < 1 or self.sets_to_win > self.max_sets:
            raise ValidationError('Invalid setsToWin: must be between 1 and maxSets', 'setsToWin')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SetConfig':
        return cls(**{attr: data[key] for key, attr in cls._KEYS.items() if key in data})

    def to_dict(self) -> Dict[str, int]:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items()}


@dataclass
class LeagueConfigPoints:
    """League points awarded for each kind of result."""
    played: int = LEAGUE_POINTS_DEFAULTS['played']
    per_set: int = LEAGUE_POINTS_DEFAULTS['perSet']
    win: int = LEAGUE_POINTS_DEFAULTS['win']
    win_by_one: int = LEAGUE_POINTS_DEFAULTS['winByOne']
    lose: int = LEAGUE_POINTS_DEFAULTS['lose']
    lose_by_one: int = LEAGUE_POINTS_DEFAULTS['loseByOne']
    forfeit: int = LEAGUE_POINTS_DEFAULTS['forfeit']

    _KEYS = {
        'played': 'played',
        'perSet': 'per_set',
        'win': 'win',
        'winByOne': 'win_by_one',
        'lose': 'lose',
        'loseByOne': 'lose_by_one',
        'forfeit': 'forfeit',
    }

    def __post_init__(self):
        for key, attr in self._KEYS.items():
            validate_non_negative_int(getattr(self, attr), key)

    def get(self, key: str) -> int:
        """Value by its document key, e.g. 'winByOne'."""
        return getattr(self, self._KEYS[key])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LeagueConfigPoints':
        return cls(**{attr: data[key] for key, attr in cls._KEYS.items() if key in data})

    def to_dict(self) -> Dict[str, int]:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items()}


@dataclass
class LeagueConfig:
    ordering: List[str] = field(default_factory=lambda: ['PTS', 'PD'])
    points: LeagueConfigPoints = field(default_factory=LeagueConfigPoints)

    def __post_init__(self):
        for criterion in self.ordering:
            if criterion not in ORDERING_LABELS:
                raise ValidationError(f'Invalid league ordering criterion "{criterion}"', 'ordering')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LeagueConfig':
        return cls(
            ordering=list(data.get('ordering', [])),
            points=LeagueConfigPoints.from_dict(data.get('points', {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'ordering': list(self.ordering), 'points': self.points.to_dict()}


@dataclass
class KnockoutConfig:
    """Final placings of a knockout group, each position given as a team reference."""
    standing: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KnockoutConfig':
        return cls(standing=[dict(s) for s in data.get('standing', [])])

    def to_dict(self) -> Dict[str, Any]:
        return {'standing': [dict(s) for s in self.standing]}
