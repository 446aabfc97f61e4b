"""
Matches and breaks held by a group.

A GroupMatch belongs to an owner (a Group or a stage's IfUnknown block). The
owner supplies the match type, set rules and whether draws are allowed, and is
told to drop its caches whenever a result changes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constants import (
    MATCH_TYPE_CONTINUOUS, MATCH_TYPE_SETS,
    OFFICIAL_PERSON_ROLES, OFFICIAL_PERSON_LIST_ROLES
)
from services.exceptions import MatchResultError, ServiceError, ValidationError
from utils.data_validation import (
    validate_date, validate_duration, validate_id, validate_name,
    validate_optional_text, validate_time
)

logger = logging.getLogger(__name__)


@dataclass
class MatchTeam:
    id: str
    scores: List[int] = field(default_factory=list)
    forfeit: bool = False
    bonus_points: int = 0
    penalty_points: int = 0
    notes: str | None = None
    players: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatchTeam':
        if 'id' not in data:
            raise ValidationError('Match team is missing field "id"', 'id')
        return cls(
            id=data['id'],
            scores=list(data.get('scores', [])),
            forfeit=data.get('forfeit', False),
            bonus_points=data.get('bonusPoints', 0),
            penalty_points=data.get('penaltyPoints', 0),
            notes=data.get('notes'),
            players=list(data.get('players', [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        team: Dict[str, Any] = {'id': self.id, 'scores': list(self.scores)}
        if self.forfeit:
            team['forfeit'] = True
        if self.bonus_points:
            team['bonusPoints'] = self.bonus_points
        if self.penalty_points:
            team['penaltyPoints'] = self.penalty_points
        if self.notes is not None:
            team['notes'] = self.notes
        if self.players:
            team['players'] = list(self.players)
        return team


class MatchOfficials:
    """Officials are either a team or a set of named people."""

    def __init__(self, team_id: Optional[str] = None, persons: Optional[Dict[str, Any]] = None):
        if team_id is None and not persons:
            raise ValidationError('Match officials must be either a team or a list of people', 'officials')
        if team_id is not None and persons:
            raise ValidationError('Match officials cannot be both a team and a list of people', 'officials')
        if persons is not None and team_id is None and 'first' not in persons:
            raise ValidationError('Match officials must include the first referee', 'officials')
        self.team_id = team_id
        self.persons = dict(persons) if persons else {}

    @property
    def is_team(self) -> bool:
        return self.team_id is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatchOfficials':
        if 'team' in data:
            return cls(team_id=data['team'])
        persons = {k: data[k] for k in OFFICIAL_PERSON_ROLES + OFFICIAL_PERSON_LIST_ROLES if k in data}
        return cls(persons=persons)

    def to_dict(self) -> Dict[str, Any]:
        if self.is_team:
            return {'team': self.team_id}
        officials = {}
        for role in OFFICIAL_PERSON_ROLES + OFFICIAL_PERSON_LIST_ROLES:
            if role in self.persons:
                officials[role] = self.persons[role]
        return officials


class MatchManager:
    def __init__(self, team_id: Optional[str] = None, name: Optional[str] = None):
        if team_id is None and name is None:
            raise ValidationError('Match managers must be either a team or a person', 'manager')
        if name is not None:
            validate_name(name, 'manager')
        self.team_id = team_id
        self.name = name

    @property
    def is_team(self) -> bool:
        return self.team_id is not None

    @classmethod
    def from_dict(cls, data) -> 'MatchManager':
        if isinstance(data, dict) and 'team' in data:
            return cls(team_id=data['team'])
        return cls(name=data)

    def to_dict(self):
        if self.is_team:
            return {'team': self.team_id}
        return self.name


class GroupBreak:
    """A scheduled gap between matches, e.g. lunch."""

    def __init__(self, start: Optional[str] = None, date: Optional[str] = None,
                 duration: Optional[str] = None, name: Optional[str] = None):
        self.start = validate_time(start, 'start') if start is not None else None
        self.date = validate_date(date) if date is not None else None
        self.duration = validate_duration(duration) if duration is not None else None
        self.name = validate_optional_text(name, 'break', 'name')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GroupBreak':
        return cls(
            start=data.get('start'),
            date=data.get('date'),
            duration=data.get('duration'),
            name=data.get('name'),
        )

    def to_dict(self) -> Dict[str, Any]:
        group_break: Dict[str, Any] = {'type': 'break'}
        if self.start is not None:
            group_break['start'] = self.start
        if self.date is not None:
            group_break['date'] = self.date
        if self.duration is not None:
            group_break['duration'] = self.duration
        if self.name is not None:
            group_break['name'] = self.name
        return group_break


class GroupMatch:
    """
    A match between two team slots.

    Each slot holds a literal team ID or a team reference. The result
    (winner, loser or draw, and sets won for set-based groups) is derived
    from the scores whenever they change.
    """

    def __init__(self, group, match_id: str, home_team: MatchTeam, away_team: MatchTeam,
                 complete: Optional[bool] = None, court: Optional[str] = None,
                 venue: Optional[str] = None, date: Optional[str] = None,
                 warmup: Optional[str] = None, start: Optional[str] = None,
                 duration: Optional[str] = None, officials: Optional[MatchOfficials] = None,
                 mvp: Optional[str] = None, manager: Optional[MatchManager] = None,
                 notes: Optional[str] = None, friendly: bool = False):
        self.group = group
        self.id = validate_id(match_id, 'match')
        self.home_team = home_team
        self.away_team = away_team
        self.complete = complete
        self.court = validate_optional_text(court, 'match', 'court')
        self.venue = validate_optional_text(venue, 'match', 'venue')
        self.date = validate_date(date) if date is not None else None
        self.warmup = validate_time(warmup, 'warmup') if warmup is not None else None
        self.start = validate_time(start, 'start') if start is not None else None
        self.duration = validate_duration(duration) if duration is not None else None
        self.officials = officials
        self.mvp = mvp
        self.manager = manager
        self.notes = notes
        self.friendly = friendly

        self._is_complete = bool(complete)
        self._is_draw = False
        self._winner_team_id: Optional[str] = None
        self._loser_team_id: Optional[str] = None
        self._home_sets = 0
        self._away_sets = 0

    @property
    def label(self) -> str:
        """Fully qualified ID as used in messages, e.g. 'L:RL:RLM1'."""
        return f"{self.group.label}:{self.id}"

    @classmethod
    def from_dict(cls, group, data: Dict[str, Any]) -> 'GroupMatch':
        match_id = data.get('id')
        if match_id is None:
            raise ValidationError(f'Group {{{group.label}}}: match is missing field "id"', 'id')
        if 'complete' not in data and group.match_type == MATCH_TYPE_CONTINUOUS:
            raise ValidationError(
                f'Group {{{group.label}}}, match ID {{{match_id}}}, missing field "complete"', 'complete'
            )
        for side in ('homeTeam', 'awayTeam'):
            if side not in data:
                raise ValidationError(f'Group {{{group.label}}}, match ID {{{match_id}}}, missing field "{side}"', side)

        return cls(
            group,
            match_id,
            MatchTeam.from_dict(data['homeTeam']),
            MatchTeam.from_dict(data['awayTeam']),
            complete=data.get('complete'),
            court=data.get('court'),
            venue=data.get('venue'),
            date=data.get('date'),
            warmup=data.get('warmup'),
            start=data.get('start'),
            duration=data.get('duration'),
            officials=MatchOfficials.from_dict(data['officials']) if 'officials' in data else None,
            mvp=data.get('mvp'),
            manager=MatchManager.from_dict(data['manager']) if 'manager' in data else None,
            notes=data.get('notes'),
            friendly=data.get('friendly', False),
        )

    def to_dict(self) -> Dict[str, Any]:
        match: Dict[str, Any] = {'id': self.id}
        if self.court is not None:
            match['court'] = self.court
        if self.venue is not None:
            match['venue'] = self.venue
        match['type'] = 'match'
        if self.date is not None:
            match['date'] = self.date
        if self.warmup is not None:
            match['warmup'] = self.warmup
        if self.start is not None:
            match['start'] = self.start
        if self.duration is not None:
            match['duration'] = self.duration
        if self.complete is not None:
            match['complete'] = self.complete
        match['homeTeam'] = self.home_team.to_dict()
        match['awayTeam'] = self.away_team.to_dict()
        if self.officials is not None:
            match['officials'] = self.officials.to_dict()
        if self.mvp is not None:
            match['mvp'] = self.mvp
        if self.manager is not None:
            match['manager'] = self.manager.to_dict()
        if self.notes is not None:
            match['notes'] = self.notes
        if self.friendly:
            match['friendly'] = True
        return match

    # --- team slots ---

    @property
    def officials_team_id(self) -> Optional[str]:
        if self.officials is not None and self.officials.is_team:
            return self.officials.team_id
        return None

    def slot_team_ids(self) -> List[str]:
        """Home, away and (when officiated by a team) officials team IDs."""
        ids = [self.home_team.id, self.away_team.id]
        if self.officials_team_id is not None:
            ids.append(self.officials_team_id)
        return ids

    # --- result ---

    def is_complete(self) -> bool:
        return self._is_complete

    def is_draw(self) -> bool:
        return self._is_draw

    @property
    def home_sets(self) -> int:
        return self._home_sets

    @property
    def away_sets(self) -> int:
        return self._away_sets

    def get_winner_team_id(self) -> str:
        if not self._is_complete:
            raise MatchResultError('Match incomplete, there is no winner')
        if self._is_draw:
            raise MatchResultError('Match drawn, there is no winner')
        return self._winner_team_id

    def get_loser_team_id(self) -> str:
        if not self._is_complete:
            raise MatchResultError('Match incomplete, there is no loser')
        if self._is_draw:
            raise MatchResultError('Match drawn, there is no loser')
        return self._loser_team_id

    def set_scores(self, home_scores: List[int], away_scores: List[int], complete: Optional[bool] = None) -> 'GroupMatch':
        """Record new scores and recompute the result, dropping the group's derived state."""
        if self.group.match_type == MATCH_TYPE_CONTINUOUS:
            if complete is None:
                raise ValidationError('Invalid score: match type is continuous, but the match completeness is not set', 'complete')
            self.assert_continuous_scores_valid(home_scores, away_scores, self.group.draws_allowed)
        else:
            self.assert_set_scores_valid(home_scores, away_scores, self.group.set_config)
            if self.duration is not None and complete is None:
                raise ValidationError(
                    'Invalid results: match type is sets and match has a duration, but the match completeness is not set',
                    'complete'
                )

        new_complete = self.complete if complete is None else complete
        self._apply_result(new_complete, list(home_scores), list(away_scores))
        logger.debug(f"Scores updated for match {{{self.label}}}")
        return self

    def set_complete(self, complete: bool) -> 'GroupMatch':
        self._apply_result(complete, self.home_team.scores, self.away_team.scores)
        return self

    def _apply_result(self, complete: Optional[bool], home_scores: List[int], away_scores: List[int]) -> None:
        """Commit completeness and scores, rolling back if the result cannot be calculated."""
        previous = (self.complete, self.home_team.scores, self.away_team.scores)
        self.complete = complete
        self.home_team.scores = home_scores
        self.away_team.scores = away_scores
        try:
            self.calculate_result()
        except ServiceError:
            self.complete, self.home_team.scores, self.away_team.scores = previous
            self.calculate_result()
            raise
        finally:
            self.group.invalidate()

    def calculate_result(self) -> None:
        home_scores = self.home_team.scores
        away_scores = self.away_team.scores
        if len(home_scores) != len(away_scores):
            raise ValidationError(f'Invalid match information for match {self.id}: team scores have different length', 'scores')

        self._is_complete = bool(self.complete)
        self._is_draw = False
        self._winner_team_id = None
        self._loser_team_id = None

        if self.group.match_type == MATCH_TYPE_CONTINUOUS:
            self._calculate_continuous_result()
        else:
            if len(home_scores) > self.group.set_config.max_sets:
                raise ValidationError(
                    f'Invalid match information (in match {{{self.label}}}): team scores have more sets than the maximum allowed length',
                    'scores'
                )
            self._calculate_sets_result()

    def _set_winner(self, home_won: bool) -> None:
        if home_won:
            self._winner_team_id, self._loser_team_id = self.home_team.id, self.away_team.id
        else:
            self._winner_team_id, self._loser_team_id = self.away_team.id, self.home_team.id

    def _draw_or_raise(self) -> None:
        if self.group.draws_allowed:
            self._is_draw = True
        else:
            raise ValidationError(
                f'Invalid match information (in match {{{self.label}}}): scores show a draw but draws are not allowed',
                'scores'
            )

    def _calculate_continuous_result(self) -> None:
        home_scores = self.home_team.scores
        away_scores = self.away_team.scores
        if len(home_scores) == 0:
            return
        # 0-0 is an unplayed match unless it has been marked complete
        if home_scores[0] + away_scores[0] == 0 and not self._is_complete:
            return

        if self._is_complete:
            if home_scores[0] > away_scores[0]:
                self._set_winner(True)
            elif home_scores[0] < away_scores[0]:
                self._set_winner(False)
            else:
                self._draw_or_raise()

    def _calculate_sets_result(self) -> None:
        set_config = self.group.set_config
        home_scores = self.home_team.scores
        away_scores = self.away_team.scores
        self.assert_set_scores_valid(home_scores, away_scores, set_config)

        self._home_sets = 0
        self._away_sets = 0
        for set_number, (home, away) in enumerate(zip(home_scores, away_scores)):
            if home < set_config.min_points and away < set_config.min_points:
                continue
            if self._is_complete or self.is_set_complete(set_number, home, away, set_config):
                if home > away:
                    self._home_sets += 1
                elif home < away:
                    self._away_sets += 1

        if self.duration is None and (
            self._home_sets + self._away_sets == set_config.max_sets
            or self._home_sets >= set_config.sets_to_win
            or self._away_sets >= set_config.sets_to_win
        ):
            self._is_complete = True

        if self._is_complete:
            if self._home_sets > self._away_sets:
                self._set_winner(True)
            elif self._home_sets < self._away_sets:
                self._set_winner(False)
            else:
                self._draw_or_raise()

    # --- score rules ---

    @staticmethod
    def assert_continuous_scores_valid(home_scores: List[int], away_scores: List[int], draws_allowed: bool) -> None:
        if len(home_scores) != len(away_scores):
            raise ValidationError('Invalid results: score arrays are different lengths', 'scores')
        if len(home_scores) > 1:
            raise ValidationError('Invalid results: match type is continuous, but score length is greater than one', 'scores')
        if home_scores and not draws_allowed and home_scores[0] == away_scores[0] and home_scores[0] != 0:
            raise ValidationError('Invalid score: draws not allowed in this group', 'scores')

    @staticmethod
    def assert_set_scores_valid(home_scores: List[int], away_scores: List[int], set_config) -> None:
        if len(home_scores) != len(away_scores):
            raise ValidationError('Invalid set scores: score arrays are different lengths', 'scores')
        if len(home_scores) > set_config.max_sets:
            raise ValidationError('Invalid set scores: score arrays are longer than the maximum number of sets allowed', 'scores')

        seen_incomplete_set = False
        for set_number, (home, away) in enumerate(zip(home_scores, away_scores)):
            if seen_incomplete_set and (home != 0 or away != 0):
                raise ValidationError(
                    'Invalid set scores: data contains non-zero scores for a set after an incomplete set', 'scores'
                )

            clear_by = abs(home - away)
            if set_number == set_config.max_sets - 1:
                if clear_by > set_config.clear_points and min(home, away) > set_config.last_set_points_to_win:
                    side = 'home' if home > away else 'away'
                    raise ValidationError(
                        f'Invalid set scores: value for set score at index {set_number} shows {side} team '
                        f'scoring more points than necessary to win the set',
                        'scores'
                    )
            elif not GroupMatch._is_mid_set_complete(home, away, set_config):
                seen_incomplete_set = True

    @staticmethod
    def is_set_complete(set_number: int, home: int, away: int, set_config) -> bool:
        if set_number == set_config.max_sets - 1:
            return GroupMatch._is_decider_set_complete(home, away, set_config)
        return GroupMatch._is_mid_set_complete(home, away, set_config)

    @staticmethod
    def _is_mid_set_complete(home: int, away: int, set_config) -> bool:
        has_enough_points = home >= set_config.points_to_win or away >= set_config.points_to_win
        is_clear = abs(home - away) >= set_config.clear_points
        hit_maximum = home == set_config.max_points or away == set_config.max_points
        return (has_enough_points and is_clear) or hit_maximum

    @staticmethod
    def _is_decider_set_complete(home: int, away: int, set_config) -> bool:
        has_enough_points = home >= set_config.last_set_points_to_win or away >= set_config.last_set_points_to_win
        is_clear = abs(home - away) >= set_config.clear_points
        hit_maximum = home == set_config.last_set_max_points or away == set_config.last_set_max_points
        return (has_enough_points and is_clear) or hit_maximum
