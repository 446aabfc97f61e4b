import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from constants import DEFAULT_MATCH_DATE, DEFAULT_MATCH_START, MatchFilter, TeamFilter
from models.group import Group
from models.match import GroupBreak, GroupMatch
from services.exceptions import DuplicateError, NotFoundError, ValidationError
from utils.data_validation import validate_id, validate_optional_text
from utils.team_resolution import is_reference

if TYPE_CHECKING:
    from models.competition import Competition

logger = logging.getLogger(__name__)


def _schedule_key(match) -> str:
    date = match.date if match.date is not None else DEFAULT_MATCH_DATE
    start = match.start if match.start is not None else DEFAULT_MATCH_START
    return f"{date}{start}"


class IfUnknown:
    """
    Placeholder schedule shown for a stage while its teams are not known.

    Team IDs in these matches are free text and are never resolved.
    """

    match_type = None
    set_config = None
    draws_allowed = True

    def __init__(self, stage_id: str, description: List[str]):
        if not description:
            raise ValidationError('Invalid ifUnknown description: must contain at least one line', 'description')
        self.stage_id = stage_id
        self.description = list(description)
        self._matches: List[Any] = []
        self._match_lookup: Dict[str, GroupMatch] = {}

    @property
    def id(self) -> str:
        return 'unknown'

    @property
    def label(self) -> str:
        return f"{self.stage_id}:{self.id}"

    @classmethod
    def from_dict(cls, stage_id: str, data: Dict[str, Any]) -> 'IfUnknown':
        if_unknown = cls(stage_id, data.get('description', []))
        for match_data in data.get('matches', []):
            if match_data.get('type') == 'match':
                match = GroupMatch.from_dict(if_unknown, match_data)
                match.complete = False
                if_unknown.add_match(match)
            elif match_data.get('type') == 'break':
                if_unknown.add_break(GroupBreak.from_dict(match_data))
        return if_unknown

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': list(self.description),
            'matches': [m.to_dict() for m in self._matches],
        }

    def invalidate(self, structure: bool = False) -> None:
        """Nothing is derived from placeholder matches."""

    def add_match(self, match: GroupMatch) -> 'IfUnknown':
        if match.id in self._match_lookup:
            raise DuplicateError(
                'match', 'id', match.id,
                message=f'Group {{{self.label}}}: matches with duplicate IDs {{{match.id}}} not allowed'
            )
        self._matches.append(match)
        self._match_lookup[match.id] = match
        return self

    def add_break(self, group_break: GroupBreak) -> 'IfUnknown':
        self._matches.append(group_break)
        return self

    def get_matches(self) -> List[Any]:
        return list(self._matches)

    def has_match(self, match_id: str) -> bool:
        return match_id in self._match_lookup


class Stage:
    """An ordered list of groups played at the same point in the competition."""

    def __init__(self, competition: 'Competition', stage_id: str, name: Optional[str] = None,
                 notes: Optional[str] = None, description: Optional[List[str]] = None):
        self.id = validate_id(stage_id, 'stage')
        self.competition = competition
        self.name = validate_optional_text(name, 'stage', 'name')
        self.notes = notes
        self.description = description
        self.if_unknown: Optional[IfUnknown] = None
        self._groups: List[Group] = []
        self._group_lookup: Dict[str, Group] = {}

    def to_dict(self) -> Dict[str, Any]:
        stage: Dict[str, Any] = {'id': self.id}
        if self.name is not None:
            stage['name'] = self.name
        if self.notes is not None:
            stage['notes'] = self.notes
        if self.description is not None:
            stage['description'] = list(self.description)
        stage['groups'] = [g.to_dict() for g in self._groups]
        if self.if_unknown is not None:
            stage['ifUnknown'] = self.if_unknown.to_dict()
        return stage

    # --- groups ---

    def add_group(self, group: Group) -> 'Stage':
        if group.stage_id != self.id:
            raise ValidationError('Group was initialised with a different Stage', 'stage')
        if group.id in self._group_lookup:
            raise DuplicateError(
                'group', 'id', group.id,
                message=f'Groups in a Stage with duplicate IDs not allowed: {{{self.id}:{group.id}}}'
            )
        self._groups.append(group)
        self._group_lookup[group.id] = group
        return self

    def remove_group(self, group_id: str) -> None:
        group = self.get_group(group_id)
        self._groups.remove(group)
        del self._group_lookup[group_id]

    def get_groups(self) -> List[Group]:
        return list(self._groups)

    def has_group(self, group_id: str) -> bool:
        return group_id in self._group_lookup

    def get_group(self, group_id: str) -> Group:
        if group_id not in self._group_lookup:
            raise NotFoundError(
                'Group', group_id,
                message=f'Group with ID {group_id} not found in stage with ID {self.id}'
            )
        return self._group_lookup[group_id]

    def check_team_overlap(self) -> None:
        """Sibling groups may not share a playing team ID."""
        for i, group in enumerate(self._groups[:-1]):
            these_ids = group.get_team_ids(TeamFilter.PLAYING)
            for other in self._groups[i + 1:]:
                those_ids = other.get_team_ids(TeamFilter.PLAYING)
                shared = [t for t in these_ids if t in those_ids]
                if shared:
                    joined = '", "'.join(shared)
                    raise ValidationError(
                        f'Groups in the same stage cannot contain the same team. Groups '
                        f'{{{self.id}:{group.id}}} and {{{self.id}:{other.id}}} both contain '
                        f'the following team IDs: "{joined}"',
                        'groups'
                    )

    # --- aggregated queries ---

    def is_complete(self) -> bool:
        return all(group.is_complete() for group in self._groups)

    def get_team_ids(self, flags: TeamFilter = TeamFilter.FIXED_ID) -> List[str]:
        team_ids: Dict[str, bool] = {}
        for group in self._groups:
            team_ids.update(dict.fromkeys(group.get_team_ids(flags), True))
        return list(team_ids)

    def get_matches(self, team_id: Optional[str] = None, flags: MatchFilter = MatchFilter(0)) -> List[Any]:
        """
        Matches (and breaks) across all groups, sorted by date then start time.

        With a team ID only that team's matches are returned; see
        Group.get_matches for the flag meanings.
        """
        matches: List[Any] = []
        if team_id is None or team_id == self.competition.unknown_team.id or is_reference(team_id):
            for group in self._groups:
                matches.extend(group.get_matches())
        else:
            for group in self._groups:
                if group.team_has_matches(team_id):
                    matches.extend(group.get_matches(team_id, flags))
                elif flags & MatchFilter.OFFICIATING and group.team_has_officiating(team_id):
                    matches.extend(group.get_matches(team_id, MatchFilter.OFFICIATING))
        return sorted(matches, key=_schedule_key)

    def get_match_dates(self, team_id: Optional[str] = None, flags: MatchFilter = MatchFilter.PLAYING) -> List[str]:
        dates: Dict[str, bool] = {}
        for group in self._groups:
            dates.update(dict.fromkeys(group.get_match_dates(team_id, flags), True))
        return sorted(dates)

    def get_matches_on_date(self, date: str, team_id: Optional[str] = None,
                            flags: MatchFilter = MatchFilter.ALL) -> List[Any]:
        matches: List[Any] = []
        for group in self._groups:
            matches.extend(group.get_matches_on_date(date, team_id, flags))
        return sorted(matches, key=lambda m: m.start if m.start is not None else DEFAULT_MATCH_START)

    def team_has_matches(self, team_id: str) -> bool:
        return any(group.team_has_matches(team_id) for group in self._groups)

    def team_has_officiating(self, team_id: str) -> bool:
        return any(group.team_has_officiating(team_id) for group in self._groups)

    def team_may_have_matches(self, team_id: str) -> bool:
        if self.is_complete():
            return False
        return any(group.team_may_have_matches(team_id) for group in self._groups)

    def invalidate(self) -> None:
        for group in self._groups:
            group.invalidate()
