"""
Group - a set of matches inside a stage.

One class covers all group kinds; ``kind`` selects the league, knockout or
crossover behaviour. Derived state (completeness, standings, team ID sets,
"maybe" teams and the lookup of groups referenced by this group) is built on
first read and dropped by ``invalidate``.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from constants import (
    GROUP_TYPE_KNOCKOUT, GROUP_TYPE_LEAGUE, GROUP_TYPES,
    LEAGUE_REFERENCE_TYPE, MATCH_RESULT_LOSER, MATCH_RESULT_WINNER,
    MATCH_TYPE_SETS, MATCH_TYPES, UNKNOWN_TEAM_ID, MatchFilter, TeamFilter
)
from models.config import KnockoutConfig, LeagueConfig, SetConfig
from models.match import GroupBreak, GroupMatch
from models.standings import LeagueTable
from services.exceptions import (
    BusinessRuleError, CircularReferenceError, DuplicateError,
    NotFoundError, ValidationError
)
from services.standings_calculator import StandingsCalculator
from utils.data_validation import validate_id, validate_optional_text
from utils.team_resolution import is_reference, iter_referenced_groups

if TYPE_CHECKING:
    from models.competition import Competition

logger = logging.getLogger(__name__)


class Group:

    def __init__(self, competition: 'Competition', stage_id: str, group_id: str, kind: str, match_type: str,
                 name: Optional[str] = None, notes: Optional[str] = None,
                 description: Optional[List[str]] = None, draws_allowed: bool = False,
                 league_config: Optional[LeagueConfig] = None,
                 knockout_config: Optional[KnockoutConfig] = None,
                 set_config: Optional[SetConfig] = None):
        self.id = validate_id(group_id, 'group')
        if kind not in GROUP_TYPES:
            raise ValidationError(f'Invalid group type "{kind}"', 'type')
        if match_type not in MATCH_TYPES:
            raise ValidationError(f'Invalid match type "{match_type}"', 'matchType')

        self.competition = competition
        self.stage_id = stage_id
        self.kind = kind
        self.match_type = match_type
        self.name = validate_optional_text(name, 'group', 'name')
        self.notes = notes
        self.description = description

        # Only leagues may allow draws
        self.draws_allowed = bool(draws_allowed) if kind == GROUP_TYPE_LEAGUE else False
        self.league_config = league_config if league_config is not None else (
            LeagueConfig() if kind == GROUP_TYPE_LEAGUE else None
        )
        self.knockout_config = knockout_config
        self.set_config = set_config if set_config is not None else (
            SetConfig() if match_type == MATCH_TYPE_SETS else None
        )

        self._matches: List[Any] = []
        self._match_lookup: Dict[str, GroupMatch] = {}
        self._processing = False
        self.invalidate(structure=True)

    @property
    def label(self) -> str:
        """'STAGE:GROUP', as used in references and messages."""
        return f"{self.stage_id}:{self.id}"

    @property
    def is_league(self) -> bool:
        return self.kind == GROUP_TYPE_LEAGUE

    @classmethod
    def from_dict(cls, competition: 'Competition', stage_id: str, data: Dict[str, Any]) -> 'Group':
        """Create the group and its configuration. Matches are added by load_matches."""
        for required in ('id', 'type', 'matchType', 'matches'):
            if required not in data:
                raise ValidationError(f'Group in stage "{stage_id}" is missing field "{required}"', required)
        return cls(
            competition,
            stage_id,
            data['id'],
            data['type'],
            data['matchType'],
            name=data.get('name'),
            notes=data.get('notes'),
            description=data.get('description'),
            draws_allowed=data.get('drawsAllowed', False),
            league_config=LeagueConfig.from_dict(data['league']) if 'league' in data else None,
            knockout_config=KnockoutConfig.from_dict(data['knockout']) if 'knockout' in data else None,
            set_config=SetConfig.from_dict(data['sets']) if 'sets' in data else None,
        )

    def load_matches(self, matches_data: Sequence[Dict[str, Any]]) -> 'Group':
        for match_data in matches_data:
            entry_type = match_data.get('type')
            if entry_type == 'match':
                self.add_match(GroupMatch.from_dict(self, match_data))
            elif entry_type == 'break':
                self.add_break(GroupBreak.from_dict(match_data))
            else:
                raise ValidationError(
                    f'Group {{{self.label}}}: match entry type must be "match" or "break", got "{entry_type}"', 'type'
                )
        return self

    def to_dict(self) -> Dict[str, Any]:
        group: Dict[str, Any] = {'id': self.id}
        if self.name is not None:
            group['name'] = self.name
        if self.notes is not None:
            group['notes'] = self.notes
        if self.description is not None:
            group['description'] = list(self.description)
        group['type'] = self.kind
        if self.is_league and self.league_config is not None:
            group['league'] = self.league_config.to_dict()
        elif self.kind == GROUP_TYPE_KNOCKOUT and self.knockout_config is not None:
            group['knockout'] = self.knockout_config.to_dict()
        group['matchType'] = self.match_type
        if self.match_type == MATCH_TYPE_SETS and self.set_config is not None:
            group['sets'] = self.set_config.to_dict()
        if self.is_league:
            group['drawsAllowed'] = self.draws_allowed
        group['matches'] = [m.to_dict() for m in self._matches]
        return group

    # --- cache control ---

    def invalidate(self, structure: bool = False) -> None:
        """
        Drop derived state.

        A result change clears completeness, standings, "maybe" teams and the
        per-team match lookups. ``structure=True`` (a match was added) also
        clears the referenced-group lookup and the team ID sets.
        """
        self._complete: Optional[bool] = None
        self._table: Optional[LeagueTable] = None
        self._maybe_team_ids: Optional[List[str]] = None
        self._team_has_matches: Dict[str, bool] = {}
        self._team_has_officiating: Dict[str, bool] = {}
        if structure:
            self._stage_group_lookup: Optional[List[Tuple[str, str]]] = None
            self._team_id_sets: Optional[Dict[str, Dict[str, bool]]] = None

    # --- matches ---

    def add_match(self, match: GroupMatch) -> 'Group':
        if match.id in self._match_lookup:
            raise DuplicateError(
                'match', 'id', match.id,
                message=f'Group {{{self.label}}}: matches with duplicate IDs {{{match.id}}} not allowed'
            )

        self.competition.validate_team_id(match.home_team.id, match.id, 'homeTeam')
        self.competition.validate_team_id(match.away_team.id, match.id, 'awayTeam')

        officials_team_id = match.officials_team_id
        if officials_team_id is not None:
            if officials_team_id in (match.home_team.id, match.away_team.id):
                raise ValidationError(
                    f'Refereeing team (in match {{{match.label}}}) cannot be the same as one of the playing teams',
                    'officials'
                )
            self.competition.validate_team_id(officials_team_id, match.id, 'officials')
        if match.manager is not None and match.manager.is_team:
            self.competition.validate_team_id(match.manager.team_id, match.id, 'manager')

        match.calculate_result()

        self._matches.append(match)
        self._match_lookup[match.id] = match
        self.invalidate(structure=True)
        return self

    def add_break(self, group_break: GroupBreak) -> 'Group':
        self._matches.append(group_break)
        self._complete = None
        return self

    def has_match(self, match_id: str) -> bool:
        return match_id in self._match_lookup

    def get_match(self, match_id: str) -> GroupMatch:
        if match_id not in self._match_lookup:
            raise NotFoundError('Match', match_id, message=f'Match with ID {match_id} not found')
        return self._match_lookup[match_id]

    def _resolved_id(self, team_id: Optional[str]) -> Optional[str]:
        if team_id is None:
            return None
        return self.competition.get_team(team_id).id

    def _team_plays(self, match: GroupMatch, team_id: str) -> bool:
        return team_id in (self._resolved_id(match.home_team.id), self._resolved_id(match.away_team.id))

    def _team_officiates(self, match: GroupMatch, team_id: str) -> bool:
        return match.officials_team_id is not None and self._resolved_id(match.officials_team_id) == team_id

    def _match_selected(self, match: GroupMatch, team_id: str, flags: MatchFilter) -> bool:
        if flags & MatchFilter.PLAYING and self._team_plays(match, team_id):
            return True
        return bool(flags & MatchFilter.OFFICIATING) and self._team_officiates(match, team_id)

    def get_matches(self, team_id: Optional[str] = None, flags: MatchFilter = MatchFilter(0)) -> List[Any]:
        """
        Matches and breaks in this group.

        With a team ID, only the matches that team plays in (PLAYING) or
        officiates (OFFICIATING); breaks are left out. ALL_IN_GROUP, the
        unknown team or a reference returns everything.
        """
        if (team_id is None or flags & MatchFilter.ALL_IN_GROUP
                or team_id == UNKNOWN_TEAM_ID or is_reference(team_id)):
            return list(self._matches)
        return [
            m for m in self._matches
            if isinstance(m, GroupMatch) and self._match_selected(m, team_id, flags)
        ]

    def get_match_dates(self, team_id: Optional[str] = None, flags: MatchFilter = MatchFilter.PLAYING) -> List[str]:
        dates: Dict[str, bool] = {}
        everything = team_id is None or team_id == UNKNOWN_TEAM_ID or flags & MatchFilter.ALL
        for match in self._matches:
            if not isinstance(match, GroupMatch) or match.date is None:
                continue
            if everything or self._match_selected(match, team_id, flags):
                dates[match.date] = True
        return list(dates)

    def get_matches_on_date(self, date: str, team_id: Optional[str] = None,
                            flags: MatchFilter = MatchFilter.ALL) -> List[Any]:
        everything = team_id is None or team_id == UNKNOWN_TEAM_ID or flags & MatchFilter.ALL
        matches = []
        for match in self._matches:
            if match.date != date:
                continue
            if everything or not isinstance(match, GroupMatch) or self._match_selected(match, team_id, flags):
                matches.append(match)
        return matches

    # --- completeness ---

    def is_complete(self) -> bool:
        if self._complete is None:
            self._complete = all(m.is_complete() for m in self._matches if isinstance(m, GroupMatch))
            logger.debug(f"Group {{{self.label}}} complete: {self._complete}")
        return self._complete

    def all_teams_known(self) -> bool:
        """True when every group this group's references point into is complete."""
        return all(group.is_complete() for group in self._feeder_groups())

    # --- team IDs ---

    def _build_team_id_sets(self) -> Dict[str, Dict[str, bool]]:
        if self._team_id_sets is None:
            # dicts keep first-seen order
            sets: Dict[str, Dict[str, bool]] = {'all': {}, 'playing': {}, 'officiating': {}}
            for match in self._matches:
                if not isinstance(match, GroupMatch):
                    continue
                for team_id in (match.home_team.id, match.away_team.id):
                    sets['all'][team_id] = True
                    sets['playing'][team_id] = True
                if match.officials_team_id is not None:
                    sets['all'][match.officials_team_id] = True
                    sets['officiating'][match.officials_team_id] = True
            self._team_id_sets = sets
        return self._team_id_sets

    def _sort_by_team_name(self, team_ids: List[str]) -> List[str]:
        return sorted(team_ids, key=lambda tid: self.competition.get_team(tid).name.casefold())

    def get_team_ids(self, flags: TeamFilter = TeamFilter.FIXED_ID) -> List[str]:
        """
        Team IDs used in this group.

        PLAYING and OFFICIATING narrow the slots looked at (default: all
        slots). FIXED_ID keeps literal IDs and KNOWN keeps IDs that resolve
        to a real team, both sorted by team name. MAYBE adds the teams that
        could still arrive through references to incomplete groups. Without
        FIXED_ID, KNOWN or MAYBE the raw slot IDs are returned.
        """
        sets = self._build_team_id_sets()
        if flags & TeamFilter.ALL or not flags & (TeamFilter.PLAYING | TeamFilter.OFFICIATING):
            base = list(sets['all'])
        else:
            chosen: Dict[str, bool] = {}
            if flags & TeamFilter.PLAYING:
                chosen.update(sets['playing'])
            if flags & TeamFilter.OFFICIATING:
                chosen.update(sets['officiating'])
            base = list(chosen)

        if not flags & (TeamFilter.FIXED_ID | TeamFilter.KNOWN | TeamFilter.MAYBE):
            return base

        result: Dict[str, bool] = {}
        if flags & TeamFilter.FIXED_ID:
            result.update(dict.fromkeys(self._sort_by_team_name([t for t in base if not is_reference(t)]), True))
        if flags & TeamFilter.KNOWN:
            known = [t for t in base if self.competition.get_team(t).id != UNKNOWN_TEAM_ID]
            result.update(dict.fromkeys(self._sort_by_team_name(known), True))
        if flags & TeamFilter.MAYBE:
            result.update(dict.fromkeys(self._get_maybe_team_ids(), True))
        return list(result)

    def _build_stage_group_lookup(self) -> List[Tuple[str, str]]:
        """The distinct (stage, group) pairs mentioned by references in this group's slots."""
        if self._stage_group_lookup is None:
            seen: Dict[Tuple[str, str], bool] = {}
            for match in self._matches:
                if not isinstance(match, GroupMatch):
                    continue
                for team_id in match.slot_team_ids():
                    for pair in iter_referenced_groups(team_id):
                        seen[pair] = True
            self._stage_group_lookup = list(seen)
        return self._stage_group_lookup

    def _feeder_groups(self) -> List['Group']:
        """Other groups this group's references point into (knockout rounds referencing earlier rounds of the same group are not feeders)."""
        return [
            self.competition.get_stage(stage_id).get_group(group_id)
            for stage_id, group_id in self._build_stage_group_lookup()
            if (stage_id, group_id) != (self.stage_id, self.id)
        ]

    def _get_maybe_team_ids(self, path: Tuple[str, ...] = ()) -> List[str]:
        if self.is_complete():
            # Everything is known once the group is complete
            return []

        if self.label in path:
            raise CircularReferenceError(list(path) + [self.label])

        if self._maybe_team_ids is None:
            path = path + (self.label,)
            maybe: Dict[str, bool] = {}
            for group in self._feeder_groups():
                if group.is_complete():
                    continue
                maybe.update(dict.fromkeys(group.get_team_ids(TeamFilter.KNOWN), True))
                maybe.update(dict.fromkeys(group._get_maybe_team_ids(path), True))
            self._maybe_team_ids = list(maybe)
            logger.debug(f"Group {{{self.label}}}: {len(self._maybe_team_ids)} maybe teams")
        return self._maybe_team_ids

    def team_has_matches(self, team_id: str) -> bool:
        if team_id not in self._team_has_matches:
            self._team_has_matches[team_id] = any(
                self._team_plays(m, team_id) for m in self._matches if isinstance(m, GroupMatch)
            )
        return self._team_has_matches[team_id]

    def team_has_officiating(self, team_id: str) -> bool:
        if team_id not in self._team_has_officiating:
            self._team_has_officiating[team_id] = any(
                self._team_officiates(m, team_id) for m in self._matches if isinstance(m, GroupMatch)
            )
        return self._team_has_officiating[team_id]

    def team_may_have_matches(self, team_id: str, _path: Tuple[str, ...] = ()) -> bool:
        """Whether the team could still end up playing here through an undecided reference."""
        if self.is_complete():
            return False
        if self.competition.get_team(team_id).id == UNKNOWN_TEAM_ID:
            return False
        if self.label in _path:
            raise CircularReferenceError(list(_path) + [self.label])

        path = _path + (self.label,)
        for group in self._feeder_groups():
            if not group.is_complete() and group.team_has_matches(team_id):
                return True
            if group.team_may_have_matches(team_id, path):
                return True
        return False

    # --- league standings ---

    def process_matches(self) -> None:
        """Build the league standings if they are not already cached."""
        if not self.is_league or self._table is not None:
            return
        if self._processing:
            raise CircularReferenceError([self.label, self.label])

        self._processing = True
        try:
            min_points = self.set_config.min_points if self.set_config is not None else 1
            calculator = StandingsCalculator(self.league_config, self.match_type, min_points)
            entries = calculator.calculate(self._matches, lambda tid: self.competition.get_team(tid).name)
        finally:
            self._processing = False

        self._table = LeagueTable(
            group_id=self.id,
            entries=entries,
            ordering=list(self.league_config.ordering),
            points=self.league_config.points,
            draws_allowed=self.draws_allowed,
            sets=self.match_type == MATCH_TYPE_SETS,
        )

    def get_league_table(self) -> LeagueTable:
        if not self.is_league:
            raise BusinessRuleError(f'Group {{{self.label}}} is not a league', 'league_table')
        self.process_matches()
        return self._table

    def get_knockout_standing(self) -> List[Tuple[int, Any]]:
        """Final placings of a knockout group as (position, team) pairs."""
        if self.knockout_config is None:
            return []
        return [
            (entry['position'], self.competition.get_team(entry['id']))
            for entry in self.knockout_config.standing
        ]

    # --- reference resolution ---

    def get_team(self, type_indicator: str, entity: str):
        """
        Resolve the last two parts of ``{STAGE:GROUP:TYPE:ENTITY}`` within this group.

        Raises when the answer is not (yet) available; Competition.get_team
        turns that into the unknown team.
        """
        if type_indicator == LEAGUE_REFERENCE_TYPE:
            if not self.is_league:
                raise BusinessRuleError(
                    'Invalid type "league" in team reference.  Cannot get league position from a non-league group',
                    'league_position'
                )
            self.process_matches()
            if not self.is_complete():
                raise BusinessRuleError(
                    'Cannot get the team in a league position on an incomplete league', 'league_position'
                )
            try:
                position = int(entity)
            except ValueError:
                raise ValidationError('Invalid League position: reference must be an integer', 'reference')
            if position < 1:
                raise ValidationError('Invalid League position: reference must be a positive integer', 'reference')
            if position > len(self._table.entries):
                raise ValidationError('Invalid League position: position is bigger than the number of teams', 'reference')
            return self.competition.get_team(self._table.entries[position - 1].team_id)

        match = self.get_match(type_indicator)
        if entity == MATCH_RESULT_WINNER:
            return self.competition.get_team(match.get_winner_team_id())
        if entity == MATCH_RESULT_LOSER:
            return self.competition.get_team(match.get_loser_team_id())
        raise ValidationError(f'Invalid entity "{entity}" in team reference', 'reference')
