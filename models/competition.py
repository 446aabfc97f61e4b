"""
Competition - the root of the object graph.

Owns the team, club, player and stage registries and is the single entry
point for turning a team reference into a team (``get_team``). Groups and
stages hold only IDs of their parents and look each other up through here.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from constants import MATCH_RESULTS, SUPPORTED_VERSIONS, TeamFilter
from models.match import GroupMatch
from models.stage import Stage
from models.team import Club, CompetitionTeam, Player, make_unknown_team
from services.exceptions import (
    BusinessRuleError, DuplicateError, NotFoundError,
    ReferenceSyntaxError, ServiceError, ValidationError
)
from utils.data_validation import validate_metadata, validate_name
from utils.team_resolution import (
    LeaguePositionRef, Literal, MatchRef, Reference, Ternary,
    format_reference, is_reference, iter_referenced_groups, parse_reference
)

logger = logging.getLogger(__name__)


class Competition:

    def __init__(self, name: str, version: str = '1.0.0', notes: Optional[str] = None):
        if version not in SUPPORTED_VERSIONS:
            raise ValidationError(f'Document version {version} not supported', 'version')
        self.version = version
        self.name = validate_name(name, 'competition')
        self.notes = notes
        self.unknown_team = make_unknown_team()
        self.metadata: List[Dict[str, str]] = []

        self._teams: Dict[str, CompetitionTeam] = {}
        self._clubs: Dict[str, Club] = {}
        self._players: Dict[str, Player] = {}
        self._stages: List[Stage] = []
        self._stage_lookup: Dict[str, Stage] = {}

    def to_dict(self) -> Dict[str, Any]:
        competition: Dict[str, Any] = {'version': self.version, 'name': self.name}
        if self.notes is not None:
            competition['notes'] = self.notes
        if self.metadata:
            competition['metadata'] = [dict(m) for m in self.metadata]
        if self._clubs:
            competition['clubs'] = [c.to_dict() for c in self._clubs.values()]
        competition['teams'] = [t.to_dict() for t in self._teams.values()]
        if self._players:
            competition['players'] = [p.to_dict() for p in self._players.values()]
        competition['stages'] = [s.to_dict() for s in self._stages]
        return competition

    # --- metadata ---

    def add_metadata(self, key: str, value: str) -> 'Competition':
        validate_metadata(key, value)
        self.metadata.append({'key': key, 'value': value})
        return self

    def has_metadata(self, key: str, value: Optional[str] = None) -> bool:
        return any(m['key'] == key and (value is None or m['value'] == value) for m in self.metadata)

    def get_metadata(self, key: str) -> List[str]:
        return [m['value'] for m in self.metadata if m['key'] == key]

    def delete_metadata(self, key: str, value: Optional[str] = None) -> 'Competition':
        self.metadata = [m for m in self.metadata if not (m['key'] == key and (value is None or m['value'] == value))]
        return self

    # --- clubs ---

    def add_club(self, club: Club) -> 'Competition':
        if club.id in self._clubs:
            raise DuplicateError('club', 'id', club.id, message=f'Club with ID "{club.id}" already exists in the competition')
        self._clubs[club.id] = club
        return self

    def has_club(self, club_id: str) -> bool:
        return club_id in self._clubs

    def get_club(self, club_id: str) -> Club:
        if club_id not in self._clubs:
            raise NotFoundError('Club', club_id)
        return self._clubs[club_id]

    def get_clubs(self) -> List[Club]:
        return list(self._clubs.values())

    def get_club_teams(self, club_id: str) -> List[CompetitionTeam]:
        return [t for t in self._teams.values() if t.club_id == club_id]

    def delete_club(self, club_id: str) -> 'Competition':
        self.get_club(club_id)
        teams = self.get_club_teams(club_id)
        if teams:
            ids = ', '.join(f'{{{t.id}}}' for t in teams)
            raise BusinessRuleError(f'Club still contains teams with IDs: {ids}', 'club_in_use')
        del self._clubs[club_id]
        logger.info(f"Deleted club {club_id}")
        return self

    # --- teams ---

    def add_team(self, team: CompetitionTeam) -> 'Competition':
        if team.id in self._teams:
            raise DuplicateError('team', 'id', team.id, message=f'Team with ID "{team.id}" already exists in the competition')
        if team.club_id is not None and team.club_id not in self._clubs:
            raise ValidationError(f'Team "{team.id}" belongs to club "{team.club_id}" which does not exist', 'club')
        self._teams[team.id] = team
        return self

    def has_team(self, team_id: str) -> bool:
        """Only literal team IDs are ever 'in' the competition; references are not."""
        return team_id in self._teams

    def get_teams(self) -> List[CompetitionTeam]:
        return list(self._teams.values())

    def delete_team(self, team_id: str) -> 'Competition':
        if team_id not in self._teams:
            raise NotFoundError('Team', team_id)

        matches = [label for label, slot_id in self._iter_match_slots() if self._slot_names_team(slot_id, team_id)]
        if matches:
            ids = ', '.join(f'{{{label}}}' for label in dict.fromkeys(matches))
            raise BusinessRuleError(f'Team still has matches with IDs: {ids}', 'team_in_use')

        for player in self._players.values():
            if player.team_id == team_id:
                player.team_id = None
        del self._teams[team_id]
        logger.info(f"Deleted team {team_id}")
        return self

    # --- players ---

    def add_player(self, player: Player) -> 'Competition':
        if player.id in self._players:
            raise DuplicateError('player', 'id', player.id, message=f'Player with ID "{player.id}" already exists in the competition')
        if player.team_id is not None and player.team_id not in self._teams:
            raise ValidationError(f'Player "{player.id}" belongs to team "{player.team_id}" which does not exist', 'team')
        self._players[player.id] = player
        return self

    def has_player(self, player_id: str) -> bool:
        return player_id in self._players

    def get_player(self, player_id: str) -> Player:
        if player_id not in self._players:
            raise NotFoundError('Player', player_id)
        return self._players[player_id]

    def get_players(self) -> List[Player]:
        return list(self._players.values())

    def delete_player(self, player_id: str) -> 'Competition':
        self.get_player(player_id)
        del self._players[player_id]
        return self

    # --- stages ---

    def add_stage(self, stage: Stage) -> 'Competition':
        if stage.competition is not self:
            raise ValidationError('Stage was initialised with a different Competition', 'stage')
        if stage.id in self._stage_lookup:
            raise DuplicateError('stage', 'id', stage.id, message=f'Stage with ID "{stage.id}" already exists in the competition')
        self._stages.append(stage)
        self._stage_lookup[stage.id] = stage
        return self

    def has_stage(self, stage_id: str) -> bool:
        return stage_id in self._stage_lookup

    def get_stage(self, stage_id: str) -> Stage:
        if stage_id not in self._stage_lookup:
            raise NotFoundError('Stage', stage_id, message=f'Stage with ID {stage_id} not found')
        return self._stage_lookup[stage_id]

    def get_stages(self) -> List[Stage]:
        return list(self._stages)

    def delete_stage(self, stage_id: str) -> 'Competition':
        """Remove a stage, refusing while any match in another stage refers into it."""
        stage = self.get_stage(stage_id)
        for label, slot_id in self._iter_match_slots():
            if label.startswith(f"{stage_id}:"):
                continue
            if any(s == stage_id for s, _ in iter_referenced_groups(slot_id)):
                raise BusinessRuleError(
                    f'Cannot delete stage with id "{stage_id}" as it is referenced in match {{{label}}}', 'stage_in_use'
                )
        self._stages.remove(stage)
        del self._stage_lookup[stage_id]
        logger.info(f"Deleted stage {stage_id}")
        return self

    def delete_group(self, stage_id: str, group_id: str) -> 'Competition':
        """Remove a group, refusing while any match outside it refers into it."""
        stage = self.get_stage(stage_id)
        stage.get_group(group_id)
        own_prefix = f"{stage_id}:{group_id}:"
        for label, slot_id in self._iter_match_slots():
            if label.startswith(own_prefix):
                continue
            if (stage_id, group_id) in set(iter_referenced_groups(slot_id)):
                raise BusinessRuleError(
                    f'Cannot delete group with id "{group_id}" as it is referenced in match {{{label}}}', 'group_in_use'
                )
        stage.remove_group(group_id)
        logger.info(f"Deleted group {stage_id}:{group_id}")
        return self

    def _iter_match_slots(self):
        """(match label, team ID) for every team slot of every match in the competition."""
        for stage in self._stages:
            for group in stage.get_groups():
                for match in group.get_matches():
                    if not isinstance(match, GroupMatch):
                        continue
                    for slot_id in match.slot_team_ids():
                        yield match.label, slot_id
                    if match.manager is not None and match.manager.is_team:
                        yield match.label, match.manager.team_id

    @staticmethod
    def _slot_names_team(slot_id: str, team_id: str) -> bool:
        if slot_id == team_id:
            return True
        if '==' not in slot_id:
            return False
        ternary = parse_reference(slot_id)
        operands = [ternary.left, ternary.right, ternary.if_true, ternary.if_false]
        return any(isinstance(o, Literal) and o.team_id == team_id for o in operands)

    # --- derived state ---

    def is_complete(self) -> bool:
        return all(stage.is_complete() for stage in self._stages)

    def get_team_ids(self, flags: TeamFilter = TeamFilter.FIXED_ID) -> List[str]:
        team_ids: Dict[str, bool] = {}
        for stage in self._stages:
            team_ids.update(dict.fromkeys(stage.get_team_ids(flags), True))
        return list(team_ids)

    def invalidate(self) -> None:
        """Drop derived state of every group, e.g. after editing several results."""
        for stage in self._stages:
            stage.invalidate()

    # --- resolution ---

    def get_team(self, team_id: Optional[str]) -> CompetitionTeam:
        """
        Resolve a literal team ID or team reference to a team.

        Never raises for a reference that cannot be answered yet (or at all);
        the unknown team is returned instead.
        """
        if not team_id:
            return self.unknown_team
        if team_id in self._teams:
            return self._teams[team_id]
        try:
            reference = parse_reference(team_id)
        except ReferenceSyntaxError as e:
            logger.debug(f"Unparseable team reference {team_id!r}: {e.message}")
            return self.unknown_team
        return self._resolve(reference)

    def _resolve(self, reference: Reference) -> CompetitionTeam:
        if isinstance(reference, Literal):
            return self._teams.get(reference.team_id, self.unknown_team)

        if isinstance(reference, Ternary):
            left = self._resolve(reference.left)
            right = self._resolve(reference.right)
            if left.id == right.id:
                return self._resolve(reference.if_true)
            return self._resolve(reference.if_false)

        type_indicator, entity = self._reference_tail(reference)
        try:
            group = self.get_stage(reference.stage_id).get_group(reference.group_id)
            return group.get_team(type_indicator, entity)
        except ServiceError as e:
            logger.debug(f"Team reference {format_reference(reference)} resolves to the unknown team: {e.message}")
            return self.unknown_team

    @staticmethod
    def _reference_tail(reference: Union[LeaguePositionRef, MatchRef]) -> Tuple[str, str]:
        if isinstance(reference, LeaguePositionRef):
            return 'league', reference.position
        return reference.match_id, reference.result

    # --- validation ---

    def validate_team_id(self, team_id: str, match_id: str, field: str) -> None:
        """
        Check a team slot value when a match is added.

        Raises ValidationError with a message naming the match and field for
        unknown literal IDs and for references to stages, groups or matches
        that do not exist.
        """
        if not is_reference(team_id) and '==' not in team_id:
            if not self.has_team(team_id):
                raise ValidationError(f'Invalid team ID for {field} in match with ID "{match_id}"', field)
            return

        try:
            reference = parse_reference(team_id)
        except ReferenceSyntaxError:
            if team_id.startswith('{') and '}' not in team_id:
                raise ValidationError(f'Invalid team reference for {field} in match with ID "{match_id}": "{team_id}"', field)
            raise

        if isinstance(reference, Ternary):
            parts = [
                ('left part', reference.left),
                ('right part', reference.right),
                ('true team', reference.if_true),
                ('false team', reference.if_false),
            ]
            for part_name, operand in parts:
                try:
                    self._validate_operand(operand)
                except ValidationError:
                    raise ValidationError(
                        f'Invalid ternary {part_name} reference for {field} in match with ID "{match_id}": '
                        f'"{format_reference(operand)}"',
                        field
                    )
            return

        self._validate_bracketed(reference)

    def validate_team_reference(self, team_ref: str) -> None:
        """Check a single bracketed reference such as '{L:RL:league:1}'."""
        reference = parse_reference(team_ref)
        if isinstance(reference, (Literal, Ternary)):
            raise ValidationError(
                f'Invalid team reference format "{team_ref}", must be "{{STAGE-ID:GROUP-ID:TYPE-INDICATOR:ENTITY-INDICATOR}}"',
                'reference'
            )
        self._validate_bracketed(reference)

    def _validate_operand(self, operand) -> None:
        if isinstance(operand, Literal):
            if not self.has_team(operand.team_id):
                raise ValidationError(f'Team with ID "{operand.team_id}" does not exist', 'team')
            return
        self._validate_bracketed(operand)

    def _validate_bracketed(self, reference: Union[LeaguePositionRef, MatchRef]) -> None:
        text = format_reference(reference)
        if not self.has_stage(reference.stage_id):
            raise ValidationError(f'Invalid Stage part: Stage with ID "{reference.stage_id}" does not exist', 'reference')
        stage = self.get_stage(reference.stage_id)
        if not stage.has_group(reference.group_id):
            raise ValidationError(
                f'Invalid Group part: Group with ID "{reference.group_id}" does not exist in stage with ID "{reference.stage_id}"',
                'reference'
            )
        group = stage.get_group(reference.group_id)

        if isinstance(reference, LeaguePositionRef):
            try:
                position = int(reference.position)
            except ValueError:
                raise ValidationError('Invalid League position: reference must be an integer', 'reference')
            if position < 1:
                raise ValidationError('Invalid League position: reference must be a positive integer', 'reference')
            if group.is_complete() and len(group.get_team_ids(TeamFilter.KNOWN)) < position:
                raise ValidationError('Invalid League position: position is bigger than the number of teams', 'reference')
            return

        if not group.has_match(reference.match_id):
            raise ValidationError(
                f'Invalid Match part in reference {text} : Match with ID "{reference.match_id}" does not exist '
                f'in stage:group with IDs "{reference.stage_id}:{reference.group_id}"',
                'reference'
            )
        if reference.result not in MATCH_RESULTS:
            raise ValidationError(
                f'Invalid Match result in reference {text}: reference must be one of "winner"|"loser" '
                f'in stage:group:match with IDs "{reference.stage_id}:{reference.group_id}:{reference.match_id}"',
                'reference'
            )
