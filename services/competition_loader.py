"""
Loading and saving competition documents
Builds the Competition object graph from the JSON document shape and back
"""

import json
import logging
from typing import Any, Dict, Sequence

from models.competition import Competition
from models.group import Group
from models.stage import IfUnknown, Stage
from models.team import Club, CompetitionTeam, Player
from services.exceptions import ValidationError

logger = logging.getLogger(__name__)


def _require(data: Dict[str, Any], keys: Sequence[str], what: str) -> None:
    if not isinstance(data, dict):
        raise ValidationError(f'Invalid {what}: expected an object')
    for key in keys:
        if key not in data:
            raise ValidationError(f'Invalid {what}: missing field "{key}"', key)


def _load_stage(competition: Competition, stage_data: Dict[str, Any]) -> Stage:
    _require(stage_data, ['id', 'groups'], 'stage')
    stage = Stage(
        competition,
        stage_data['id'],
        name=stage_data.get('name'),
        notes=stage_data.get('notes'),
        description=stage_data.get('description'),
    )
    # Registered before its groups load so matches may refer to earlier groups of this stage
    competition.add_stage(stage)

    for group_data in stage_data['groups']:
        group = Group.from_dict(competition, stage.id, group_data)
        stage.add_group(group)
        group.load_matches(group_data['matches'])

    if 'ifUnknown' in stage_data:
        stage.if_unknown = IfUnknown.from_dict(stage.id, stage_data['ifUnknown'])

    stage.check_team_overlap()
    return stage


def load_competition(data: Dict[str, Any]) -> Competition:
    """
    Build a Competition from a parsed competition document.

    Every team slot is validated as it is loaded, so a document whose
    references point at missing stages, groups or matches is rejected with a
    message naming the offending match.

    Raises:
        ValidationError: structural or semantic problem in the document
        DuplicateError: a stage, group, match, team, club or player ID is reused
    """
    _require(data, ['version', 'name', 'teams', 'stages'], 'competition document')

    competition = Competition(data['name'], version=data['version'], notes=data.get('notes'))

    for item in data.get('metadata', []):
        _require(item, ['key', 'value'], 'metadata')
        competition.add_metadata(item['key'], item['value'])

    for club_data in data.get('clubs', []):
        _require(club_data, ['id', 'name'], 'club')
        competition.add_club(Club.from_dict(club_data))

    for team_data in data['teams']:
        _require(team_data, ['id', 'name'], 'team')
        competition.add_team(CompetitionTeam.from_dict(team_data))

    for player_data in data.get('players', []):
        _require(player_data, ['id', 'name'], 'player')
        competition.add_player(Player.from_dict(player_data))

    for stage_data in data['stages']:
        _load_stage(competition, stage_data)

    logger.info(
        f"Loaded competition '{competition.name}' with {len(competition.get_teams())} teams "
        f"and {len(competition.get_stages())} stages"
    )
    return competition


def load_competition_file(path: str) -> Competition:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValidationError(f'Invalid JSON in {path}: {e.msg} (line {e.lineno})')
    return load_competition(data)


def serialize_competition(competition: Competition) -> Dict[str, Any]:
    """The document shape; computed tables are not included."""
    return competition.to_dict()


def save_competition_file(competition: Competition, path: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(serialize_competition(competition), f, indent=2)
    logger.info(f"Saved competition '{competition.name}' to {path}")
