import logging
import os
import re
from typing import Dict

from flask import current_app, jsonify, request

from constants import MatchFilter, TeamFilter
from models.competition import Competition
from models.match import GroupMatch
from routes.blueprints import api_bp
from services.competition_loader import load_competition_file
from services.exceptions import ConfigurationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+$')


def _competition_dir() -> str:
    directory = current_app.config.get('COMPETITION_DIR')
    if not directory or not os.path.isdir(directory):
        raise ConfigurationError(f'Competition directory "{directory}" does not exist', 'COMPETITION_DIR')
    return directory


def get_competition(name: str) -> Competition:
    """Load <name>.json from the competition directory, once per app."""
    cache: Dict[str, Competition] = current_app.extensions.setdefault('competitions', {})
    if name in cache:
        return cache[name]

    if not _NAME_PATTERN.match(name) or name.startswith('.'):
        raise NotFoundError('Competition', name)
    path = os.path.join(_competition_dir(), f'{name}.json')
    if not os.path.isfile(path):
        raise NotFoundError('Competition', name)

    cache[name] = load_competition_file(path)
    return cache[name]


def _parse_team_filter(value: str) -> TeamFilter:
    flags = TeamFilter(0)
    for part in value.split(','):
        part = part.strip().upper()
        if not part:
            continue
        if part not in TeamFilter.__members__:
            raise ValidationError(f'Unknown team category "{part}"', 'category')
        flags |= TeamFilter[part]
    return flags


def _match_summary(competition: Competition, match) -> Dict:
    if not isinstance(match, GroupMatch):
        return match.to_dict()
    summary = match.to_dict()
    summary['group'] = match.group.label
    summary['homeTeamName'] = competition.get_team(match.home_team.id).name
    summary['awayTeamName'] = competition.get_team(match.away_team.id).name
    return summary


@api_bp.route('/competitions')
def list_competitions():
    directory = _competition_dir()
    names = sorted(f[:-5] for f in os.listdir(directory) if f.endswith('.json'))
    return jsonify({'competitions': names})


@api_bp.route('/competitions/<name>')
def get_competition_document(name):
    return jsonify(get_competition(name).to_dict())


@api_bp.route('/competitions/<name>/team')
def resolve_team(name):
    """Resolve ?ref=<team ID or reference> to a team."""
    reference = request.args.get('ref')
    if not reference:
        raise ValidationError('Query parameter "ref" is required', 'ref')
    competition = get_competition(name)
    team = competition.get_team(reference)
    return jsonify({
        'ref': reference,
        'id': team.id,
        'name': team.name,
        'known': not team.is_unknown,
    })


@api_bp.route('/competitions/<name>/stages/<stage_id>/groups/<group_id>')
def get_group_summary(name, stage_id, group_id):
    group = get_competition(name).get_stage(stage_id).get_group(group_id)
    return jsonify({
        'id': group.id,
        'type': group.kind,
        'matchType': group.match_type,
        'complete': group.is_complete(),
        'allTeamsKnown': group.all_teams_known(),
    })


@api_bp.route('/competitions/<name>/stages/<stage_id>/groups/<group_id>/teams')
def get_group_teams(name, stage_id, group_id):
    """?category=KNOWN,MAYBE (default FIXED_ID)"""
    flags = _parse_team_filter(request.args.get('category', 'FIXED_ID'))
    competition = get_competition(name)
    group = competition.get_stage(stage_id).get_group(group_id)
    team_ids = group.get_team_ids(flags)
    return jsonify({
        'teams': [{'id': tid, 'name': competition.get_team(tid).name} for tid in team_ids]
    })


@api_bp.route('/competitions/<name>/stages/<stage_id>/groups/<group_id>/table')
def get_group_table(name, stage_id, group_id):
    group = get_competition(name).get_stage(stage_id).get_group(group_id)
    return jsonify(group.get_league_table().to_dict())


@api_bp.route('/competitions/<name>/stages/<stage_id>/matches')
def get_stage_matches(name, stage_id):
    """All matches in a stage, or with ?team=<id> the ones that team plays or officiates."""
    competition = get_competition(name)
    stage = competition.get_stage(stage_id)
    team_id = request.args.get('team')
    matches = stage.get_matches(team_id, MatchFilter.PLAYING | MatchFilter.OFFICIATING)
    return jsonify({'matches': [_match_summary(competition, m) for m in matches]})


@api_bp.route('/competitions/<name>/stages/<stage_id>/groups/<group_id>/matches/<match_id>/scores', methods=['POST'])
def update_match_scores(name, stage_id, group_id, match_id):
    """Body: {"homeScores": [...], "awayScores": [...], "complete": true}"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or 'homeScores' not in payload or 'awayScores' not in payload:
        raise ValidationError('Body must contain "homeScores" and "awayScores"', 'scores')

    competition = get_competition(name)
    match = competition.get_stage(stage_id).get_group(group_id).get_match(match_id)
    match.set_scores(payload['homeScores'], payload['awayScores'], payload.get('complete'))
    # Groups fed by this one cache names and maybe-teams derived from its result
    competition.invalidate()
    logger.info(f"Updated scores for match {{{match.label}}}")
    return jsonify(_match_summary(competition, match))
