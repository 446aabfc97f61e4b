"""
Shared fixtures: competition documents built in code and loaded into Competition objects.
"""

import json
from itertools import combinations

import pytest

from app import create_app
from services.competition_loader import load_competition


def make_match(match_id, home, away, home_score=None, away_score=None, complete=None, **extra):
    """A continuous match entry; complete defaults to whether scores were given."""
    match = {
        'id': match_id,
        'type': 'match',
        'complete': (home_score is not None) if complete is None else complete,
        'homeTeam': {'id': home, 'scores': [] if home_score is None else [home_score]},
        'awayTeam': {'id': away, 'scores': [] if away_score is None else [away_score]},
    }
    match.update(extra)
    return match


def round_robin(prefix, team_ids, ranking, unplayed=()):
    """
    Every pair of teams meets once, home team first in team_ids order.

    The team placed higher in ranking wins 25-20. Match IDs listed in
    unplayed are left without a result.
    """
    matches = []
    for number, (home, away) in enumerate(combinations(team_ids, 2), start=1):
        match_id = f'{prefix}{number}'
        if match_id in unplayed:
            matches.append(make_match(match_id, home, away))
        elif ranking.index(home) < ranking.index(away):
            matches.append(make_match(match_id, home, away, 25, 20))
        else:
            matches.append(make_match(match_id, home, away, 20, 25))
    return matches


def make_teams(count):
    return [{'id': f'TM{n}', 'name': f'Team {n}'} for n in range(1, count + 1)]


LEAGUE_RANKING = ['TM6', 'TM5', 'TM2', 'TM4', 'TM3', 'TM7', 'TM8', 'TM1']


def build_league_document(unplayed=()):
    """Eight teams in a single league {L:RL}; RLM1 is TM1 v TM2, won by TM2."""
    team_ids = [f'TM{n}' for n in range(1, 9)]
    return {
        'version': '1.0.0',
        'name': 'Test League',
        'teams': make_teams(8),
        'stages': [{
            'id': 'L',
            'name': 'League',
            'groups': [{
                'id': 'RL',
                'name': 'Round robin',
                'type': 'league',
                'matchType': 'continuous',
                'drawsAllowed': False,
                'league': {
                    'ordering': ['PTS', 'PD'],
                    'points': {'win': 3, 'lose': 0},
                },
                'matches': round_robin('RLM', team_ids, LEAGUE_RANKING, unplayed),
            }],
        }],
    }


KNOCKOUT_RESULTS = {
    'SF1': (3, 1),
    'SF2': (1, 2),
    'FIN': (1, 2),
    '3RD': (1, 2),
}


def build_cup_document(groups_played=True, knockout_results=None):
    """
    Two four-team leagues {L:A} and {L:B} feeding a knockout group {KO:CUP},
    plus a crossover {P:P} whose home slot is a ternary.

    In each league the lower numbered team finishes higher, so with every
    league match played SF1 is TM1 v TM6 and SF2 is TM5 v TM2.
    knockout_results maps knockout match IDs to (home, away) scores.
    """
    knockout_results = knockout_results or {}
    group_a = ['TM1', 'TM2', 'TM3', 'TM4']
    group_b = ['TM5', 'TM6', 'TM7', 'TM8']
    unplayed_a = () if groups_played else ('AM6',)
    unplayed_b = () if groups_played else ('BM6',)

    def knockout_match(match_id, home, away, **extra):
        if match_id in knockout_results:
            home_score, away_score = knockout_results[match_id]
            return make_match(match_id, home, away, home_score, away_score, **extra)
        return make_match(match_id, home, away, **extra)

    return {
        'version': '1.0.0',
        'name': 'Test Cup',
        'metadata': [{'key': 'season', 'value': '2024'}],
        'clubs': [{'id': 'CL1', 'name': 'Club One'}],
        'teams': make_teams(8),
        'players': [{'id': 'P1', 'name': 'Pat Smith', 'number': 7, 'team': 'TM1'}],
        'stages': [
            {
                'id': 'L',
                'name': 'Groups',
                'groups': [
                    {
                        'id': 'A',
                        'type': 'league',
                        'matchType': 'continuous',
                        'league': {'ordering': ['PTS', 'PD'], 'points': {'win': 3}},
                        'matches': round_robin('AM', group_a, group_a, unplayed_a),
                    },
                    {
                        'id': 'B',
                        'type': 'league',
                        'matchType': 'continuous',
                        'league': {'ordering': ['PTS', 'PD'], 'points': {'win': 3}},
                        'matches': round_robin('BM', group_b, group_b, unplayed_b),
                    },
                ],
            },
            {
                'id': 'KO',
                'name': 'Finals',
                'groups': [{
                    'id': 'CUP',
                    'type': 'knockout',
                    'matchType': 'continuous',
                    'knockout': {'standing': [
                        {'id': '{KO:CUP:FIN:winner}', 'position': 1},
                        {'id': '{KO:CUP:FIN:loser}', 'position': 2},
                        {'id': '{KO:CUP:3RD:winner}', 'position': 3},
                        {'id': '{KO:CUP:3RD:loser}', 'position': 4},
                    ]},
                    'matches': [
                        knockout_match('SF1', '{L:A:league:1}', '{L:B:league:2}',
                                       date='2024-06-02', start='11:00',
                                       officials={'team': '{L:A:league:3}'}),
                        knockout_match('SF2', '{L:B:league:1}', '{L:A:league:2}',
                                       date='2024-06-02', start='09:00',
                                       officials={'team': '{L:B:league:3}'}),
                        {'type': 'break', 'date': '2024-06-02', 'start': '13:00', 'name': 'Lunch'},
                        knockout_match('3RD', '{KO:CUP:SF1:loser}', '{KO:CUP:SF2:loser}',
                                       date='2024-06-03', start='10:00'),
                        knockout_match('FIN', '{KO:CUP:SF1:winner}', '{KO:CUP:SF2:winner}',
                                       date='2024-06-03', start='14:00'),
                    ],
                }],
                'ifUnknown': {
                    'description': ['Semi-finals are drawn once the groups finish'],
                    'matches': [{
                        'id': 'SF1',
                        'type': 'match',
                        'homeTeam': {'id': 'Winner group A', 'scores': []},
                        'awayTeam': {'id': 'Runner-up group B', 'scores': []},
                    }],
                },
            },
            {
                'id': 'P',
                'name': 'Plate',
                'groups': [{
                    'id': 'P',
                    'type': 'crossover',
                    'matchType': 'continuous',
                    'matches': [
                        make_match(
                            'P1',
                            '{L:A:league:1}=={KO:CUP:FIN:winner}?{L:A:league:4}:{L:B:league:4}',
                            '{L:B:league:3}',
                        ),
                    ],
                }],
            },
        ],
    }


SETS_MATCHES = [
    {'id': 'S1', 'type': 'match',
     'homeTeam': {'id': 'TA', 'scores': [25, 25, 25]},
     'awayTeam': {'id': 'TB', 'scores': [20, 18, 10]}},
    {'id': 'S2', 'type': 'match',
     'homeTeam': {'id': 'TB', 'scores': [25, 20, 25, 18, 15]},
     'awayTeam': {'id': 'TC', 'scores': [20, 25, 18, 25, 10]}},
    {'id': 'S3', 'type': 'match',
     'homeTeam': {'id': 'TC', 'scores': [25, 25, 25]},
     'awayTeam': {'id': 'TA', 'scores': [23, 23, 23]}},
]


def build_sets_document():
    """Three teams in a best-of-five league with win/lose-by-one-set points."""
    return {
        'version': '1.0.0',
        'name': 'Sets League',
        'teams': [
            {'id': 'TA', 'name': 'Alpha'},
            {'id': 'TB', 'name': 'Bravo'},
            {'id': 'TC', 'name': 'Charlie'},
        ],
        'stages': [{
            'id': 'S',
            'groups': [{
                'id': 'L',
                'type': 'league',
                'matchType': 'sets',
                'sets': {'maxSets': 5, 'setsToWin': 3},
                'league': {
                    'ordering': ['PTS', 'SD'],
                    'points': {'win': 3, 'winByOne': 2, 'lose': 0, 'loseByOne': 1},
                },
                'matches': json.loads(json.dumps(SETS_MATCHES)),
            }],
        }],
    }


@pytest.fixture
def league_document():
    """Factory for the eight team league document"""
    return build_league_document


@pytest.fixture
def cup_document():
    """Factory for the groups + knockout + crossover document"""
    return build_cup_document


@pytest.fixture
def league():
    """Completed eight team league"""
    return load_competition(build_league_document())


@pytest.fixture
def cup():
    """Groups complete, knockout not started"""
    return load_competition(build_cup_document())


@pytest.fixture
def finished_cup():
    """Every match played; TM2 wins the final"""
    return load_competition(build_cup_document(knockout_results=KNOCKOUT_RESULTS))


@pytest.fixture
def sets_league():
    return load_competition(build_sets_document())


@pytest.fixture
def competition_dir(tmp_path):
    """A competition directory holding cup.json (groups done) and league.json"""
    (tmp_path / 'cup.json').write_text(json.dumps(build_cup_document()), encoding='utf-8')
    (tmp_path / 'league.json').write_text(json.dumps(build_league_document()), encoding='utf-8')
    return tmp_path


@pytest.fixture
def app(competition_dir):
    """Create and configure a test Flask application."""
    app = create_app({'TESTING': True, 'COMPETITION_DIR': str(competition_dir)})
    yield app


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()
