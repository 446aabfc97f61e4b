"""
Tests for Group: completeness, team ID categories, maybe-teams, caching and resolution
"""

from unittest.mock import patch

import pytest

from conftest import build_cup_document, make_match
from constants import MatchFilter, TeamFilter
from models.group import Group
from models.match import GroupBreak, GroupMatch
from services.competition_loader import load_competition
from services.exceptions import (
    BusinessRuleError, CircularReferenceError, MatchResultError,
    NotFoundError, ValidationError
)

GROUPS_KNOWN = ['{L:A:league:1}', '{L:A:league:2}', '{L:A:league:3}',
                '{L:B:league:1}', '{L:B:league:2}', '{L:B:league:3}']
ALL_TEAMS = [f'TM{n}' for n in range(1, 9)]


@pytest.fixture
def unfinished_cup():
    """AM6 and BM6 not played, so neither league is complete"""
    return load_competition(build_cup_document(groups_played=False))


def knockout(competition):
    return competition.get_stage('KO').get_group('CUP')


class TestCompleteness:

    def test_group_complete(self, cup):
        assert cup.get_stage('L').get_group('A').is_complete()
        assert not knockout(cup).is_complete()

    def test_breaks_do_not_count(self, finished_cup):
        assert knockout(finished_cup).is_complete()

    def test_all_teams_known(self, cup, unfinished_cup):
        assert knockout(cup).all_teams_known()
        assert not knockout(unfinished_cup).all_teams_known()

    def test_completeness_is_cached(self, cup):
        group = cup.get_stage('L').get_group('A')
        group.invalidate()
        with patch.object(GroupMatch, 'is_complete', autospec=True, return_value=True) as mocked:
            group.is_complete()
            group.is_complete()
        assert mocked.call_count == 6

    def test_adding_an_unplayed_match_reopens_group(self, cup):
        group = cup.get_stage('L').get_group('A')
        assert group.is_complete()
        group.add_match(GroupMatch.from_dict(group, make_match('AM7', 'TM1', 'TM2')))
        assert not group.is_complete()

    def test_adding_a_break_keeps_group_complete(self, cup):
        group = cup.get_stage('L').get_group('A')
        group.add_break(GroupBreak(start='12:00', name='Lunch'))
        assert group.is_complete()


class TestTeamIds:

    def test_fixed_ids_sorted_by_name(self, cup):
        group = cup.get_stage('L').get_group('B')
        assert group.get_team_ids(TeamFilter.FIXED_ID) == ['TM5', 'TM6', 'TM7', 'TM8']

    def test_no_fixed_ids_in_knockout(self, cup):
        assert knockout(cup).get_team_ids(TeamFilter.FIXED_ID) == []

    def test_raw_ids_in_first_seen_order(self, cup):
        team_ids = knockout(cup).get_team_ids(TeamFilter.ALL)
        assert team_ids[:3] == ['{L:A:league:1}', '{L:B:league:2}', '{L:A:league:3}']
        assert len(team_ids) == 10

    def test_known_sorted_by_resolved_name(self, cup):
        assert knockout(cup).get_team_ids(TeamFilter.KNOWN) == GROUPS_KNOWN

    def test_known_playing_leaves_out_officials(self, cup):
        assert knockout(cup).get_team_ids(TeamFilter.KNOWN | TeamFilter.PLAYING) == [
            '{L:A:league:1}', '{L:A:league:2}', '{L:B:league:1}', '{L:B:league:2}'
        ]

    def test_officiating_only(self, cup):
        assert knockout(cup).get_team_ids(TeamFilter.OFFICIATING) == ['{L:A:league:3}', '{L:B:league:3}']

    def test_nothing_known_before_groups_finish(self, unfinished_cup):
        assert knockout(unfinished_cup).get_team_ids(TeamFilter.KNOWN) == []


class TestMaybeTeams:

    def test_maybe_from_incomplete_feeders(self, unfinished_cup):
        assert knockout(unfinished_cup).get_team_ids(TeamFilter.MAYBE) == ALL_TEAMS

    def test_maybe_through_two_levels(self, unfinished_cup):
        plate = unfinished_cup.get_stage('P').get_group('P')
        assert sorted(plate.get_team_ids(TeamFilter.MAYBE)) == ALL_TEAMS

    def test_no_maybe_once_feeders_complete(self, cup):
        assert knockout(cup).get_team_ids(TeamFilter.MAYBE) == []

    def test_no_maybe_in_complete_group(self, finished_cup):
        assert knockout(finished_cup).get_team_ids(TeamFilter.MAYBE) == []

    def test_known_and_maybe_combined(self, cup):
        flags = TeamFilter.KNOWN | TeamFilter.MAYBE
        assert knockout(cup).get_team_ids(flags) == GROUPS_KNOWN

    def test_team_may_have_matches(self, unfinished_cup, cup):
        assert knockout(unfinished_cup).team_may_have_matches('TM3')
        assert not knockout(unfinished_cup).team_may_have_matches('NOPE')
        assert not knockout(cup).team_may_have_matches('TM4')

    def test_maybe_cache_refreshed_by_competition_invalidate(self, unfinished_cup):
        group = knockout(unfinished_cup)
        assert group.get_team_ids(TeamFilter.MAYBE) == ALL_TEAMS

        unfinished_cup.get_stage('L').get_group('A').get_match('AM6').set_scores([25], [20], complete=True)
        unfinished_cup.get_stage('L').get_group('B').get_match('BM6').set_scores([25], [20], complete=True)
        # The knockout group still holds what it worked out before
        assert group.get_team_ids(TeamFilter.MAYBE) == ALL_TEAMS

        unfinished_cup.invalidate()
        assert group.get_team_ids(TeamFilter.MAYBE) == []
        assert group.get_team_ids(TeamFilter.KNOWN) == GROUPS_KNOWN


class TestCircularReferences:

    @pytest.fixture
    def looped(self):
        competition = load_competition({
            'version': '1.0.0',
            'name': 'Loop',
            'teams': [{'id': f'TM{n}', 'name': f'Team {n}'} for n in range(1, 6)],
            'stages': [
                {'id': 'X', 'groups': [{
                    'id': 'G1', 'type': 'crossover', 'matchType': 'continuous',
                    'matches': [make_match('M1', 'TM1', 'TM2')],
                }]},
                {'id': 'Y', 'groups': [{
                    'id': 'G2', 'type': 'crossover', 'matchType': 'continuous',
                    'matches': [make_match('N1', '{X:G1:M1:winner}', 'TM3')],
                }]},
            ],
        })
        first = competition.get_stage('X').get_group('G1')
        first.add_match(GroupMatch.from_dict(first, make_match('M2', '{Y:G2:N1:winner}', 'TM4')))
        return competition

    def test_maybe_teams_detect_cycle(self, looped):
        with pytest.raises(CircularReferenceError) as exc_info:
            looped.get_stage('X').get_group('G1').get_team_ids(TeamFilter.MAYBE)
        assert exc_info.value.path == ['X:G1', 'Y:G2', 'X:G1']
        assert exc_info.value.message == 'Circular reference between groups: X:G1 -> Y:G2 -> X:G1'

    def test_team_may_have_matches_detects_cycle(self, looped):
        with pytest.raises(CircularReferenceError):
            looped.get_stage('X').get_group('G1').team_may_have_matches('TM5')

    def test_cycle_is_a_business_rule_error(self, looped):
        with pytest.raises(BusinessRuleError):
            looped.get_stage('Y').get_group('G2').get_team_ids(TeamFilter.MAYBE)

    def test_knockout_referring_to_itself_is_not_a_cycle(self, unfinished_cup):
        # FIN and 3RD refer to SF1/SF2 in the same group
        flags = TeamFilter.KNOWN | TeamFilter.MAYBE
        assert knockout(unfinished_cup).get_team_ids(flags) == ALL_TEAMS


class TestStandingsCache:

    def test_table_rebuilt_after_score_change(self, cup):
        group = cup.get_stage('L').get_group('A')
        assert group.get_league_table().entries[0].team_id == 'TM1'
        assert cup.get_team('{L:A:league:1}').id == 'TM1'

        group.get_match('AM1').set_scores([20], [25], complete=True)

        assert group.get_league_table().entries[0].team_id == 'TM2'
        assert cup.get_team('{L:A:league:1}').id == 'TM2'

    def test_table_is_cached(self, cup):
        group = cup.get_stage('L').get_group('A')
        assert group.get_league_table() is group.get_league_table()

    def test_table_only_for_leagues(self, cup):
        with pytest.raises(BusinessRuleError, match='is not a league'):
            knockout(cup).get_league_table()


class TestGroupResolution:
    """Group.get_team answers the TYPE:ENTITY tail of a reference"""

    def test_league_position(self, cup):
        assert cup.get_stage('L').get_group('A').get_team('league', '2').id == 'TM2'

    def test_league_position_on_non_league(self, cup):
        with pytest.raises(BusinessRuleError, match='non-league group'):
            knockout(cup).get_team('league', '1')

    def test_league_position_on_incomplete_league(self, unfinished_cup):
        with pytest.raises(BusinessRuleError, match='incomplete league'):
            unfinished_cup.get_stage('L').get_group('A').get_team('league', '1')

    def test_league_position_out_of_range(self, cup):
        with pytest.raises(ValidationError, match='bigger than the number of teams'):
            cup.get_stage('L').get_group('A').get_team('league', '5')

    @pytest.mark.parametrize('position', ['0', '-1'])
    def test_league_position_not_positive(self, cup, position):
        with pytest.raises(ValidationError, match='must be a positive integer'):
            cup.get_stage('L').get_group('A').get_team('league', position)

    def test_league_position_not_integer(self, cup):
        with pytest.raises(ValidationError, match='must be an integer'):
            cup.get_stage('L').get_group('A').get_team('league', 'top')

    def test_winner_of_unplayed_match(self, cup):
        with pytest.raises(MatchResultError):
            knockout(cup).get_team('SF1', 'winner')

    def test_unknown_match(self, cup):
        with pytest.raises(NotFoundError, match='Match with ID NOPE not found'):
            knockout(cup).get_team('NOPE', 'winner')

    def test_winner_and_loser(self, finished_cup):
        group = knockout(finished_cup)
        assert group.get_team('SF2', 'winner').id == 'TM2'
        assert group.get_team('SF2', 'loser').id == 'TM5'

    def test_knockout_standing(self, finished_cup, cup):
        standing = knockout(finished_cup).get_knockout_standing()
        assert [(position, team.id) for position, team in standing] == [
            (1, 'TM2'), (2, 'TM1'), (3, 'TM5'), (4, 'TM6')
        ]
        assert [team.id for _, team in knockout(cup).get_knockout_standing()] == ['UNKNOWN'] * 4


class TestGroupMatches:

    def test_all_matches_include_breaks(self, cup):
        assert len(knockout(cup).get_matches()) == 5

    def test_matches_for_team(self, cup, finished_cup):
        assert [m.id for m in knockout(cup).get_matches('TM1', MatchFilter.PLAYING)] == ['SF1']
        assert [m.id for m in knockout(finished_cup).get_matches('TM1', MatchFilter.PLAYING)] == ['SF1', 'FIN']

    def test_officiating_matches(self, cup):
        assert [m.id for m in knockout(cup).get_matches('TM3', MatchFilter.OFFICIATING)] == ['SF1']
        assert knockout(cup).get_matches('TM3', MatchFilter.PLAYING) == []
        assert knockout(cup).team_has_officiating('TM7')
        assert not knockout(cup).team_has_matches('TM7')

    def test_all_in_group_ignores_team(self, cup):
        assert len(knockout(cup).get_matches('TM1', MatchFilter.ALL_IN_GROUP)) == 5

    def test_match_dates(self, cup):
        assert knockout(cup).get_match_dates() == ['2024-06-02', '2024-06-03']
        assert knockout(cup).get_match_dates('TM1') == ['2024-06-02']

    def test_matches_on_date(self, cup):
        matches = knockout(cup).get_matches_on_date('2024-06-02')
        assert len(matches) == 3
        assert isinstance(matches[2], GroupBreak)

    def test_get_missing_match(self, cup):
        with pytest.raises(NotFoundError):
            knockout(cup).get_match('QF1')


class TestGroupConfig:

    def test_invalid_group_type(self, cup):
        with pytest.raises(ValidationError, match='Invalid group type'):
            Group(cup, 'L', 'C', 'pool', 'continuous')

    def test_draws_only_in_leagues(self, cup):
        assert not Group(cup, 'L', 'C', 'knockout', 'continuous', draws_allowed=True).draws_allowed
        assert Group(cup, 'L', 'C', 'league', 'continuous', draws_allowed=True).draws_allowed

    def test_defaults(self, cup):
        group = Group(cup, 'L', 'C', 'league', 'sets')
        assert group.league_config.ordering == ['PTS', 'PD']
        assert group.set_config.max_sets == 5

    def test_missing_group_field(self, cup):
        with pytest.raises(ValidationError, match='missing field "matchType"'):
            Group.from_dict(cup, 'L', {'id': 'C', 'type': 'league', 'matches': []})
