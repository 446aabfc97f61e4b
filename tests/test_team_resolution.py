"""
Tests for team reference parsing
"""

import pytest

from services.exceptions import ReferenceSyntaxError, ValidationError
from utils.team_resolution import (
    LeaguePositionRef, Literal, MatchRef, Ternary,
    bracketed_parts, format_reference, is_reference,
    iter_referenced_groups, parse_reference
)


class TestParseReference:
    """Classifying team ID strings"""

    def test_literal(self):
        assert parse_reference('TM1') == Literal('TM1')

    def test_league_position(self):
        assert parse_reference('{L:RL:league:3}') == LeaguePositionRef('L', 'RL', '3')

    def test_match_result(self):
        assert parse_reference('{L:RL:RLM1:winner}') == MatchRef('L', 'RL', 'RLM1', 'winner')
        assert parse_reference('{L:RL:RLM1:loser}') == MatchRef('L', 'RL', 'RLM1', 'loser')

    def test_position_is_kept_as_text(self):
        """Non-integer positions parse; they are rejected when validated"""
        assert parse_reference('{L:RL:league:first}').position == 'first'

    def test_ternary_with_references(self):
        ternary = parse_reference('{L:RL:league:1}=={L:RL:RLM1:winner}?{L:RL:league:2}:{L:RL:league:3}')
        assert ternary == Ternary(
            left=LeaguePositionRef('L', 'RL', '1'),
            right=MatchRef('L', 'RL', 'RLM1', 'winner'),
            if_true=LeaguePositionRef('L', 'RL', '2'),
            if_false=LeaguePositionRef('L', 'RL', '3'),
        )

    def test_ternary_with_literal_operands(self):
        ternary = parse_reference('{L:RL:league:1}==TM6?TM3:TM4')
        assert ternary.right == Literal('TM6')
        assert ternary.if_true == Literal('TM3')
        assert ternary.if_false == Literal('TM4')

    @pytest.mark.parametrize('text', [
        '{L:RL:league}',
        '{L:RL:league:1:extra}',
        '{L:RL:league:1',
        '{L:{RL}:league:1}',
    ])
    def test_malformed_bracketed_reference(self, text):
        with pytest.raises(ReferenceSyntaxError):
            parse_reference(text)

    @pytest.mark.parametrize('text', [
        '{L:RL:league:1}=={L:RL:league:2}',
        '{L:RL:league:1}=={L:RL:league:2}?TM1',
        '=={L:RL:league:2}?TM1:TM2',
    ])
    def test_malformed_ternary(self, text):
        with pytest.raises(ReferenceSyntaxError):
            parse_reference(text)

    def test_nested_ternary_rejected(self):
        with pytest.raises(ReferenceSyntaxError) as exc_info:
            parse_reference('{A:B:league:1}=={A:B:league:2}?{A:B:league:3}=={A:B:league:4}?TM1:TM2:TM3')
        assert 'nested' in exc_info.value.message

    def test_empty_reference(self):
        with pytest.raises(ReferenceSyntaxError):
            parse_reference('')

    def test_syntax_error_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            parse_reference('{L:RL}')


class TestReferenceHelpers:

    def test_is_reference(self):
        assert is_reference('{L:RL:league:1}')
        assert not is_reference('TM1')
        assert not is_reference('')
        assert not is_reference(None)

    def test_bracketed_parts_of_ternary_skip_literals(self):
        parts = bracketed_parts(parse_reference('{L:A:league:1}==TM1?{KO:CUP:FIN:winner}:TM2'))
        assert parts == [LeaguePositionRef('L', 'A', '1'), MatchRef('KO', 'CUP', 'FIN', 'winner')]

    def test_iter_referenced_groups(self):
        groups = list(iter_referenced_groups('{L:A:league:1}=={KO:CUP:FIN:winner}?{L:A:league:4}:{L:B:league:4}'))
        assert groups == [('L', 'A'), ('KO', 'CUP'), ('L', 'A'), ('L', 'B')]
        assert list(iter_referenced_groups('TM1')) == []

    @pytest.mark.parametrize('text', [
        'TM1',
        '{L:RL:league:1}',
        '{KO:CUP:SF1:loser}',
        '{L:A:league:1}==TM1?{L:A:league:2}:TM3',
    ])
    def test_format_reference(self, text):
        assert format_reference(parse_reference(text)) == text
