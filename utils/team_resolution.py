"""
Parsing of team references.

A team slot in a match holds one of:

- a literal team ID, e.g. ``TM1``
- a bracketed reference ``{STAGE:GROUP:league:N}`` or ``{STAGE:GROUP:MATCH:winner|loser}``
- a ternary ``{A}=={B}?{T}:{F}`` whose operands are literal IDs or bracketed references

``parse_reference`` turns the string into one of the node types below without
resolving anything. Resolution lives on the Competition.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from constants import LEAGUE_REFERENCE_TYPE
from services.exceptions import ReferenceSyntaxError


@dataclass(frozen=True)
class Literal:
    team_id: str


@dataclass(frozen=True)
class LeaguePositionRef:
    stage_id: str
    group_id: str
    position: str  # raw text, checked for being a positive integer when validated


@dataclass(frozen=True)
class MatchRef:
    stage_id: str
    group_id: str
    match_id: str
    result: str  # "winner" or "loser" in valid documents


Operand = Union[Literal, LeaguePositionRef, MatchRef]


@dataclass(frozen=True)
class Ternary:
    left: Operand
    right: Operand
    if_true: Operand
    if_false: Operand


Reference = Union[Literal, LeaguePositionRef, MatchRef, Ternary]


def is_reference(team_id: Optional[str]) -> bool:
    """True when the ID is not a plain literal team ID."""
    return bool(team_id) and team_id[0] == '{'


def _split_top_level(text: str, separator: str) -> Optional[Tuple[str, str]]:
    """Split on the first occurrence of separator that is not inside {...}."""
    depth = 0
    i = 0
    while i < len(text):
        char = text[i]
        if char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth < 0:
                raise ReferenceSyntaxError(f'Unbalanced "}}" in team reference "{text}"', text)
        elif depth == 0 and text.startswith(separator, i):
            return text[:i], text[i + len(separator):]
        i += 1
    return None


def _parse_bracketed(text: str) -> Union[LeaguePositionRef, MatchRef]:
    if not text.startswith('{') or not text.endswith('}'):
        raise ReferenceSyntaxError(f'Invalid team reference "{text}": missing closing "}}"', text)

    inner = text[1:-1]
    if '{' in inner or '}' in inner:
        raise ReferenceSyntaxError(f'Invalid team reference "{text}": nested braces are not allowed', text)

    parts = inner.split(':')
    if len(parts) != 4:
        raise ReferenceSyntaxError(
            f'Invalid team reference format "{text}", must be "{{STAGE-ID:GROUP-ID:TYPE-INDICATOR:ENTITY-INDICATOR}}"',
            text
        )

    stage_id, group_id, type_indicator, entity = parts
    if type_indicator == LEAGUE_REFERENCE_TYPE:
        return LeaguePositionRef(stage_id, group_id, entity)
    return MatchRef(stage_id, group_id, type_indicator, entity)


def _parse_operand(text: str, whole: str) -> Operand:
    if not text:
        raise ReferenceSyntaxError(f'Invalid ternary reference "{whole}": empty operand', whole)
    if _split_top_level(text, '==') is not None:
        raise ReferenceSyntaxError(f'Invalid ternary reference "{whole}": nested ternaries are not supported', whole)
    if text.startswith('{'):
        return _parse_bracketed(text)
    return Literal(text)


def parse_ternary(text: str) -> Optional[Ternary]:
    """
    Parse ``{A}=={B}?{T}:{F}``. Returns None when the text has no top-level ``==``.

    Only one level of ternary is supported; a branch that is itself a ternary
    is rejected.
    """
    comparison = _split_top_level(text, '==')
    if comparison is None:
        return None
    left, rest = comparison

    question = _split_top_level(rest, '?')
    if question is None:
        raise ReferenceSyntaxError(f'Invalid ternary reference "{text}": missing "?"', text)
    right, branches = question

    branch_split = _split_top_level(branches, ':')
    if branch_split is None:
        raise ReferenceSyntaxError(f'Invalid ternary reference "{text}": missing ":"', text)
    if_true, if_false = branch_split

    return Ternary(
        left=_parse_operand(left, text),
        right=_parse_operand(right, text),
        if_true=_parse_operand(if_true, text),
        if_false=_parse_operand(if_false, text),
    )


def parse_reference(text: str) -> Reference:
    """Classify a team ID string into its reference shape."""
    if not text:
        raise ReferenceSyntaxError('Empty team reference', text)

    ternary = parse_ternary(text)
    if ternary is not None:
        return ternary
    if text.startswith('{'):
        return _parse_bracketed(text)
    return Literal(text)


def bracketed_parts(reference: Reference) -> List[Union[LeaguePositionRef, MatchRef]]:
    """All bracketed references contained in a parsed reference."""
    if isinstance(reference, Ternary):
        operands = [reference.left, reference.right, reference.if_true, reference.if_false]
        return [o for o in operands if not isinstance(o, Literal)]
    if isinstance(reference, Literal):
        return []
    return [reference]


def iter_referenced_groups(team_id: str) -> Iterator[Tuple[str, str]]:
    """Yield (stage_id, group_id) for every group a team ID points into."""
    if not is_reference(team_id) and '==' not in team_id:
        return
    for part in bracketed_parts(parse_reference(team_id)):
        yield part.stage_id, part.group_id


def format_reference(reference: Reference) -> str:
    """Render a parsed reference back to its string form."""
    if isinstance(reference, Literal):
        return reference.team_id
    if isinstance(reference, LeaguePositionRef):
        return f"{{{reference.stage_id}:{reference.group_id}:{LEAGUE_REFERENCE_TYPE}:{reference.position}}}"
    if isinstance(reference, MatchRef):
        return f"{{{reference.stage_id}:{reference.group_id}:{reference.match_id}:{reference.result}}}"
    return (
        f"{format_reference(reference.left)}=={format_reference(reference.right)}"
        f"?{format_reference(reference.if_true)}:{format_reference(reference.if_false)}"
    )
