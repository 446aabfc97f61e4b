# Helpers shared by the models: reference parsing, standings ordering and field validation

from .team_resolution import (
    Literal,
    LeaguePositionRef,
    MatchRef,
    Ternary,
    parse_reference,
    is_reference,
)
