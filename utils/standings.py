from functools import cmp_to_key
from typing import Callable, Dict, List

from constants import (
    LOWER_IS_BETTER, ORDERING_LABELS, SCORING_LABELS,
    ORDER_POINTS, ORDER_WINS, ORDER_LOSSES, ORDER_HEAD_TO_HEAD,
    ORDER_POINTS_FOR, ORDER_POINTS_AGAINST, ORDER_POINTS_DIFFERENCE,
    ORDER_SETS_FOR, ORDER_SETS_AGAINST, ORDER_SETS_DIFFERENCE,
    ORDER_BONUS_POINTS, ORDER_PENALTY_POINTS
)

# Criterion code -> StandingsEntry attribute
_CRITERION_ATTRIBUTES: Dict[str, str] = {
    ORDER_POINTS: 'points',
    ORDER_WINS: 'wins',
    ORDER_LOSSES: 'losses',
    ORDER_POINTS_FOR: 'points_for',
    ORDER_POINTS_AGAINST: 'points_against',
    ORDER_POINTS_DIFFERENCE: 'points_difference',
    ORDER_SETS_FOR: 'sets_for',
    ORDER_SETS_AGAINST: 'sets_against',
    ORDER_SETS_DIFFERENCE: 'sets_difference',
    ORDER_BONUS_POINTS: 'bonus_points',
    ORDER_PENALTY_POINTS: 'penalty_points',
}


def compare_head_to_head(a, b) -> int:
    """
    Negative when a ranks above b on their direct results.

    Only meaningful when both entries have a recorded result against each
    other; otherwise it is a tie and the next criterion decides.
    """
    if b.team_id not in a.h2h or a.team_id not in b.h2h:
        return 0
    return b.h2h[a.team_id] - a.h2h[b.team_id]


def _attribute_comparator(criterion: str) -> Callable:
    attribute = _CRITERION_ATTRIBUTES[criterion]
    if criterion in LOWER_IS_BETTER:
        return lambda a, b: getattr(a, attribute) - getattr(b, attribute)
    return lambda a, b: getattr(b, attribute) - getattr(a, attribute)


def compare_by_name(a, b) -> int:
    a_key, b_key = (a.name.casefold(), a.name), (b.name.casefold(), b.name)
    if a_key < b_key:
        return -1
    if a_key > b_key:
        return 1
    return 0


def build_comparator(ordering: List[str]) -> Callable:
    """
    Chain the configured criteria into a single cmp function.

    The first criterion that separates two entries decides; if all of them
    tie, the team name does.
    """
    comparators = []
    for criterion in ordering:
        if criterion == ORDER_HEAD_TO_HEAD:
            comparators.append(compare_head_to_head)
        else:
            comparators.append(_attribute_comparator(criterion))
    comparators.append(compare_by_name)

    def compare(a, b) -> int:
        for comparator in comparators:
            result = comparator(a, b)
            if result != 0:
                return result
        return 0

    return compare


def sort_standings(entries: List, ordering: List[str]) -> List:
    """Return the entries sorted best-first by the given ordering criteria."""
    return sorted(entries, key=cmp_to_key(build_comparator(ordering)))


def ordering_text(ordering: List[str]) -> str:
    """E.g. 'Position is decided by points, then head-to-head'."""
    if not ordering:
        return ''
    labels = [ORDERING_LABELS[criterion] for criterion in ordering]
    return 'Position is decided by ' + ', then '.join(labels)


def _points_phrase(points: int, action: str) -> str:
    if points == 1:
        return f"1 point per {action}"
    return f"{points} points per {action}"


def scoring_text(points) -> str:
    """
    Describe how league points are earned, e.g.
    'Teams win 1 point per played, 3 points per win and 1 point per loss'.

    Returns an empty string when every value is zero.
    """
    phrases = []
    for key, action in SCORING_LABELS:
        value = points.get(key)
        if value == 0:
            continue
        # Win/lose by one set only worth mentioning when it differs from a normal win/loss
        if key == 'winByOne' and value == points.win:
            continue
        if key == 'loseByOne' and value == points.lose:
            continue
        phrases.append(_points_phrase(value, action))

    if not phrases:
        return ''
    if len(phrases) == 1:
        return 'Teams win ' + phrases[0]
    return 'Teams win ' + ', '.join(phrases[:-1]) + ' and ' + phrases[-1]
