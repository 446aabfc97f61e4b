from enum import IntFlag

# Document format
SUPPORTED_VERSIONS = ["1.0.0"]

# Unknown team sentinel
UNKNOWN_TEAM_ID = "UNKNOWN"
UNKNOWN_TEAM_NAME = "UNKNOWN"

# Group kinds and match types as they appear in a competition document
GROUP_TYPE_LEAGUE = "league"
GROUP_TYPE_KNOCKOUT = "knockout"
GROUP_TYPE_CROSSOVER = "crossover"
GROUP_TYPES = [GROUP_TYPE_LEAGUE, GROUP_TYPE_KNOCKOUT, GROUP_TYPE_CROSSOVER]

MATCH_TYPE_CONTINUOUS = "continuous"
MATCH_TYPE_SETS = "sets"
MATCH_TYPES = [MATCH_TYPE_CONTINUOUS, MATCH_TYPE_SETS]

# Reference grammar
LEAGUE_REFERENCE_TYPE = "league"
MATCH_RESULT_WINNER = "winner"
MATCH_RESULT_LOSER = "loser"
MATCH_RESULTS = [MATCH_RESULT_WINNER, MATCH_RESULT_LOSER]

# Characters that may never appear in stage, group, match, team or club IDs
# since they are part of the reference grammar
FORBIDDEN_ID_CHARACTERS = '":{}?='
MAX_ID_LENGTH = 100
MAX_NAME_LENGTH = 1000
MAX_METADATA_KEY_LENGTH = 100
MAX_METADATA_VALUE_LENGTH = 1000

# Defaults used when sorting matches that have no date or start time
DEFAULT_MATCH_DATE = "2023-02-12"
DEFAULT_MATCH_START = "10:00"

# Set-based match rules
SET_CONFIG_DEFAULTS = {
    "maxSets": 5,
    "setsToWin": 3,
    "clearPoints": 2,
    "minPoints": 1,
    "pointsToWin": 25,
    "lastSetPointsToWin": 15,
    "maxPoints": 1000,
    "lastSetMaxPoints": 1000,
}

# League points awarded per result
LEAGUE_POINTS_DEFAULTS = {
    "played": 0,
    "perSet": 0,
    "win": 3,
    "winByOne": 0,
    "lose": 0,
    "loseByOne": 0,
    "forfeit": 0,
}

# Standings ordering criteria
ORDER_POINTS = "PTS"
ORDER_WINS = "WINS"
ORDER_LOSSES = "LOSSES"
ORDER_HEAD_TO_HEAD = "H2H"
ORDER_POINTS_FOR = "PF"
ORDER_POINTS_AGAINST = "PA"
ORDER_POINTS_DIFFERENCE = "PD"
ORDER_SETS_FOR = "SF"
ORDER_SETS_AGAINST = "SA"
ORDER_SETS_DIFFERENCE = "SD"
ORDER_BONUS_POINTS = "BP"
ORDER_PENALTY_POINTS = "PP"

ORDERING_LABELS = {
    ORDER_POINTS: "points",
    ORDER_WINS: "wins",
    ORDER_LOSSES: "losses",
    ORDER_HEAD_TO_HEAD: "head-to-head",
    ORDER_POINTS_FOR: "points for",
    ORDER_POINTS_AGAINST: "points against",
    ORDER_POINTS_DIFFERENCE: "points difference",
    ORDER_SETS_FOR: "sets for",
    ORDER_SETS_AGAINST: "sets against",
    ORDER_SETS_DIFFERENCE: "sets difference",
    ORDER_BONUS_POINTS: "bonus points",
    ORDER_PENALTY_POINTS: "penalty points",
}

# Criteria where the smaller value ranks higher
LOWER_IS_BETTER = [ORDER_LOSSES, ORDER_POINTS_AGAINST, ORDER_SETS_AGAINST, ORDER_PENALTY_POINTS]

# Wording for the scoring description, in the order it is rendered
SCORING_LABELS = [
    ("played", "played"),
    ("win", "win"),
    ("perSet", "set"),
    ("winByOne", "win by one set"),
    ("lose", "loss"),
    ("loseByOne", "loss by one set"),
    ("forfeit", "forfeited match"),
]

# Match official roles, in serialization order
OFFICIAL_PERSON_ROLES = ["first", "second", "challenge", "assistantChallenge", "reserve", "scorer", "assistantScorer"]
OFFICIAL_PERSON_LIST_ROLES = ["linespersons", "ballCrew"]


class TeamFilter(IntFlag):
    """Categories for Group.get_team_ids and Stage.get_team_ids."""
    FIXED_ID = 1      # literal team IDs only
    KNOWN = 2         # IDs that currently resolve to a real team
    MAYBE = 4         # teams that could still reach an incomplete group
    ALL = 8           # every ID in a team or officials slot
    PLAYING = 16      # IDs in home/away slots
    OFFICIATING = 32  # IDs in officials slots


class MatchFilter(IntFlag):
    """Selects matches for a team in Group/Stage match queries."""
    ALL_IN_GROUP = 1
    ALL = 2
    PLAYING = 4
    OFFICIATING = 8
