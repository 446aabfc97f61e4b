from datetime import datetime
import re
from typing import Optional

from constants import (
    FORBIDDEN_ID_CHARACTERS, MAX_ID_LENGTH, MAX_NAME_LENGTH,
    MAX_METADATA_KEY_LENGTH, MAX_METADATA_VALUE_LENGTH
)
from services.exceptions import ValidationError

_TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')
_DURATION_PATTERN = re.compile(r'^[0-9]+:[0-5][0-9]$')
_DATE_PATTERN = re.compile(r'^[0-9]{4}-[0-9]{2}-[0-9]{2}$')


def validate_id(value: str, what: str) -> str:
    """
    Checks an ID used for stages, groups, matches, teams, clubs and players.

    IDs are 1-100 printable ASCII characters and may not contain any of the
    characters used by the team reference grammar.
    """
    if not isinstance(value, str) or len(value) < 1 or len(value) > MAX_ID_LENGTH:
        raise ValidationError(f'Invalid {what} ID: must be between 1 and {MAX_ID_LENGTH} characters long', 'id')
    for char in value:
        if not (' ' <= char <= '~') or char in FORBIDDEN_ID_CHARACTERS:
            raise ValidationError(
                f'Invalid {what} ID: must contain only ASCII printable characters excluding " : {{ }} ? =',
                'id'
            )
    return value


def validate_name(value: str, what: str, field: str = 'name') -> str:
    if not isinstance(value, str) or len(value) < 1 or len(value) > MAX_NAME_LENGTH:
        raise ValidationError(f'Invalid {what} {field}: must be between 1 and {MAX_NAME_LENGTH} characters long', field)
    return value


def validate_metadata(key: str, value: str) -> None:
    if not isinstance(key, str) or len(key) < 1 or len(key) > MAX_METADATA_KEY_LENGTH:
        raise ValidationError(f'Invalid key: must be between 1 and {MAX_METADATA_KEY_LENGTH} characters long', 'metadata')
    if not isinstance(value, str) or len(value) < 1 or len(value) > MAX_METADATA_VALUE_LENGTH:
        raise ValidationError(f'Invalid value: must be between 1 and {MAX_METADATA_VALUE_LENGTH} characters long', 'metadata')


def validate_date(value: str, field: str = 'date') -> str:
    """YYYY-MM-DD and a real calendar date."""
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise ValidationError(f'Invalid date "{value}": must be of the form YYYY-MM-DD', field)
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        raise ValidationError(f'Invalid date "{value}": date does not exist', field)
    return value


def validate_time(value: str, field: str) -> str:
    """HH:MM on a 24 hour clock."""
    if not isinstance(value, str) or not _TIME_PATTERN.match(value):
        raise ValidationError(f'Invalid {field} time "{value}": must contain a value of the form HH:mm using a 24 hour clock', field)
    return value


def validate_duration(value: str, field: str = 'duration') -> str:
    if not isinstance(value, str) or not _DURATION_PATTERN.match(value):
        raise ValidationError(f'Invalid duration "{value}": must contain a value of the form H:mm', field)
    return value


def validate_non_negative_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f'Invalid {field}: must be a non-negative integer', field)
    return value


def validate_optional_text(value: Optional[str], what: str, field: str) -> Optional[str]:
    if value is None:
        return None
    return validate_name(value, what, field)
