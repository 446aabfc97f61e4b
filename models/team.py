from dataclasses import dataclass, field
from typing import Any, Dict, List

from constants import UNKNOWN_TEAM_ID, UNKNOWN_TEAM_NAME
from services.exceptions import ValidationError
from utils.data_validation import validate_id, validate_name


# --- Dataclass for a team contact ---
@dataclass
class Contact:
    id: str
    roles: List[str]
    name: str | None = None
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)
    notes: str | None = None

    def __post_init__(self):
        validate_id(self.id, 'contact')
        if not self.roles:
            raise ValidationError('Invalid contact roles: at least one role is required', 'roles')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Contact':
        return cls(
            id=data['id'],
            roles=list(data.get('roles', [])),
            name=data.get('name'),
            emails=list(data.get('emails', [])),
            phones=list(data.get('phones', [])),
            notes=data.get('notes'),
        )

    def to_dict(self) -> Dict[str, Any]:
        contact: Dict[str, Any] = {'id': self.id}
        if self.name is not None:
            contact['name'] = self.name
        contact['roles'] = list(self.roles)
        if self.emails:
            contact['emails'] = list(self.emails)
        if self.phones:
            contact['phones'] = list(self.phones)
        if self.notes is not None:
            contact['notes'] = self.notes
        return contact


@dataclass
class CompetitionTeam:
    id: str
    name: str
    club_id: str | None = None
    notes: str | None = None
    contacts: List[Contact] = field(default_factory=list)

    def __post_init__(self):
        validate_id(self.id, 'team')
        validate_name(self.name, 'team')

    @property
    def is_unknown(self) -> bool:
        return self.id == UNKNOWN_TEAM_ID

    def has_contact(self, contact_id: str) -> bool:
        return any(c.id == contact_id for c in self.contacts)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CompetitionTeam':
        return cls(
            id=data['id'],
            name=data['name'],
            club_id=data.get('club'),
            notes=data.get('notes'),
            contacts=[Contact.from_dict(c) for c in data.get('contacts', [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize, leaving out fields that were never set."""
        team: Dict[str, Any] = {'id': self.id, 'name': self.name}
        if self.contacts:
            team['contacts'] = [c.to_dict() for c in self.contacts]
        if self.club_id is not None:
            team['club'] = self.club_id
        if self.notes is not None:
            team['notes'] = self.notes
        return team


def make_unknown_team() -> CompetitionTeam:
    """The sentinel returned whenever a team reference cannot be resolved."""
    return CompetitionTeam(id=UNKNOWN_TEAM_ID, name=UNKNOWN_TEAM_NAME)


@dataclass
class Club:
    id: str
    name: str
    notes: str | None = None

    def __post_init__(self):
        validate_id(self.id, 'club')
        validate_name(self.name, 'club')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Club':
        return cls(id=data['id'], name=data['name'], notes=data.get('notes'))

    def to_dict(self) -> Dict[str, Any]:
        club: Dict[str, Any] = {'id': self.id, 'name': self.name}
        if self.notes is not None:
            club['notes'] = self.notes
        return club


@dataclass
class Player:
    id: str
    name: str
    number: int | None = None
    team_id: str | None = None
    notes: str | None = None

    def __post_init__(self):
        validate_id(self.id, 'player')
        validate_name(self.name, 'player')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        return cls(
            id=data['id'],
            name=data['name'],
            number=data.get('number'),
            team_id=data.get('team'),
            notes=data.get('notes'),
        )

    def to_dict(self) -> Dict[str, Any]:
        player: Dict[str, Any] = {'id': self.id, 'name': self.name}
        if self.number is not None:
            player['number'] = self.number
        if self.team_id is not None:
            player['team'] = self.team_id
        if self.notes is not None:
            player['notes'] = self.notes
        return player
