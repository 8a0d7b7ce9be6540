"""Value types shared by the intent store, the initiator and the resolver."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Union


class PaymentStatus(str, Enum):
    SUCCESS = 'SUCCESS'
    FAILED = 'FAILED'
    PENDING = 'PENDING'
    UNKNOWN = 'UNKNOWN'


# Provider tokens, matched exactly.
REDIRECT_SUCCESS_CODES = ('PAYMENT_SUCCESS', 'SUCCESS')
LOOKUP_SUCCESS_STATUSES = ('SUCCESS', 'COMPLETED')

PAYMENT_METHOD_ONLINE = 'online'
PAYMENT_STATUS_COMPLETED = 'completed'

MEMBER_FIELD_PATTERN = re.compile(r'^member_(\d+)_(name|email|phone)$')


@dataclass
class TeamMember:
    name: str
    email: str = ''
    phone: str = ''

    @classmethod
    def from_dict(cls, data: dict) -> 'TeamMember':
        return cls(
            name=str(data.get('name') or '').strip(),
            email=str(data.get('email') or '').strip(),
            phone=str(data.get('phone') or '').strip(),
        )

    def is_blank(self) -> bool:
        return not (self.name or self.email or self.phone)


@dataclass
class TeamForm:
    """Team details as typed into the registration screen."""

    name: str = ''
    captain_name: str = ''
    captain_email: str = ''
    captain_phone: str = ''
    members: list[TeamMember] = field(default_factory=list)

    @staticmethod
    def member_rows(form) -> list[TeamMember]:
        """Every ``member_<n>_*`` row in index order, blank rows included."""
        indexes = sorted({
            int(match.group(1))
            for match in (MEMBER_FIELD_PATTERN.match(key) for key in form)
            if match
        })
        return [
            TeamMember(
                name=form.get(f'member_{index}_name', '').strip(),
                email=form.get(f'member_{index}_email', '').strip(),
                phone=form.get(f'member_{index}_phone', '').strip(),
            )
            for index in indexes
        ]

    @classmethod
    def from_form(cls, form) -> 'TeamForm':
        """Build from a submitted form using ``member_<n>_name`` style fields."""
        return cls(
            name=form.get('name', '').strip(),
            captain_name=form.get('captain_name', '').strip(),
            captain_email=form.get('captain_email', '').strip(),
            captain_phone=form.get('captain_phone', '').strip(),
            members=[member for member in cls.member_rows(form) if not member.is_blank()],
        )

    def validate(self) -> list[str]:
        errors: list[str] = []

        if not self.name:
            errors.append('Team name is required')
        if not self.captain_name:
            errors.append('Captain name is required')
        if not self.captain_email:
            errors.append('Captain email is required')
        if not self.captain_phone:
            errors.append('Captain phone is required')

        if not self.members:
            errors.append('Team must have at least one member')
        elif any(not member.name or not member.email for member in self.members):
            errors.append('Please complete all team member details')

        return errors


@dataclass
class RegistrationIntent:
    """What to register once the payment for ``transaction_id`` succeeds."""

    tournament_id: str
    team_name: str
    captain_name: str = ''
    captain_email: str = ''
    captain_phone: str = ''
    members: list[TeamMember] = field(default_factory=list)
    transaction_id: Optional[str] = None

    @classmethod
    def from_form(cls, form: TeamForm, tournament_id, transaction_id=None) -> 'RegistrationIntent':
        return cls(
            tournament_id=str(tournament_id),
            team_name=form.name,
            captain_name=form.captain_name,
            captain_email=form.captain_email,
            captain_phone=form.captain_phone,
            members=[TeamMember(m.name, m.email, m.phone) for m in form.members],
            transaction_id=transaction_id,
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'RegistrationIntent':
        members = data.get('members') or []
        if not isinstance(members, list) or not all(isinstance(m, dict) for m in members):
            raise ValueError('members must be a list of objects')
        return cls(
            tournament_id=str(data['tournament_id']),
            team_name=str(data['team_name']),
            captain_name=data.get('captain_name') or '',
            captain_email=data.get('captain_email') or '',
            captain_phone=data.get('captain_phone') or '',
            members=[TeamMember.from_dict(member) for member in members],
            transaction_id=data.get('transaction_id'),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def members_payload(self) -> list[dict]:
        return [asdict(member) for member in self.members]


@dataclass
class InitiatedPayment:
    transaction_id: str
    payment_url: str


@dataclass
class PaymentOutcome:
    transaction_id: str
    status: PaymentStatus
    raw: dict = field(default_factory=dict)
    source: str = 'redirect'  # 'redirect' or 'lookup'

    @property
    def treated_as_success(self) -> bool:
        return self.status in (PaymentStatus.SUCCESS, PaymentStatus.UNKNOWN)


@dataclass
class TeamRegistrationResult:
    accepted: bool
    team_id: Optional[str] = None
    failure_reason: Optional[str] = None
    team: dict = field(default_factory=dict)


# Resolver states. Only ``Resolving`` is non-terminal.

@dataclass
class Resolving:
    transaction_id: Optional[str] = None

    kind = 'resolving'
    terminal = False


@dataclass
class Succeeded:
    outcome: PaymentOutcome
    registration_attempted: bool = True
    team: dict = field(default_factory=dict)
    tournament: Optional[dict] = None

    kind = 'succeeded'
    terminal = True

    @property
    def message(self) -> str:
        if not self.registration_attempted:
            return 'Payment successful! Payment resolved, registration not attempted.'
        return 'Payment successful! Team registered successfully!'


@dataclass
class Failed:
    reason: str
    error_kind: str = 'payment_failed'
    outcome: Optional[PaymentOutcome] = None

    kind = 'failed'
    terminal = True

    @property
    def message(self) -> str:
        return self.reason


@dataclass
class AmbiguousError:
    reason: str
    error_kind: str = ''
    outcome: Optional[PaymentOutcome] = None
    registration_attempted: bool = False

    kind = 'ambiguous_error'
    terminal = True

    @property
    def message(self) -> str:
        return self.reason


TerminalState = Union[Succeeded, Failed, AmbiguousError]
