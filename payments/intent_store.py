"""Durable record of a team registration waiting on payment confirmation.

The store wraps any mutable mapping. In the web app that mapping is the Flask
session, which outlives the round trip to the payment gateway; tests hand in a
plain dict.
"""

import json
import logging

from payments.errors import ValidationError
from payments.records import RegistrationIntent

logger = logging.getLogger(__name__)

PENDING_REGISTRATION_KEY = 'pending_team_registration'
CURRENT_TRANSACTION_KEY = 'current_payment_txn_id'


class RegistrationIntentStore:
    """Holds at most one pending ``RegistrationIntent``."""

    def __init__(self, storage):
        self.storage = storage

    def save(self, intent: RegistrationIntent) -> None:
        if not intent.tournament_id or not str(intent.tournament_id).strip():
            raise ValidationError('Please select a tournament')
        if not intent.team_name or not intent.team_name.strip():
            raise ValidationError('Team name is required')

        self.storage[PENDING_REGISTRATION_KEY] = json.dumps(intent.to_dict())
        if intent.transaction_id:
            self.storage[CURRENT_TRANSACTION_KEY] = intent.transaction_id
        self._touch()

    def load(self) -> RegistrationIntent | None:
        raw = self.storage.get(PENDING_REGISTRATION_KEY)
        if not raw:
            return None

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError('intent is not an object')
            return RegistrationIntent.from_dict(data)
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning('Ignoring unreadable pending registration: %s', exc)
            return None

    def clear(self) -> None:
        self.storage.pop(PENDING_REGISTRATION_KEY, None)
        self.storage.pop(CURRENT_TRANSACTION_KEY, None)
        self._touch()

    def remember_transaction(self, transaction_id: str) -> None:
        """Record the last-issued transaction id without an intent."""
        self.storage[CURRENT_TRANSACTION_KEY] = transaction_id
        self._touch()

    def current_transaction_id(self) -> str | None:
        return self.storage.get(CURRENT_TRANSACTION_KEY) or None

    def _touch(self):
        # Flask sessions only persist when flagged as modified.
        if hasattr(self.storage, 'modified'):
            self.storage.modified = True
