from datetime import datetime
import json

import pytz

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import inspect, text
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.orm import validates

db = SQLAlchemy()

IST = pytz.timezone('Asia/Kolkata')

ATTEMPT_STATUSES = ('PENDING', 'SUCCESS', 'FAILED', 'UNKNOWN')
REGISTRATION_STATES = ('not_attempted', 'registered', 'failed')


def current_time():
    return datetime.now(IST)


class PaymentAttempt(db.Model):
    """Audit trail of payment sessions opened from this front-end.

    Rows are written when a payment is initiated and updated when the gateway
    hands the browser back. The pending registration itself lives in the
    user's session; this table only records what happened so support staff
    can find payments whose team registration never went through.
    """

    __tablename__ = 'payment_attempt'

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    tournament_id = db.Column(db.String(64))
    team_name = db.Column(db.String(120))
    payer_name = db.Column(db.String(120))
    amount = db.Column(db.Float, default=0)
    status = db.Column(db.String(20), default='PENDING')  # PENDING, SUCCESS, FAILED, UNKNOWN
    source = db.Column(db.String(20))  # redirect or lookup
    raw_payload = db.Column(db.JSON)
    registration_state = db.Column(db.String(20), default='not_attempted')
    team_id = db.Column(db.String(64))
    terminal_kind = db.Column(db.String(40))
    message = db.Column(db.String(255))
    organizer_email = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, default=current_time)
    resolved_at = db.Column(db.DateTime)

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<PaymentAttempt {self.transaction_id} status={self.status}>"

    @validates('status')
    def validate_status(self, key, value):
        if value not in ATTEMPT_STATUSES:
            raise ValueError(f'Unknown payment status: {value}')
        return value

    @validates('registration_state')
    def validate_registration_state(self, key, value):
        if value not in REGISTRATION_STATES:
            raise ValueError(f'Unknown registration state: {value}')
        return value

    @property
    def needs_support(self) -> bool:
        """Money moved but the team was never registered."""
        return self.registration_state == 'failed' and self.status in ('SUCCESS', 'UNKNOWN')

    @classmethod
    def record_initiated(cls, transaction_id, amount, payer_name, tournament_id=None,
                         team_name=None, organizer_email=None, commit=True):
        attempt = cls.query.filter_by(transaction_id=transaction_id).first()
        if attempt is None:
            attempt = cls(transaction_id=transaction_id)
            db.session.add(attempt)

        attempt.amount = float(amount or 0)
        attempt.payer_name = payer_name
        attempt.tournament_id = str(tournament_id) if tournament_id else None
        attempt.team_name = team_name
        attempt.organizer_email = organizer_email
        attempt.status = 'PENDING'

        if commit:
            db.session.commit()
        return attempt

    @classmethod
    def record_resolution(cls, state, commit=True):
        """Update the attempt matching ``state.outcome`` with the resolver's verdict."""
        outcome = getattr(state, 'outcome', None)
        if outcome is None:
            return None

        attempt = cls.query.filter_by(transaction_id=outcome.transaction_id).first()
        if attempt is None:
            attempt = cls(transaction_id=outcome.transaction_id)
            db.session.add(attempt)

        attempt.status = outcome.status.value
        attempt.source = outcome.source
        attempt.raw_payload = json.loads(json.dumps(outcome.raw, default=str))
        attempt.terminal_kind = getattr(state, 'error_kind', None) or state.kind
        attempt.message = state.message[:255]
        attempt.resolved_at = current_time()

        if state.kind == 'succeeded' and state.registration_attempted:
            attempt.registration_state = 'registered'
            attempt.team_id = state.team.get('_id') if state.team else None
        elif getattr(state, 'registration_attempted', False):
            attempt.registration_state = 'failed'

        if commit:
            db.session.commit()
        return attempt

    @classmethod
    def awaiting_support(cls):
        return (
            cls.query.filter(
                cls.registration_state == 'failed',
                cls.status.in_(['SUCCESS', 'UNKNOWN']),
            )
            .order_by(cls.created_at.desc())
        )

    def to_dict(self):
        return {
            'transaction_id': self.transaction_id,
            'tournament_id': self.tournament_id,
            'team_name': self.team_name,
            'amount': self.amount,
            'status': self.status,
            'registration_state': self.registration_state,
            'team_id': self.team_id,
            'terminal_kind': self.terminal_kind,
            'message': self.message,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'resolved_at': self.resolved_at.isoformat() if self.resolved_at else None,
        }


def ensure_schema_integrity():
    """Apply lightweight schema updates required for new fields."""

    inspector = inspect(db.engine)

    try:
        attempt_columns = {col['name'] for col in inspector.get_columns('payment_attempt')}
    except NoSuchTableError:
        return

    migrations: list[str] = []

    if 'organizer_email' not in attempt_columns:
        migrations.append('ALTER TABLE payment_attempt ADD COLUMN organizer_email VARCHAR(120)')
    if 'source' not in attempt_columns:
        migrations.append('ALTER TABLE payment_attempt ADD COLUMN source VARCHAR(20)')

    for ddl in migrations:
        with db.engine.begin() as connection:
            connection.execute(text(ddl))
