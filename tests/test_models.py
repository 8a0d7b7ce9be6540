"""Payment attempt ledger tests."""

import pytest

from models import db, PaymentAttempt
from payments.records import (
    AmbiguousError,
    Failed,
    PaymentOutcome,
    PaymentStatus,
    Succeeded,
)


@pytest.fixture
def attempt(flask_app):
    return PaymentAttempt.record_initiated(
        transaction_id='tx1',
        amount=500,
        payer_name='Asha Rao',
        tournament_id='tour-1',
        team_name='Net Ninjas',
        organizer_email='olivia@test.com',
    )


class TestRecordInitiated:
    def test_creates_pending_row(self, attempt):
        stored = PaymentAttempt.query.filter_by(transaction_id='tx1').one()

        assert stored.status == 'PENDING'
        assert stored.registration_state == 'not_attempted'
        assert stored.amount == 500.0
        assert stored.team_name == 'Net Ninjas'
        assert stored.created_at is not None

    def test_same_transaction_updates_row(self, attempt):
        PaymentAttempt.record_initiated('tx1', '750', 'Asha Rao')

        assert PaymentAttempt.query.count() == 1
        assert PaymentAttempt.query.one().amount == 750.0

    def test_checkout_without_tournament(self, flask_app):
        checkout = PaymentAttempt.record_initiated('tx-c', 99, 'Walk-in Payer')

        assert checkout.tournament_id is None
        assert checkout.team_name is None


class TestRecordResolution:
    def test_registered_success(self, attempt):
        outcome = PaymentOutcome('tx1', PaymentStatus.SUCCESS, {'status': 'PAYMENT_SUCCESS'})
        state = Succeeded(outcome=outcome, team={'_id': 'team-1', 'name': 'Net Ninjas'})

        PaymentAttempt.record_resolution(state)

        stored = PaymentAttempt.query.filter_by(transaction_id='tx1').one()
        assert stored.status == 'SUCCESS'
        assert stored.registration_state == 'registered'
        assert stored.team_id == 'team-1'
        assert stored.terminal_kind == 'succeeded'
        assert stored.raw_payload == {'status': 'PAYMENT_SUCCESS'}
        assert stored.resolved_at is not None
        assert stored.needs_support is False

    def test_success_without_registration(self, attempt):
        outcome = PaymentOutcome('tx1', PaymentStatus.SUCCESS)

        stored = PaymentAttempt.record_resolution(Succeeded(outcome=outcome, registration_attempted=False))

        assert stored.registration_state == 'not_attempted'
        assert 'registration not attempted' in stored.message

    def test_failed_payment(self, attempt):
        outcome = PaymentOutcome('tx1', PaymentStatus.FAILED, source='lookup')

        stored = PaymentAttempt.record_resolution(Failed('Payment failed. Please try again.', outcome=outcome))

        assert stored.status == 'FAILED'
        assert stored.source == 'lookup'
        assert stored.terminal_kind == 'payment_failed'
        assert stored.registration_state == 'not_attempted'

    def test_registration_after_payment_needs_support(self, attempt):
        outcome = PaymentOutcome('tx1', PaymentStatus.UNKNOWN, {'error': 'timeout'})
        state = AmbiguousError(
            'payment succeeded, registration failed',
            error_kind='registration_after_payment_error',
            outcome=outcome,
            registration_attempted=True,
        )

        stored = PaymentAttempt.record_resolution(state)

        assert stored.registration_state == 'failed'
        assert stored.terminal_kind == 'registration_after_payment_error'
        assert stored.needs_support is True
        assert PaymentAttempt.awaiting_support().all() == [stored]

    def test_unknown_callback_creates_row(self, flask_app):
        outcome = PaymentOutcome('tx-unseen', PaymentStatus.FAILED)

        PaymentAttempt.record_resolution(Failed('Payment failed. Please try again.', outcome=outcome))

        assert PaymentAttempt.query.filter_by(transaction_id='tx-unseen').count() == 1

    def test_state_without_outcome_is_ignored(self, flask_app):
        assert PaymentAttempt.record_resolution(AmbiguousError('missing transaction id')) is None
        assert PaymentAttempt.query.count() == 0


class TestValidation:
    def test_rejects_unknown_status(self, flask_app):
        with pytest.raises(ValueError):
            PaymentAttempt(transaction_id='tx1', status='REFUNDED')

    def test_rejects_unknown_registration_state(self, flask_app):
        with pytest.raises(ValueError):
            PaymentAttempt(transaction_id='tx1', registration_state='maybe')

    def test_to_dict(self, attempt):
        data = attempt.to_dict()

        assert data['transaction_id'] == 'tx1'
        assert data['status'] == 'PENDING'
        assert data['resolved_at'] is None


class TestAwaitingSupport:
    def test_only_paid_unregistered_rows(self, flask_app):
        rows = [
            PaymentAttempt(transaction_id='a', status='SUCCESS', registration_state='failed'),
            PaymentAttempt(transaction_id='b', status='UNKNOWN', registration_state='failed'),
            PaymentAttempt(transaction_id='c', status='SUCCESS', registration_state='registered'),
            PaymentAttempt(transaction_id='d', status='FAILED', registration_state='not_attempted'),
        ]
        db.session.add_all(rows)
        db.session.commit()

        assert {row.transaction_id for row in PaymentAttempt.awaiting_support()} == {'a', 'b'}


class TestInitDb:
    def test_initialize_database_creates_ledger(self, tmp_path, monkeypatch):
        from init_db import initialize_database

        db_file = tmp_path / 'payments.db'
        monkeypatch.delenv('DATABASE_URL', raising=False)
        monkeypatch.setenv('SQLITE_PATH', str(db_file))

        initialize_database()

        assert db_file.exists()
