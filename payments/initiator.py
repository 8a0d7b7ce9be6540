"""Starts a payment session and parks the team registration until it returns."""

import logging
import re

from payments.errors import BackendError, PaymentInitiationError, ValidationError
from payments.records import InitiatedPayment, RegistrationIntent, TeamForm

logger = logging.getLogger(__name__)

MOBILE_NUMBER_PATTERN = re.compile(r'^\d{10}$')


class PaymentInitiator:
    def __init__(self, client, store):
        self.client = client
        self.store = store

    def initiate(self, form: TeamForm, tournament_id, entry_fee) -> InitiatedPayment:
        """Request a payment session for ``form`` and persist the pending registration.

        Raises ``ValidationError`` before touching the network or the store,
        and ``PaymentInitiationError`` when the backend cannot open a session.
        The caller redirects the browser to ``payment_url`` on return.
        """
        errors = form.validate()
        if not tournament_id or not str(tournament_id).strip():
            errors.append('Please select a tournament')
        if errors:
            raise ValidationError(errors)

        session = self._open_session(
            name=form.captain_name,
            mobile_number=form.captain_phone,
            amount=entry_fee,
            description=f'Registration fee for team {form.name}',
        )

        intent = RegistrationIntent.from_form(form, tournament_id, session.transaction_id)
        self.store.save(intent)
        logger.info(
            'Payment %s initiated for team %r in tournament %s',
            session.transaction_id, form.name, tournament_id,
        )
        return session

    def initiate_checkout(self, name, mobile_number, amount) -> InitiatedPayment:
        """Plain checkout with no team registration attached."""
        name = (name or '').strip()
        mobile_number = (mobile_number or '').strip()

        if not name or not mobile_number or amount in (None, ''):
            raise ValidationError('Please fill all fields')
        if not MOBILE_NUMBER_PATTERN.match(mobile_number):
            raise ValidationError('Mobile number must be exactly 10 digits')
        try:
            amount_value = float(amount)
        except (TypeError, ValueError):
            raise ValidationError('Please enter a valid amount')
        if amount_value <= 0:
            raise ValidationError('Please enter a valid amount')
        if amount_value.is_integer():
            amount_value = int(amount_value)

        session = self._open_session(name=name, mobile_number=mobile_number, amount=amount_value)
        self.store.remember_transaction(session.transaction_id)
        logger.info('Checkout payment %s initiated for %r', session.transaction_id, name)
        return session

    def _open_session(self, name, mobile_number, amount, description=None) -> InitiatedPayment:
        try:
            data = self.client.initiate_payment(
                name=name,
                mobile_number=mobile_number,
                amount=amount,
                description=description,
            )
        except BackendError as exc:
            logger.warning('Payment initiation failed: %s', exc.message)
            raise PaymentInitiationError(exc.message) from exc

        if not isinstance(data, dict) or not data.get('paymentUrl') or not data.get('transactionId'):
            raise PaymentInitiationError('Failed to generate payment URL')

        return InitiatedPayment(
            transaction_id=str(data['transactionId']),
            payment_url=data['paymentUrl'],
        )
