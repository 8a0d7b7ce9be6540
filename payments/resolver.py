"""Resolves the browser's return from the payment gateway.

``CallbackResolver.resolve`` moves from ``Resolving`` to exactly one terminal
state: ``Succeeded``, ``Failed`` or ``AmbiguousError``. The pending
registration in the intent store is the single-use gate that keeps a team
from being registered twice for one transaction: it is cleared after a clean
success or a reported failure, and kept when money moved but registration did
not.
"""

import logging

from payments.errors import (
    BackendError,
    MissingTransactionId,
    PaymentFailed,
    PaymentStatusUnknown,
    RegistrationAfterPaymentError,
)
from payments.records import (
    LOOKUP_SUCCESS_STATUSES,
    PAYMENT_METHOD_ONLINE,
    PAYMENT_STATUS_COMPLETED,
    REDIRECT_SUCCESS_CODES,
    AmbiguousError,
    Failed,
    PaymentOutcome,
    PaymentStatus,
    Resolving,
    Succeeded,
    TeamRegistrationResult,
)

logger = logging.getLogger(__name__)

TRANSACTION_ID_PARAMS = ('id', 'merchantTransactionId')
STATUS_CODE_PARAMS = ('code', 'status')

UNVERIFIED_WITHOUT_INTENT = 'payment status could not be verified'


def first_param(query_params, names):
    for name in names:
        value = query_params.get(name)
        if value:
            return value
    return None


class CallbackResolver:
    def __init__(self, client, store, treat_unknown_as_success=True):
        self.client = client
        self.store = store
        self.treat_unknown_as_success = treat_unknown_as_success
        self.state = Resolving()

    def resolve(self, query_params):
        transaction_id = first_param(query_params, TRANSACTION_ID_PARAMS)
        if not transaction_id:
            return self._finish(AmbiguousError(
                reason=MissingTransactionId().message,
                error_kind=MissingTransactionId.kind,
            ))

        self.state = Resolving(transaction_id=transaction_id)
        intent = self._load_intent(transaction_id)

        outcome = self.determine_outcome(transaction_id, query_params)
        logger.info('Payment %s resolved as %s via %s', transaction_id, outcome.status.value, outcome.source)

        if outcome.status == PaymentStatus.FAILED:
            # A foreign pending registration stays for its own callback.
            if intent is not None or self.store.load() is None:
                self.store.clear()
            return self._finish(Failed(
                reason=self._failure_reason(outcome),
                error_kind=PaymentFailed.kind,
                outcome=outcome,
            ))

        # An unverified payment only goes ahead when there is a team to register.
        if outcome.status == PaymentStatus.UNKNOWN and (intent is None or not self.treat_unknown_as_success):
            return self._finish(AmbiguousError(
                reason=UNVERIFIED_WITHOUT_INTENT,
                error_kind=PaymentStatusUnknown.kind,
                outcome=outcome,
            ))

        if intent is None:
            if self.store.load() is None:
                self.store.clear()
            return self._finish(Succeeded(outcome=outcome, registration_attempted=False))

        result = self.register(intent, transaction_id)
        if not result.accepted:
            logger.error(
                'Payment %s succeeded but registration of team %r failed: %s',
                transaction_id, intent.team_name, result.failure_reason,
            )
            return self._finish(AmbiguousError(
                reason=RegistrationAfterPaymentError().message,
                error_kind=RegistrationAfterPaymentError.kind,
                outcome=outcome,
                registration_attempted=True,
            ))

        self.store.clear()
        return self._finish(Succeeded(
            outcome=outcome,
            registration_attempted=True,
            team=result.team,
            tournament=self._tournament_info(intent.tournament_id),
        ))

    def determine_outcome(self, transaction_id, query_params) -> PaymentOutcome:
        code = first_param(query_params, STATUS_CODE_PARAMS)
        if code:
            status = PaymentStatus.SUCCESS if code in REDIRECT_SUCCESS_CODES else PaymentStatus.FAILED
            raw = {
                'merchantTransactionId': query_params.get('merchantTransactionId'),
                'transactionId': query_params.get('transactionId'),
                'status': code,
            }
            return PaymentOutcome(transaction_id, status, raw=raw, source='redirect')

        try:
            data = self.client.payment_status(transaction_id)
            provider_status = data['status']
            if not isinstance(provider_status, str):
                raise TypeError('status is not a string')
        except BackendError as exc:
            logger.warning('Status lookup for %s failed: %s', transaction_id, exc.message)
            return PaymentOutcome(transaction_id, PaymentStatus.UNKNOWN, raw={'error': exc.message}, source='lookup')
        except (KeyError, TypeError) as exc:
            logger.warning('Status lookup for %s returned an unexpected shape: %s', transaction_id, exc)
            return PaymentOutcome(transaction_id, PaymentStatus.UNKNOWN, raw={'error': str(exc)}, source='lookup')

        status = PaymentStatus.SUCCESS if provider_status in LOOKUP_SUCCESS_STATUSES else PaymentStatus.FAILED
        return PaymentOutcome(transaction_id, status, raw=dict(data), source='lookup')

    def register(self, intent, transaction_id) -> TeamRegistrationResult:
        try:
            data = self.client.register_team(
                intent,
                payment_reference=transaction_id,
                payment_method=PAYMENT_METHOD_ONLINE,
                payment_status=PAYMENT_STATUS_COMPLETED,
            )
        except BackendError as exc:
            return TeamRegistrationResult(accepted=False, failure_reason=exc.message)

        team = data if isinstance(data, dict) else {}
        return TeamRegistrationResult(accepted=True, team_id=team.get('_id'), team=team)

    def _load_intent(self, transaction_id):
        intent = self.store.load()
        if intent is None:
            logger.info('No pending registration found for payment %s', transaction_id)
            return None
        if intent.transaction_id and intent.transaction_id != transaction_id:
            logger.warning(
                'Pending registration belongs to payment %s, not %s; leaving it untouched',
                intent.transaction_id, transaction_id,
            )
            return None
        return intent

    def _tournament_info(self, tournament_id):
        try:
            return self.client.get_tournament(tournament_id)
        except BackendError as exc:
            logger.debug('Could not load tournament %s: %s', tournament_id, exc.message)
            return None

    @staticmethod
    def _failure_reason(outcome):
        status = outcome.raw.get('status') or outcome.status.value
        return f'Payment {str(status).lower()}. Please try again.'

    def _finish(self, state):
        self.state = state
        return state
