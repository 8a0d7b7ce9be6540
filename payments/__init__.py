"""
Payment-confirmed team registration workflow.
Intent store, payment initiator and callback resolver over the Backend API.
"""

from .api import BackendClient
from .errors import (
    PaymentFlowError,
    ValidationError,
    BackendError,
    PaymentInitiationError,
    PaymentStatusUnknown,
    RegistrationAfterPaymentError,
    PaymentFailed,
    MissingTransactionId,
)
from .initiator import PaymentInitiator
from .intent_store import RegistrationIntentStore
from .resolver import CallbackResolver

__all__ = [
    'BackendClient',
    'PaymentFlowError',
    'ValidationError',
    'BackendError',
    'PaymentInitiationError',
    'PaymentStatusUnknown',
    'RegistrationAfterPaymentError',
    'PaymentFailed',
    'MissingTransactionId',
    'PaymentInitiator',
    'RegistrationIntentStore',
    'CallbackResolver',
]
