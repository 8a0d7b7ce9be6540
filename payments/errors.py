"""Error kinds raised or reported by the payment and registration workflow."""


class PaymentFlowError(Exception):
    """Base error for the payment workflow."""

    kind = 'payment_flow_error'

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(PaymentFlowError):
    """Form input is incomplete or malformed. Nothing was sent or stored."""

    kind = 'validation_error'

    def __init__(self, errors=None, message='Please fill all required fields'):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors or [message])
        super().__init__(self.errors[0], 400)


class BackendError(PaymentFlowError):
    """The Backend API was unreachable or answered with a failure."""

    kind = 'backend_error'

    def __init__(self, message='Backend request failed', status_code=502, payload=None):
        super().__init__(message, status_code)
        self.payload = payload


class PaymentInitiationError(PaymentFlowError):
    """The backend refused or could not create a payment session."""

    kind = 'payment_initiation_error'

    def __init__(self, message='Failed to initiate payment'):
        super().__init__(message, 502)


class PaymentStatusUnknown(PaymentFlowError):
    """Status lookup after the redirect failed; outcome could not be verified."""

    kind = 'payment_status_unknown'

    def __init__(self, message='Unable to verify payment status'):
        super().__init__(message, 502)


class RegistrationAfterPaymentError(PaymentFlowError):
    """Payment went through but the team registration did not."""

    kind = 'registration_after_payment_error'

    def __init__(self, message='payment succeeded, registration failed'):
        super().__init__(message, 502)


class PaymentFailed(PaymentFlowError):
    """The provider reported the payment as failed."""

    kind = 'payment_failed'

    def __init__(self, message='Payment failed. Please try again.'):
        super().__init__(message, 402)


class MissingTransactionId(PaymentFlowError):
    """The callback carried no usable transaction identifier."""

    kind = 'missing_transaction_id'

    def __init__(self, message='missing transaction id'):
        super().__init__(message, 400)
