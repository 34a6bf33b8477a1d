"""Payment error taxonomy shared by the MPESA service and its HTTP surface."""


class PaymentError(Exception):
    """Base class for failures while initiating a payment."""

    error_type = "PAYMENT_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UpstreamAuthError(PaymentError):
    """The gateway identity endpoint did not issue an access token."""

    error_type = "UPSTREAM_AUTH"
    status_code = 502


class UpstreamBusinessError(PaymentError):
    """The gateway answered but rejected the push request."""

    error_type = "UPSTREAM_REJECTED"
    status_code = 502


class PersistenceError(PaymentError):
    """The push was accepted but we could not record it locally."""

    error_type = "PERSISTENCE"
    status_code = 500
