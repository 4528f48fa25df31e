# kibbledrop/domain/errors.py
"""
Exceptions raised by services. ValueError and PermissionError are used
directly for 400 / 403; the classes below cover the remaining cases.
"""


class NotFoundError(LookupError):
    """Missing row, or a row owned by somebody else."""


class AuthenticationError(Exception):
    """No session or an invalid one."""


class PaymentGatewayError(RuntimeError):
    """A payment provider call failed or the provider is not configured."""


class WebhookSignatureError(ValueError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code
