"""Console error taxonomy.

Every error carries the HTTP status it maps to and a stable ``error_code`` so the
API boundary can render it without knowing which layer raised it.
"""

from __future__ import annotations


class ConsoleError(Exception):
    """Base console exception."""

    error_code = "console_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidCredentialError(ConsoleError):
    """Raised when uploaded key material is malformed or incomplete."""

    error_code = "invalid_credential"
    status_code = 400


class InvalidRequestError(ConsoleError):
    error_code = "invalid_request"
    status_code = 400


class MissingLocationError(ConsoleError):
    error_code = "missing_location"
    status_code = 400


class InvalidLocationError(ConsoleError):
    error_code = "invalid_location"
    status_code = 400


class NoAvailableZoneError(ConsoleError):
    error_code = "no_available_zone"
    status_code = 400


class AccountNotFoundError(ConsoleError):
    error_code = "account_not_found"
    status_code = 404

    def __init__(self, account_id: str) -> None:
        super().__init__("Account not found")
        self.account_id = account_id


class UnknownActionError(ConsoleError):
    error_code = "unknown_action"
    status_code = 404

    def __init__(self, action: str) -> None:
        super().__init__("Unknown action")
        self.action = action


class UnauthorizedError(ConsoleError):
    error_code = "unauthorized"
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class AccountUnavailableError(ConsoleError):
    """Raised when an account exists but no usable client bundle can be built."""

    error_code = "account_unavailable"
    status_code = 503

    def __init__(self, account_id: str) -> None:
        super().__init__("Account key not configured")
        self.account_id = account_id


class PasswordPolicyError(ConsoleError):
    error_code = "password_policy"
    status_code = 400


class RemoteAPIError(ConsoleError):
    """Failure surfaced by Compute Engine; the message is passed through verbatim."""

    error_code = "remote_api_error"
    status_code = 500


def describe_remote_error(exc: BaseException) -> str:
    """Message of a Compute Engine error without the status-code prefix."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc)
