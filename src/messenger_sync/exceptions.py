"""Exception hierarchy for the Messenger synchronization engine."""

from typing import Any


class MessengerSyncError(Exception):
    """Base exception for all Messenger synchronization errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConnectionUnavailable(MessengerSyncError):
    """Raised when no provider or signer can be obtained."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint


class FetchFailure(MessengerSyncError):
    """Raised when reading records from the Messenger contract fails."""

    pass


class AmountFormatError(MessengerSyncError):
    """Raised when a display-unit amount is not a valid decimal string."""

    def __init__(self, message: str, value: Any | None = None, details: dict | None = None):
        super().__init__(message, details)
        self.value = value


class SubmissionFailure(MessengerSyncError):
    """Raised when a post transaction is rejected or reverts."""

    def __init__(
        self,
        message: str,
        transaction_hash: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.transaction_hash = transaction_hash


class SubscriptionError(MessengerSyncError):
    """Raised when registering or removing the event listener fails."""

    pass


class ValidationError(MessengerSyncError):
    """Raised when input or contract payload validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value
