"""
Custom exceptions for SettleUp.
"""


class SettleUpError(Exception):
    """Base exception for all SettleUp errors."""

    pass


class InvalidIdentifierError(SettleUpError):
    """Raised when an event identifier is missing or malformed."""

    def __init__(self, value, message: str = None):
        self.value = value
        super().__init__(message or f"Invalid identifier: {value!r}")


class SnapshotValidationError(SettleUpError):
    """Raised when rows loaded for an event cannot be turned into a valid snapshot."""

    pass


class ShareAllocationError(SettleUpError):
    """Raised when expense shares cannot be allocated to match the expense amount."""

    pass


class InvalidStatusTransitionError(SettleUpError):
    """Raised when a reimbursement status change is not allowed."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change reimbursement status from '{current}' to '{requested}'"
        )


class ParticipantLinkError(SettleUpError):
    """Raised when a participant cannot be linked to a user account."""

    pass
