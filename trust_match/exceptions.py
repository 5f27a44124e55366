"""Custom exception hierarchy for trust-match."""

from decimal import Decimal


class TrustMatchError(Exception):
    """Base exception for all trust-match errors."""

    retryable = False


class NotFoundError(TrustMatchError):
    """Raised when a referenced application, trust or approval does not exist."""


class ReferentialIntegrityError(NotFoundError):
    """Raised when a foreign key reference is violated."""


class ValidationError(TrustMatchError):
    """Raised when an input value is malformed.

    Parameters
    ----------
    message : str
        Human readable description.
    field : str | None
        Name of the offending field.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidEntityStateError(TrustMatchError):
    """Raised when an entity is in an invalid state for the operation."""


class OverAllocationError(TrustMatchError):
    """Raised when an approval would push funding past the requested total.

    Nothing is written when this is raised. ``remaining_amount`` is the
    largest amount that could still be approved on the application.
    """

    def __init__(
        self,
        application_id: str,
        requested_amount: Decimal,
        approved_amount: Decimal,
        remaining_amount: Decimal,
        proposed_amount: Decimal,
    ) -> None:
        super().__init__(
            f"Approval of {proposed_amount} exceeds remaining amount "
            f"{remaining_amount} for application {application_id}"
        )
        self.application_id = application_id
        self.requested_amount = requested_amount
        self.approved_amount = approved_amount
        self.remaining_amount = remaining_amount
        self.proposed_amount = proposed_amount


class ConcurrencyConflictError(TrustMatchError):
    """Raised when the approval lock could not be acquired in time.

    No state is persisted; the caller may retry.
    """

    retryable = True


class ConfigurationError(TrustMatchError):
    """Raised when configuration is invalid or missing."""


class SinkError(TrustMatchError):
    """Raised when a sink operation fails."""
