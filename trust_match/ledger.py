"""Funding ledger rules shared by every store.

Stores call these functions while holding the per-application lock (a
``threading.Lock`` in memory, ``SELECT ... FOR UPDATE`` in PostgreSQL), so the
check and the write that follows form one atomic unit.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from trust_match.exceptions import InvalidEntityStateError, OverAllocationError, ValidationError
from trust_match.models.enums import ApplicationStatus

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Largest value a NUMERIC(15, 2) column holds
MAX_AMOUNT = Decimal("9999999999999.99")

# Statuses that can no longer receive funding
TERMINAL_STATUSES = frozenset({ApplicationStatus.CLOSED, ApplicationStatus.REJECTED})


def parse_amount(value: Any, field: str = "approved_amount") -> Decimal:
    """Parse a positive monetary amount without going through float.

    Raises
    ------
    ValidationError
        If the value is missing, not a number or not positive, or it does not
        fit a NUMERIC(15, 2) column (more than two decimal places or too large).
    """
    if value is None or isinstance(value, bool) or isinstance(value, float):
        # floats are rejected: they cannot carry an exact amount
        raise ValidationError(f"{field} must be a decimal amount, got {value!r}", field=field)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} must be a decimal amount, got {value!r}", field=field) from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be greater than 0, got {value!r}", field=field)
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} must not exceed {MAX_AMOUNT}, got {value!r}", field=field)
    if amount % CENT:
        raise ValidationError(
            f"{field} must have at most 2 decimal places, got {value!r}", field=field
        )
    return amount


def remaining_amount(requested: Decimal, approved: Decimal) -> Decimal:
    """Amount that can still be approved (never negative)."""
    return max(requested - approved, ZERO)


def check_allocation(
    application_id: str,
    status: ApplicationStatus,
    requested: Decimal,
    approved: Decimal,
    proposed: Decimal,
) -> Decimal:
    """Validate an approval against the current aggregate.

    Parameters
    ----------
    application_id : str
        Application being funded.
    status : ApplicationStatus
        Current application status, read under the lock.
    requested : Decimal
        ``total_amount_requested``.
    approved : Decimal
        Sum of existing approved amounts, read under the lock.
    proposed : Decimal
        Amount of the new approval.

    Returns
    -------
    Decimal
        The new approved total.

    Raises
    ------
    InvalidEntityStateError
        If the application is closed or rejected.
    OverAllocationError
        If ``approved + proposed`` exceeds ``requested``.
    """
    if status in TERMINAL_STATUSES:
        raise InvalidEntityStateError(f"Application {application_id} is {status.value}")

    new_total = approved + proposed
    if new_total > requested:
        raise OverAllocationError(
            application_id=application_id,
            requested_amount=requested,
            approved_amount=approved,
            remaining_amount=remaining_amount(requested, approved),
            proposed_amount=proposed,
        )
    return new_total


def next_status(
    status: ApplicationStatus,
    requested: Decimal,
    approved: Decimal,
) -> ApplicationStatus:
    """Apply the funding state machine to an approved total.

    ``submitted`` becomes ``partially_approved`` once any amount is approved,
    and any open status becomes ``closed`` once the requested total is reached.
    """
    if status in TERMINAL_STATUSES:
        return status
    if approved >= requested:
        return ApplicationStatus.CLOSED
    if approved > 0:
        return ApplicationStatus.PARTIALLY_APPROVED
    return status
