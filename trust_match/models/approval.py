"""Approval (trust decision) models."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from trust_match.models.application import Application
from trust_match.models.enums import ApplicationStatus, ApprovalStatus


@dataclass
class Approval:
    """A trust's decision on one application."""

    approval_id: str
    application_id: str
    trust_id: str
    approved_amount: Decimal  # Zero for rejections
    status: ApprovalStatus
    created_at: datetime
    remarks: str | None = None
    paid_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ApprovalResult:
    """Outcome of a committed approval: the record and the updated aggregate."""

    approval: Approval
    application: Application

    @property
    def closed(self) -> bool:
        """Whether the approval fully funded the application."""
        return self.application.status == ApplicationStatus.CLOSED
