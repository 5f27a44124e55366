"""Domain models for the matching engine."""

from trust_match.models.application import Application, EducationHistory, FamilyMember
from trust_match.models.approval import Approval, ApprovalResult
from trust_match.models.base import Event
from trust_match.models.enums import (
    ApplicationStatus,
    ApprovalStatus,
    Gender,
    StatusTab,
    ViewMode,
)
from trust_match.models.preferences import TrustPreferences

__all__ = [
    "Application",
    "ApplicationStatus",
    "Approval",
    "ApprovalResult",
    "ApprovalStatus",
    "EducationHistory",
    "Event",
    "FamilyMember",
    "Gender",
    "StatusTab",
    "TrustPreferences",
    "ViewMode",
]
