"""Enumeration types for scholarship entities."""

from enum import Enum


class Gender(str, Enum):
    ANY = "Any"
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    REJECTED = "rejected"
    CLOSED = "closed"


class ApprovalStatus(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ViewMode(str, Enum):
    FILTERED = "filtered"  # smart filtering: perfect matches only
    ALL = "all"


class StatusTab(str, Enum):
    PENDING = "pending"  # not yet decided by this trust
    APPROVED = "approved"
    REJECTED = "rejected"
