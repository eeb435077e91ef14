"""Models package exports."""

from school_portal.models.account import Account, Identity, Role
from school_portal.models.response import ApiResponse
from school_portal.models.student import (
    BatchReport,
    StudentCandidate,
    StudentResult,
    StatsData,
    StudentStats,
)

__all__ = [
    "Account",
    "ApiResponse",
    "BatchReport",
    "Identity",
    "Role",
    "StudentCandidate",
    "StudentResult",
    "StatsData",
    "StudentStats",
]
