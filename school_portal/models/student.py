"""Batch student provisioning models."""

from typing import Any, Optional
from uuid import UUID

from pydantic import Field, field_validator

from school_portal.models.account import CamelModel
from school_portal.models.auth import EMAIL_PATTERN


class StudentCandidate(CamelModel):
    """One candidate record of a batch, validated and normalized.

    Rules:
        first_name / last_name: at least 2 characters after trimming
        email: basic ``local@domain.tld`` shape as submitted, then lower-cased
    """

    first_name: str
    last_name: str
    email: str

    @field_validator("first_name")
    @classmethod
    def first_name_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("First name must be at least 2 characters")
        return v

    @field_validator("last_name")
    @classmethod
    def last_name_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Last name must be at least 2 characters")
        return v

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        # Checked as submitted; surrounding whitespace is a format error
        if not EMAIL_PATTERN.fullmatch(v):
            raise ValueError("Invalid email format")
        return v.lower()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class BatchCreateRequest(CamelModel):
    """Batch payload. Items stay unvalidated here so one bad record
    cannot reject the whole batch."""

    students: list[Any]


class StudentResult(CamelModel):
    """Outcome for one submitted record."""

    student: Any
    success: bool = False
    user_id: Optional[UUID] = None
    error: Optional[str] = None
    email_sent: Optional[bool] = None
    email_error: Optional[str] = None


class BatchSummary(CamelModel):
    total: int = Field(ge=0)
    success: int = Field(ge=0)
    errors: int = Field(ge=0)


class BatchReport(CamelModel):
    """Aggregate result of a batch, in input order."""

    summary: BatchSummary
    results: list[StudentResult]

    @property
    def status_code(self) -> int:
        """201 when every record succeeded, 207 when some did, 400 otherwise."""
        if self.summary.total and self.summary.success == self.summary.total:
            return 201
        if self.summary.success > 0:
            return 207
        return 400


class StudentStats(CamelModel):
    total_students: int
    active_students: int
    inactive_students: int
    students_with_temporary_password: int
    students_must_change_password: int


class StatsData(CamelModel):
    """Student statistics response."""

    stats: StudentStats
