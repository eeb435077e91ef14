"""Batch student provisioning: validate, create accounts with temporary
passwords, and send welcome emails, one record at a time."""

import secrets
from datetime import datetime, timezone
from typing import Any, Optional

import pydantic
import structlog

from school_portal.errors import AccountExistsError, ValidationError
from school_portal.models.account import Role
from school_portal.models.student import (
    BatchReport,
    BatchSummary,
    StudentCandidate,
    StudentResult,
    StudentStats,
)
from school_portal.services.account_store import AccountStore
from school_portal.services.email_service import EmailService
from school_portal.services.passwords import hash_password_async

logger = structlog.get_logger(__name__)

PASSWORD_ADJECTIVES = ("Smart", "Bright", "Creative", "Art", "Design", "Mod")
PASSWORD_SPECIALS = "!@#$%^&*"
DEFAULT_MAX_BATCH_SIZE = 100


def generate_temporary_password(year: Optional[int] = None) -> str:
    """Build a one-time password such as ``Bright2026#A742``.

    Adjective + year + special character + two upper-case hex
    characters + a number from 10 to 99.
    """
    year = year or datetime.now(timezone.utc).year
    adjective = secrets.choice(PASSWORD_ADJECTIVES)
    special = secrets.choice(PASSWORD_SPECIALS)
    hex_chars = secrets.token_hex(1).upper()
    number = secrets.randbelow(90) + 10
    return f"{adjective}{year}{special}{hex_chars}{number}"


def describe_validation_error(exc: pydantic.ValidationError) -> str:
    """First validation problem of a candidate record as one sentence."""
    error = exc.errors()[0]
    field = ".".join(str(loc) for loc in error.get("loc", ())) or "record"
    if error["type"] == "missing":
        return f"{field} is required"
    ctx_error = error.get("ctx", {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)
    return f"{field}: {error['msg']}"


class BatchProvisioner:
    """Creates student accounts in bulk with per-record success or failure."""

    def __init__(
        self,
        store: AccountStore,
        email_service: EmailService,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ):
        self.store = store
        self.email_service = email_service
        self.max_batch_size = max_batch_size

    def check_batch(self, students: list[Any]) -> None:
        """Reject a whole batch before any record is processed.

        Raises:
            ValidationError: If the batch is empty or too large
        """
        if not students:
            raise ValidationError("A non-empty array of students is required")
        if len(students) > self.max_batch_size:
            raise ValidationError(
                f"Maximum {self.max_batch_size} students per batch"
            )

    async def provision(self, students: list[Any]) -> BatchReport:
        """Process every record in order and report each outcome.

        A failing record never aborts the batch; a failed welcome email
        never removes the created account.

        Raises:
            ValidationError: If the batch is empty or too large
        """
        self.check_batch(students)

        logger.info("batch_create_started", total=len(students))

        results = []
        for record in students:
            results.append(await self._provision_one(record))

        succeeded = sum(1 for r in results if r.success)
        report = BatchReport(
            summary=BatchSummary(
                total=len(students),
                success=succeeded,
                errors=len(students) - succeeded,
            ),
            results=results,
        )

        logger.info(
            "batch_create_completed",
            total=report.summary.total,
            success=report.summary.success,
            errors=report.summary.errors,
        )
        return report

    async def _provision_one(self, record: Any) -> StudentResult:
        result = StudentResult(student=record)

        try:
            candidate = StudentCandidate.model_validate(record)
        except pydantic.ValidationError as e:
            result.error = describe_validation_error(e)
            logger.info("batch_record_invalid", error=result.error)
            return result

        try:
            if await self.store.email_exists(candidate.email):
                raise AccountExistsError("A user with this email already exists")

            temporary_password = generate_temporary_password()
            account = await self.store.create_account(
                name=candidate.full_name,
                email=candidate.email,
                password_hash=await hash_password_async(temporary_password),
                role=Role.STUDENT,
                is_temporary_password=True,
                must_change_password=True,
            )
        except AccountExistsError as e:
            result.error = e.message
            logger.info("batch_record_duplicate", email=candidate.email)
            return result
        except Exception as e:
            result.error = str(e) or "Unknown error while creating the account"
            logger.error(
                "batch_record_creation_failed", email=candidate.email, error=str(e)
            )
            return result

        result.success = True
        result.user_id = account.id

        try:
            email_result = await self.email_service.send_welcome_email(
                candidate.email,
                candidate.first_name,
                candidate.last_name,
                temporary_password,
            )
            result.email_sent = email_result.success
            result.email_error = email_result.error
        except Exception as e:
            result.email_sent = False
            result.email_error = str(e) or "Unknown error while sending the email"
            logger.error(
                "batch_welcome_email_error", email=candidate.email, error=str(e)
            )

        return result

    async def stats(self) -> StudentStats:
        return await self.store.student_stats()
