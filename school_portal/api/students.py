"""Student provisioning API endpoints (admin only)."""

import structlog
from fastapi import APIRouter, Depends, Response

from school_portal.api.dependencies import get_batch_provisioner, require_admin
from school_portal.models.account import Identity
from school_portal.models.response import ApiResponse
from school_portal.models.student import BatchCreateRequest, BatchReport, StatsData
from school_portal.services.provisioning_service import BatchProvisioner

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/students", tags=["Students"])


@router.post("/batch-create", status_code=201)
async def batch_create(
    request: BatchCreateRequest,
    response: Response,
    admin: Identity = Depends(require_admin),
    provisioner: BatchProvisioner = Depends(get_batch_provisioner),
) -> ApiResponse[BatchReport]:
    """Create up to 100 student accounts and email their temporary passwords.

    Returns 201 when every record succeeded, 207 when only some did and
    400 when none did. Per-record outcomes are in ``data.results``.
    """
    logger.info(
        "batch_create_requested",
        admin_id=str(admin.account_id),
        total=len(request.students),
    )
    report = await provisioner.provision(request.students)
    response.status_code = report.status_code

    summary = report.summary
    return ApiResponse(
        success=summary.success > 0,
        data=report,
        error=None if summary.success else "No student account was created",
        message=(
            f"{summary.success} student(s) created successfully, "
            f"{summary.errors} failure(s)"
        ),
    )


@router.get("/stats", dependencies=[Depends(require_admin)])
async def student_stats(
    provisioner: BatchProvisioner = Depends(get_batch_provisioner),
) -> ApiResponse[StatsData]:
    """Counts of student accounts by activity and password state."""
    stats = await provisioner.stats()
    return ApiResponse(success=True, data=StatsData(stats=stats))
