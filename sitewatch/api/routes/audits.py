"""Audit routes"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.api.dependencies import get_audit_service, get_notification_service, get_queue_manager
from sitewatch.core.auth import CurrentUser, get_current_user
from sitewatch.core.config import settings
from sitewatch.core.database import get_db
from sitewatch.core.tenant_isolation import get_owned_website
from sitewatch.db.enums import AuditStatus, AuditTrigger
from sitewatch.db.models import Audit
from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.exceptions import SitewatchError
from sitewatch.queues.queue_manager import QueueManager
from sitewatch.schemas.audits import AuditCreate, AuditEnqueueResponse, AuditResponse
from sitewatch.services.audit_service import AuditService
from sitewatch.services.notification_service import NotificationService
from sitewatch.utils.responses import format_success_response, paginated, validate_pagination

logger = logging.getLogger(__name__)

router = APIRouter(tags=["audits"])


async def _dispatch(
    db: AsyncSession,
    audit: Audit,
    audit_service: AuditService,
    notification_service: NotificationService,
    queue: QueueManager,
) -> Optional[str]:
    """
    Hand a pending audit to the job queue, or run it inline when the queue
    is disabled. Returns the queue job id, if any.

    Raises:
        SitewatchError: the queue could not accept the job (SYSTEM_002)
    """
    if not settings.queue_enabled:
        audit = await audit_service.run_audit(db, audit.id)
        previous = None
        if audit.status == AuditStatus.COMPLETED.value:
            previous = await audit_service.get_previous_completed(db, audit)
        await notification_service.create_audit_notifications(db, audit, previous)
        return None

    try:
        job_id = await queue.enqueue_audit(str(audit.id))
    except Exception as e:
        logger.error(f"Could not enqueue audit {audit.id}: {e}")
        await audit_service.fail_audit(db, audit, f"Could not enqueue audit: {e}")
        raise SitewatchError(ErrorCodeDictionary.SYSTEM_002, entity_id=audit.id)

    audit.queue_job_id = job_id
    await db.commit()
    return job_id


@router.post(
    "/websites/{website_id}/audits",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=AuditEnqueueResponse,
)
async def start_audit(
    website_id: UUID,
    request: AuditCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
    notification_service: NotificationService = Depends(get_notification_service),
    queue: QueueManager = Depends(get_queue_manager),
):
    """
    Start a manual audit of a website.

    The audit is created pending and queued; poll ``GET /audits/{id}`` for
    the result.
    """
    website = await get_owned_website(db, website_id, current_user)
    audit = await audit_service.create_audit(
        db, website, trigger=AuditTrigger.MANUAL, categories=request.categories
    )
    job_id = await _dispatch(db, audit, audit_service, notification_service, queue)
    await db.refresh(audit)
    return AuditEnqueueResponse(audit=AuditResponse.model_validate(audit), job_id=job_id)


@router.get("/audits")
async def list_audits(
    website_id: Optional[UUID] = None,
    status_filter: Optional[AuditStatus] = Query(None, alias="status"),
    trigger: Optional[AuditTrigger] = None,
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
):
    validate_pagination(page, limit)
    audits, total = await audit_service.list_audits(
        db, current_user, website_id=website_id, status=status_filter,
        trigger=trigger, page=page, limit=limit,
    )
    return paginated([AuditResponse.model_validate(audit) for audit in audits], total, page, limit)


@router.get("/websites/{website_id}/audits/history")
async def get_audit_history(
    website_id: UUID,
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
):
    """All audits of one website, newest first"""
    validate_pagination(page, limit)
    website = await get_owned_website(db, website_id, current_user)
    audits, total = await audit_service.list_audits(
        db, current_user, website_id=website.id, page=page, limit=limit
    )
    return paginated(
        [AuditResponse.model_validate(audit) for audit in audits], total, page, limit,
        website_id=str(website.id),
    )


@router.get("/audits/{audit_id}", response_model=AuditResponse)
async def get_audit(
    audit_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
):
    return await audit_service.get_audit(db, audit_id, current_user)


@router.delete("/audits/{audit_id}")
async def delete_audit(
    audit_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
):
    await audit_service.delete_audit(db, audit_id, current_user)
    return format_success_response("Audit deleted", data={"audit_id": str(audit_id)})


@router.get("/audits/{audit_id}/summary")
async def get_audit_summary(
    audit_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
):
    audit = await audit_service.get_audit(db, audit_id, current_user)
    return audit_service.get_summary(audit)


@router.get("/audits/{audit_id}/compare")
async def compare_audit(
    audit_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
):
    """Score changes against the previous completed audit of the same website"""
    audit = await audit_service.get_audit(db, audit_id, current_user)
    previous = await audit_service.get_previous_completed(db, audit)
    if previous is None:
        raise SitewatchError(ErrorCodeDictionary.AUDIT_005, entity_id=audit.id)
    return audit_service.compare(audit, previous)


@router.get("/audits/{audit_id}/job")
async def get_audit_job(
    audit_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
    queue: QueueManager = Depends(get_queue_manager),
):
    """Queue status of the job running an audit"""
    audit = await audit_service.get_audit(db, audit_id, current_user)
    if not audit.queue_job_id:
        return {"id": None, "status": "not_queued", "audit_status": audit.status}
    job = await queue.get_job_status(audit.queue_job_id)
    job["audit_status"] = audit.status
    return job


@router.post("/audits/{audit_id}/retry", status_code=status.HTTP_202_ACCEPTED, response_model=AuditEnqueueResponse)
async def retry_audit(
    audit_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    audit_service: AuditService = Depends(get_audit_service),
    notification_service: NotificationService = Depends(get_notification_service),
    queue: QueueManager = Depends(get_queue_manager),
):
    """Return a failed audit to pending and run it again"""
    await audit_service.get_audit(db, audit_id, current_user)
    audit = await audit_service.retry_audit(db, audit_id)
    job_id = await _dispatch(db, audit, audit_service, notification_service, queue)
    await db.refresh(audit)
    return AuditEnqueueResponse(audit=AuditResponse.model_validate(audit), job_id=job_id)
