"""
Audit Service - business logic for audit runs.

Routes, the queue worker and the schedulers all go through this service
to create audits, move them through their lifecycle and read results.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.core.auth import CurrentUser
from sitewatch.core.config import settings
from sitewatch.core.tenant_isolation import ensure_owned, scope_to_user
from sitewatch.db.enums import AuditCategory, AuditStatus, AuditTrigger
from sitewatch.db.models import Audit, Website
from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.decision.event_logger import EventLogger
from sitewatch.decision.state_machine import AuditState, AuditStateMachine
from sitewatch.exceptions import AuditStateError, SitewatchError
from sitewatch.services.audit_engine import AuditEngine, EngineResult, get_default_engine

logger = logging.getLogger(__name__)

SCORE_FIELDS = ["overall_score"] + [f"{category.value}_score" for category in AuditCategory]


def calculate_grade(score: Optional[float]) -> Optional[str]:
    """Letter grade for a 0-100 score"""
    if score is None:
        return None
    if score >= 97:
        return 'A+'
    elif score >= 93:
        return 'A'
    elif score >= 87:
        return 'B+'
    elif score >= 83:
        return 'B'
    elif score >= 77:
        return 'C+'
    elif score >= 73:
        return 'C'
    elif score >= 67:
        return 'D+'
    elif score >= 63:
        return 'D'
    return 'F'


def normalize_categories(categories: Optional[Sequence[str]]) -> List[str]:
    """Validate categories, falling back to the configured defaults"""
    if not categories:
        return list(settings.default_audit_categories)

    valid = {category.value for category in AuditCategory}
    normalized: List[str] = []
    for category in categories:
        value = str(getattr(category, "value", category)).lower()
        if value not in valid:
            raise SitewatchError(
                ErrorCodeDictionary.AUDIT_003, context={"category": category}
            )
        if value not in normalized:
            normalized.append(value)
    return normalized


class AuditService:
    """
    Service for audit lifecycle operations.

    The engine is injected so tests and alternative backends can replace
    the HTTP engine.
    """

    def __init__(self, engine: Optional[AuditEngine] = None):
        self.engine = engine or get_default_engine()

    async def create_audit(
        self,
        db: AsyncSession,
        website: Website,
        trigger: AuditTrigger = AuditTrigger.MANUAL,
        categories: Optional[Sequence[str]] = None,
        schedule_id: Optional[UUID] = None,
        commit: bool = True,
    ) -> Audit:
        """
        Create a pending audit for a website.

        Args:
            db: Database session
            website: Website to audit
            trigger: What started the audit
            categories: Categories to evaluate (defaults to all)
            schedule_id: Schedule that produced the audit, if any
            commit: Commit immediately (False when the caller batches work)
        """
        audit = Audit(
            website_id=website.id,
            user_id=website.user_id,
            url=website.url,
            trigger=AuditTrigger(trigger).value,
            status=AuditStatus.PENDING.value,
            categories=normalize_categories(categories),
            schedule_id=schedule_id,
            issues={},
            critical_issues=[],
            state_history=[],
        )
        db.add(audit)
        await db.flush()
        await EventLogger.log_event(
            db, "audit_created", "audits", audit.id,
            {"website_id": str(website.id), "trigger": audit.trigger},
        )
        if commit:
            await db.commit()
            await db.refresh(audit)
        logger.info(f"Created {audit.trigger} audit {audit.id} for website {website.id}")
        return audit

    async def _transition(
        self,
        db: AsyncSession,
        audit: Audit,
        target: AuditState,
        reason: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> None:
        machine = AuditStateMachine(audit)
        success, error = machine.transition_to(target, reason=reason, error_code=error_code)
        if not success:
            raise AuditStateError(
                error,
                entity_id=audit.id,
                context={"current_status": audit.status, "target_status": target.value},
            )
        await EventLogger.log_state_transition(db, audit.id, machine.transition_history[-1])

    async def run_audit(self, db: AsyncSession, audit_id: UUID) -> Audit:
        """
        Run a pending audit through the engine.

        Engine failures mark the audit failed and are not re-raised; the
        returned audit carries the final status.

        Raises:
            SitewatchError: audit does not exist
            AuditStateError: audit is not pending
        """
        audit = await db.get(Audit, audit_id)
        if not audit:
            raise SitewatchError(ErrorCodeDictionary.AUDIT_001, entity_id=audit_id)

        if audit.status != AuditStatus.PENDING.value:
            raise AuditStateError(
                ErrorCodeDictionary.AUDIT_002,
                entity_id=audit.id,
                context={"current_status": audit.status},
            )

        await self._transition(db, audit, AuditState.RUNNING, reason="audit started")
        await db.commit()
        logger.info(f"Running audit {audit.id} for {audit.url}")

        try:
            result = await self.engine.run(audit.url, audit.categories or normalize_categories(None))
        except Exception as e:
            logger.exception(f"Audit {audit.id} failed: {e}")
            audit.error_message = str(e) or e.__class__.__name__
            await self._transition(
                db, audit, AuditState.FAILED,
                reason=audit.error_message,
                error_code=ErrorCodeDictionary.AUDIT_004.code,
            )
            await db.commit()
            await db.refresh(audit)
            return audit

        self._apply_result(audit, result)
        await self._transition(db, audit, AuditState.COMPLETED, reason="audit finished")
        await db.commit()
        await db.refresh(audit)
        logger.info(f"Audit {audit.id} completed with overall score {audit.overall_score}")
        return audit

    def _apply_result(self, audit: Audit, result: EngineResult) -> None:
        for category in AuditCategory:
            setattr(audit, f"{category.value}_score", result.scores.get(category.value))
        audit.overall_score = result.overall_score
        audit.issues = dict(result.issues)
        audit.critical_issues = list(result.critical_issues)
        audit.error_message = None

    async def fail_audit(self, db: AsyncSession, audit: Audit, message: str) -> Audit:
        """Mark a pending or running audit failed without running it"""
        audit.error_message = message
        await self._transition(db, audit, AuditState.FAILED, reason=message)
        await db.commit()
        return audit

    async def retry_audit(self, db: AsyncSession, audit_id: UUID) -> Audit:
        """
        Return a failed audit to pending so it can run again.

        Raises:
            AuditStateError: audit is not failed
        """
        audit = await db.get(Audit, audit_id)
        if not audit:
            raise SitewatchError(ErrorCodeDictionary.AUDIT_001, entity_id=audit_id)

        await self._transition(db, audit, AuditState.PENDING, reason="retry requested")
        audit.error_message = None
        await db.commit()
        await db.refresh(audit)
        return audit

    async def get_previous_completed(self, db: AsyncSession, audit: Audit) -> Optional[Audit]:
        """Most recent completed audit of the same website created before ``audit``"""
        query = (
            select(Audit)
            .where(
                Audit.website_id == audit.website_id,
                Audit.status == AuditStatus.COMPLETED.value,
                Audit.id != audit.id,
                Audit.created_at <= audit.created_at,
            )
            .order_by(Audit.created_at.desc())
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_latest_completed(self, db: AsyncSession, website_id: UUID, limit: int = 2) -> List[Audit]:
        """Latest completed audits for a website, newest first"""
        query = (
            select(Audit)
            .where(
                Audit.website_id == website_id,
                Audit.status == AuditStatus.COMPLETED.value,
            )
            .order_by(Audit.created_at.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_audits(
        self,
        db: AsyncSession,
        user: CurrentUser,
        website_id: Optional[UUID] = None,
        status: Optional[AuditStatus] = None,
        trigger: Optional[AuditTrigger] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Audit], int]:
        """Audits visible to ``user``, newest first, with total count"""
        query = scope_to_user(select(Audit), Audit, user)
        if website_id:
            query = query.where(Audit.website_id == website_id)
        if status:
            query = query.where(Audit.status == AuditStatus(status).value)
        if trigger:
            query = query.where(Audit.trigger == AuditTrigger(trigger).value)

        total = await db.scalar(select(func.count()).select_from(query.subquery()))
        result = await db.execute(
            query.order_by(Audit.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_audit(self, db: AsyncSession, audit_id: UUID, user: CurrentUser) -> Audit:
        """Fetch an audit the user may access (404 otherwise)"""
        return ensure_owned(await db.get(Audit, audit_id), user, "Audit")

    async def delete_audit(self, db: AsyncSession, audit_id: UUID, user: CurrentUser) -> None:
        audit = await self.get_audit(db, audit_id, user)
        await db.delete(audit)
        await db.commit()
        logger.info(f"Deleted audit {audit_id}")

    @staticmethod
    def compare(audit: Audit, previous: Optional[Audit]) -> Dict[str, Any]:
        """Score deltas between an audit and an earlier one"""
        changes: Dict[str, Dict[str, Optional[float]]] = {}
        for name in SCORE_FIELDS:
            current = getattr(audit, name)
            before = getattr(previous, name) if previous else None
            change = None
            if current is not None and before is not None:
                change = round(current - before, 1)
            changes[name] = {"current": current, "previous": before, "change": change}

        return {
            "audit_id": str(audit.id),
            "previous_audit_id": str(previous.id) if previous else None,
            "changes": changes,
        }

    @staticmethod
    def get_summary(audit: Audit) -> Dict[str, Any]:
        """Per-category summary for dashboards and notifications"""
        issues = audit.issues or {}
        categories = {}
        for category in audit.categories or []:
            category_issues = issues.get(category, [])
            categories[category] = {
                "score": getattr(audit, f"{category}_score", None),
                "grade": calculate_grade(getattr(audit, f"{category}_score", None)),
                "issue_count": len(category_issues),
                "issues": category_issues,
            }

        return {
            "audit_id": str(audit.id),
            "website_id": str(audit.website_id),
            "status": audit.status,
            "trigger": audit.trigger,
            "overall_score": audit.overall_score,
            "grade": calculate_grade(audit.overall_score),
            "categories": categories,
            "critical_issues": list(audit.critical_issues or []),
            "total_issues": sum(len(v) for v in issues.values()),
            "error_message": audit.error_message,
        }
