"""Event logging - activity trail backing the admin dashboard."""
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from sitewatch.db.models import SystemEvent
from sitewatch.decision.state_machine import StateTransition
from sitewatch.utils.dates import utcnow


class EventLogger:
    """
    Writes ``system_events`` rows.

    Events are added to the caller's session and flushed; the caller owns
    the commit so an event lands in the same transaction as the change it
    describes.
    """

    @staticmethod
    async def log_event(
        db: AsyncSession,
        event_type: str,
        entity_type: str,
        entity_id: Optional[UUID],
        payload: Optional[Dict[str, Any]] = None,
    ) -> SystemEvent:
        event = SystemEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            payload={
                **(payload or {}),
                "timestamp": utcnow().isoformat(),
            },
        )
        db.add(event)
        await db.flush()
        return event

    @staticmethod
    async def log_state_transition(
        db: AsyncSession,
        audit_id: UUID,
        transition: StateTransition,
    ) -> SystemEvent:
        """
        Log an audit state transition.

        Args:
            db: Database session
            audit_id: Audit identifier
            transition: StateTransition instance
        """
        return await EventLogger.log_event(
            db, "state_transition", "audits", audit_id, transition.to_dict()
        )

    @staticmethod
    async def log_schedule_run(
        db: AsyncSession,
        schedule_id: UUID,
        audit_id: Optional[UUID],
        success: bool,
        error: Optional[str] = None,
    ) -> SystemEvent:
        return await EventLogger.log_event(
            db,
            "schedule_run_succeeded" if success else "schedule_run_failed",
            "audit_schedules",
            schedule_id,
            {
                "audit_id": str(audit_id) if audit_id else None,
                "error": error,
            },
        )

    @staticmethod
    async def log_monitoring_check(
        db: AsyncSession,
        website_id: UUID,
        audit_id: Optional[UUID],
        alerts_created: int,
        error: Optional[str] = None,
    ) -> SystemEvent:
        return await EventLogger.log_event(
            db,
            "monitoring_check" if error is None else "monitoring_check_failed",
            "websites",
            website_id,
            {
                "audit_id": str(audit_id) if audit_id else None,
                "alerts_created": alerts_created,
                "error": error,
            },
        )

    @staticmethod
    async def log_webhook_failure(
        db: AsyncSession,
        webhook_id: UUID,
        event: str,
        status_code: int,
        error: Optional[str],
    ) -> SystemEvent:
        return await EventLogger.log_event(
            db,
            "webhook_failed",
            "webhook_configurations",
            webhook_id,
            {"event": event, "status_code": status_code, "error": error},
        )

    @staticmethod
    async def log_error(
        db: AsyncSession,
        entity_type: str,
        entity_id: Optional[UUID],
        error_code: str,
        error_details: Dict[str, Any],
    ) -> SystemEvent:
        """
        Log an error with error code.

        Args:
            db: Database session
            entity_type: Type of entity (e.g., "audits", "audit_schedules")
            entity_id: Entity identifier
            error_code: Error code from ErrorCodeDictionary
            error_details: Additional error details
        """
        return await EventLogger.log_event(
            db,
            "error",
            entity_type,
            entity_id,
            {"error_code": error_code, "error_details": error_details},
        )

    @staticmethod
    async def get_recent_events(
        db: AsyncSession,
        limit: int = 50,
        event_type: Optional[str] = None,
    ) -> List[SystemEvent]:
        """
        Get the most recent events, newest first.

        Args:
            db: Database session
            limit: Maximum number of events to return
            event_type: Optional exact event type filter
        """
        query = select(SystemEvent)
        if event_type:
            query = query.where(SystemEvent.event_type == event_type)
        query = query.order_by(SystemEvent.created_at.desc(), SystemEvent.id.desc()).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_state_transition_history(
        db: AsyncSession,
        audit_id: UUID,
        limit: int = 20,
    ) -> List[SystemEvent]:
        query = (
            select(SystemEvent)
            .where(
                SystemEvent.entity_type == "audits",
                SystemEvent.entity_id == audit_id,
                SystemEvent.event_type == "state_transition",
            )
            .order_by(SystemEvent.created_at.desc(), SystemEvent.id.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())
