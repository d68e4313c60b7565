"""
Webhook Service - delivers signed event payloads to user endpoints.

Every attempt is recorded in ``webhook_deliveries``. Delivery problems are
logged and recorded, never raised to the caller.
"""
import asyncio
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitewatch.core.auth import CurrentUser
from sitewatch.core.config import settings
from sitewatch.core.tenant_isolation import ensure_owned, scope_to_user
from sitewatch.db.enums import AuditStatus, WebhookEvent
from sitewatch.db.models import WebhookConfiguration, WebhookDelivery
from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.decision.event_logger import EventLogger
from sitewatch.exceptions import WebhookError
from sitewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Sitewatch-Signature"
USER_AGENT = "Sitewatch-Webhook/1.0"


@dataclass
class DeliveryResult:
    """Outcome of posting one payload to one endpoint"""
    success: bool
    status: int = 0
    error: Optional[str] = None
    response: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.status:
            result["status"] = self.status
        if self.error:
            result["error"] = self.error
        return result


def serialize_payload(payload: Dict[str, Any]) -> str:
    """Compact JSON used both for the request body and for signing"""
    return json.dumps(payload, separators=(",", ":"), default=str)


def generate_signature(body: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of ``body``"""
    return hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()


def verify_signature(body: str, secret: str, signature: str) -> bool:
    """Constant-time check of a received signature"""
    return hmac.compare_digest(generate_signature(body, secret), signature)


def validate_webhook_url(url: Optional[str]) -> Optional[str]:
    """Return an error message for an unusable URL, or None if it is fine"""
    if not url:
        return "Webhook URL is required"
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return f"Invalid URL: {url}"
    return None


def validate_events(events: Sequence[str]) -> List[str]:
    valid = {event.value for event in WebhookEvent}
    normalized = []
    for event in events:
        value = str(getattr(event, "value", event))
        if value not in valid:
            raise WebhookError(ErrorCodeDictionary.WEBHOOK_002, context={"event": value})
        if value not in normalized:
            normalized.append(value)
    return normalized


class WebhookService:
    """
    Service for webhook configuration and delivery.

    ``transport`` lets tests swap in ``httpx.MockTransport``.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None,
                 timeout: Optional[int] = None):
        self.transport = transport
        self.timeout = timeout or settings.webhook_timeout_seconds

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT},
        )

    # ------------------------------------------------------------------
    # Configuration CRUD
    # ------------------------------------------------------------------

    async def create_config(
        self,
        db: AsyncSession,
        user: CurrentUser,
        url: str,
        events: Sequence[str],
        secret: Optional[str] = None,
        active: bool = True,
    ) -> WebhookConfiguration:
        error = validate_webhook_url(url)
        if error:
            raise WebhookError(ErrorCodeDictionary.WEBHOOK_001, context={"url": url, "reason": error})

        config = WebhookConfiguration(
            user_id=user.user_id,
            url=url,
            secret=secret,
            events=validate_events(events),
            active=active,
        )
        db.add(config)
        await db.commit()
        await db.refresh(config)
        logger.info(f"Registered webhook {config.id} for user {user.user_id}")
        return config

    async def list_configs(self, db: AsyncSession, user: CurrentUser) -> List[WebhookConfiguration]:
        query = scope_to_user(select(WebhookConfiguration), WebhookConfiguration, user)
        result = await db.execute(query.order_by(WebhookConfiguration.created_at.desc()))
        return list(result.scalars().all())

    async def delete_config(self, db: AsyncSession, webhook_id: UUID, user: CurrentUser) -> None:
        config = ensure_owned(await db.get(WebhookConfiguration, webhook_id), user, "Webhook")
        await db.delete(config)
        await db.commit()

    async def list_deliveries(self, db: AsyncSession, webhook_id: UUID, user: CurrentUser,
                              limit: int = 50) -> List[WebhookDelivery]:
        ensure_owned(await db.get(WebhookConfiguration, webhook_id), user, "Webhook")
        result = await db.execute(
            select(WebhookDelivery)
            .where(WebhookDelivery.webhook_id == webhook_id)
            .order_by(WebhookDelivery.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def send_webhook_notification(
        self,
        url: Optional[str],
        payload: Dict[str, Any],
        secret: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> DeliveryResult:
        """
        POST a payload to a single URL.

        Returns:
            DeliveryResult; never raises for network or HTTP errors
        """
        error = validate_webhook_url(url)
        if error:
            return DeliveryResult(success=False, error=error)

        body = serialize_payload(payload)
        headers = {"Content-Type": "application/json"}
        if secret:
            # Signature covers the envelope without its own signature field
            unsigned = {key: value for key, value in payload.items() if key != "signature"}
            headers[SIGNATURE_HEADER] = generate_signature(serialize_payload(unsigned), secret)

        owns_client = client is None
        client = client or self._client()
        try:
            response = await client.post(url, content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Webhook delivery to {url} failed: {e}")
            return DeliveryResult(success=False, error=str(e) or e.__class__.__name__)
        finally:
            if owns_client:
                await client.aclose()

        if response.is_success:
            return DeliveryResult(success=True, status=response.status_code, response=response.text)

        logger.warning(f"Webhook delivery to {url} returned {response.status_code}")
        return DeliveryResult(
            success=False,
            status=response.status_code,
            error=response.reason_phrase or f"HTTP {response.status_code}",
        )

    def build_payload(self, event: str, data: Dict[str, Any],
                      secret: Optional[str] = None) -> Dict[str, Any]:
        """Envelope ``{event, data, timestamp}`` plus ``signature`` when a secret is set"""
        payload: Dict[str, Any] = {
            "event": event,
            "data": data,
            "timestamp": utcnow().isoformat() + "Z",
        }
        if secret:
            payload["signature"] = generate_signature(serialize_payload(payload), secret)
        return payload

    async def send_event(
        self,
        db: AsyncSession,
        user_id: UUID,
        event: str,
        data: Dict[str, Any],
    ) -> List[DeliveryResult]:
        """
        Deliver an event to every active configuration of the user that
        subscribes to it, recording each attempt.
        """
        event = str(getattr(event, "value", event))
        result = await db.execute(
            select(WebhookConfiguration).where(
                WebhookConfiguration.user_id == user_id,
                WebhookConfiguration.active == True,  # noqa: E712
            )
        )
        configs = [config for config in result.scalars().all() if event in (config.events or [])]
        if not configs:
            return []

        payloads = [self.build_payload(event, data, config.secret) for config in configs]
        async with self._client() as client:
            results = await asyncio.gather(*[
                self.send_webhook_notification(config.url, payload, config.secret, client=client)
                for config, payload in zip(configs, payloads)
            ])

        for config, payload, outcome in zip(configs, payloads, results):
            db.add(WebhookDelivery(
                webhook_id=config.id,
                event=event,
                payload=payload,
                status_code=outcome.status,
                success=outcome.success,
                response=outcome.response if outcome.success else f"Error: {outcome.error}",
            ))
            if not outcome.success:
                await EventLogger.log_webhook_failure(db, config.id, event, outcome.status, outcome.error)
        await db.commit()

        delivered = sum(1 for outcome in results if outcome.success)
        logger.info(f"Webhook event {event}: {delivered}/{len(results)} deliveries succeeded")
        return list(results)

    async def send_audit_finished(self, db: AsyncSession, user_id: UUID, website,
                                  audit) -> List[DeliveryResult]:
        """``audit.completed`` or ``audit.failed`` depending on the final status"""
        if audit.status == AuditStatus.COMPLETED.value:
            return await self.send_event(db, user_id, WebhookEvent.AUDIT_COMPLETED.value, {
                **_website_data(website, audit.id),
                "trigger": audit.trigger,
                "overall_score": audit.overall_score,
                "scores": audit.category_scores(),
            })
        if audit.status == AuditStatus.FAILED.value:
            return await self.send_event(db, user_id, WebhookEvent.AUDIT_FAILED.value, {
                **_website_data(website, audit.id),
                "trigger": audit.trigger,
                "error": audit.error_message,
            })
        return []

    async def send_critical_issues(self, db: AsyncSession, user_id: UUID, website, audit_id: UUID,
                                   issues: Sequence[str]) -> List[DeliveryResult]:
        if not issues:
            return []
        return await self.send_event(db, user_id, WebhookEvent.CRITICAL_ISSUES.value, {
            **_website_data(website, audit_id),
            "issue_count": len(issues),
            "issues": list(issues),
        })

    async def send_low_score(self, db: AsyncSession, user_id: UUID, website, audit_id: UUID,
                             score: float, threshold: float) -> List[DeliveryResult]:
        return await self.send_event(db, user_id, WebhookEvent.LOW_SCORE.value, {
            **_website_data(website, audit_id),
            "score": score,
            "threshold": threshold,
        })

    async def send_performance_degradation(self, db: AsyncSession, user_id: UUID, website,
                                           audit_id: UUID, current_score: float,
                                           previous_score: float,
                                           degradation_percentage: float) -> List[DeliveryResult]:
        return await self.send_event(db, user_id, WebhookEvent.PERFORMANCE_DEGRADATION.value, {
            **_website_data(website, audit_id),
            "current_score": current_score,
            "previous_score": previous_score,
            "degradation_percentage": degradation_percentage,
        })


def _website_data(website, audit_id: UUID) -> Dict[str, Any]:
    return {
        "audit_id": str(audit_id),
        "website_id": str(website.id),
        "website_name": website.name,
        "website_url": website.url,
        "details_url": f"{settings.app_url}/audits/{audit_id}",
    }
