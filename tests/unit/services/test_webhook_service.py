"""Unit tests for webhook configuration and delivery"""
import json

import httpx
import pytest
from fastapi import HTTPException
from sqlalchemy import select
from uuid import uuid4

from sitewatch.core.auth import CurrentUser
from sitewatch.db.models import Audit, SystemEvent, WebhookDelivery
from sitewatch.exceptions import WebhookError
from sitewatch.services.webhook_service import (
    SIGNATURE_HEADER,
    WebhookService,
    generate_signature,
    serialize_payload,
    validate_events,
    validate_webhook_url,
    verify_signature,
)


class Recorder:
    """MockTransport handler that records requests and replies with a fixed status"""

    def __init__(self, status_code: int = 200, error: Exception = None):
        self.status_code = status_code
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, text="ok")


def _service(recorder: Recorder) -> WebhookService:
    return WebhookService(transport=httpx.MockTransport(recorder))


class TestSigning:
    """Tests for payload signing helpers"""

    def test_signature_round_trip(self):
        body = serialize_payload({"event": "audit.completed", "data": {"a": 1}})

        signature = generate_signature(body, "s3cret")

        assert len(signature) == 64
        assert verify_signature(body, "s3cret", signature)
        assert not verify_signature(body, "other", signature)

    def test_serialize_is_compact(self):
        assert serialize_payload({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    def test_build_payload_signature(self):
        """Test envelope signature covers the unsigned envelope"""
        payload = WebhookService().build_payload("audit.completed", {"score": 90}, secret="s3cret")

        unsigned = {key: value for key, value in payload.items() if key != "signature"}
        assert payload["signature"] == generate_signature(serialize_payload(unsigned), "s3cret")
        assert payload["timestamp"].endswith("Z")

    def test_build_payload_without_secret(self):
        assert "signature" not in WebhookService().build_payload("audit.completed", {})


class TestValidation:
    """Tests for URL and event validation"""

    @pytest.mark.parametrize("url", [None, "", "ftp://example.com/hook", "not a url"])
    def test_invalid_urls(self, url):
        assert validate_webhook_url(url) is not None

    def test_valid_url(self):
        assert validate_webhook_url("https://hooks.example.com/sitewatch") is None

    def test_validate_events(self):
        assert validate_events(["audit.completed", "audit.completed", "monitoring.alert"]) == [
            "audit.completed", "monitoring.alert",
        ]
        with pytest.raises(WebhookError) as exc_info:
            validate_events(["audit.exploded"])
        assert exc_info.value.error_code.code == "WEBHOOK_002"


class TestDelivery:
    """Tests for sending webhooks"""

    @pytest.mark.asyncio
    async def test_send_signed_notification(self):
        recorder = Recorder()
        service = _service(recorder)
        payload = service.build_payload("audit.completed", {"score": 90}, secret="s3cret")

        result = await service.send_webhook_notification("https://hooks.example.com/a", payload, "s3cret")

        assert result.success
        assert result.status == 200
        request = recorder.requests[0]
        assert request.headers["content-type"] == "application/json"
        assert request.headers["user-agent"] == "Sitewatch-Webhook/1.0"
        assert json.loads(request.content) == payload
        assert request.headers[SIGNATURE_HEADER] == payload["signature"]

    @pytest.mark.asyncio
    async def test_http_error_is_reported(self):
        result = await _service(Recorder(status_code=503)).send_webhook_notification(
            "https://hooks.example.com/a", {"event": "x"})

        assert not result.success
        assert result.status == 503
        assert result.to_dict() == {"success": False, "status": 503, "error": "Service Unavailable"}

    @pytest.mark.asyncio
    async def test_network_error_is_reported(self):
        recorder = Recorder(error=httpx.ConnectError("connection refused"))

        result = await _service(recorder).send_webhook_notification("https://hooks.example.com/a", {"event": "x"})

        assert not result.success
        assert result.status == 0
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_invalid_url_not_sent(self):
        recorder = Recorder()

        result = await _service(recorder).send_webhook_notification("ftp://nope", {"event": "x"})

        assert not result.success
        assert recorder.requests == []


class TestEventFanOut:
    """Tests for per-user event delivery"""

    @pytest.mark.asyncio
    async def test_send_event_to_subscribers_only(self, test_db_session, make_user):
        """Test only active subscribed configs receive the event and every attempt is recorded"""
        user = await make_user()
        current = CurrentUser(user_id=user.id)
        recorder = Recorder()
        service = _service(recorder)
        subscribed = await service.create_config(
            test_db_session, current, "https://hooks.example.com/a", ["audit.completed"], secret="s3cret")
        await service.create_config(test_db_session, current, "https://hooks.example.com/b", ["monitoring.alert"])
        await service.create_config(
            test_db_session, current, "https://hooks.example.com/c", ["audit.completed"], active=False)

        results = await service.send_event(test_db_session, user.id, "audit.completed", {"score": 91})

        assert [result.success for result in results] == [True]
        assert [str(request.url) for request in recorder.requests] == ["https://hooks.example.com/a"]
        deliveries = await service.list_deliveries(test_db_session, subscribed.id, current)
        assert len(deliveries) == 1
        assert deliveries[0].success
        assert deliveries[0].payload["data"] == {"score": 91}

    @pytest.mark.asyncio
    async def test_failed_delivery_logged(self, test_db_session, make_user):
        user = await make_user()
        service = _service(Recorder(status_code=500))
        await service.create_config(
            test_db_session, CurrentUser(user_id=user.id), "https://hooks.example.com/a", ["monitoring.alert"])

        results = await service.send_event(test_db_session, user.id, "monitoring.alert", {})

        assert not results[0].success
        delivery = (await test_db_session.execute(select(WebhookDelivery))).scalar_one()
        assert delivery.status_code == 500
        assert delivery.response.startswith("Error:")
        events = (await test_db_session.execute(
            select(SystemEvent).where(SystemEvent.event_type == "webhook_failed"))).scalars().all()
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_no_configs(self, test_db_session, make_user):
        recorder = Recorder()
        user = await make_user()

        assert await _service(recorder).send_event(test_db_session, user.id, "audit.completed", {}) == []
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_audit_finished_events(self, test_db_session, make_user, make_website):
        """Test completed and failed audits map to their events"""
        user = await make_user()
        website = await make_website(user)
        recorder = Recorder()
        service = _service(recorder)
        await service.create_config(
            test_db_session, CurrentUser(user_id=user.id), "https://hooks.example.com/a",
            ["audit.completed", "audit.failed"])

        completed = Audit(id=uuid4(), website_id=website.id, user_id=user.id, url=website.url,
                          status="completed", trigger="manual", overall_score=88.0, seo_score=88.0)
        failed = Audit(id=uuid4(), website_id=website.id, user_id=user.id, url=website.url,
                       status="failed", trigger="scheduled", error_message="timeout")
        pending = Audit(id=uuid4(), website_id=website.id, user_id=user.id, url=website.url,
                        status="pending", trigger="manual")

        await service.send_audit_finished(test_db_session, user.id, website, completed)
        await service.send_audit_finished(test_db_session, user.id, website, failed)
        assert await service.send_audit_finished(test_db_session, user.id, website, pending) == []

        bodies = [json.loads(request.content) for request in recorder.requests]
        assert [body["event"] for body in bodies] == ["audit.completed", "audit.failed"]
        assert bodies[0]["data"]["overall_score"] == 88.0
        assert bodies[0]["data"]["website_id"] == str(website.id)
        assert bodies[1]["data"]["error"] == "timeout"


class TestWebhookConfigs:
    """Tests for configuration CRUD"""

    @pytest.mark.asyncio
    async def test_invalid_url_rejected(self, test_db_session, make_user):
        user = await make_user()

        with pytest.raises(WebhookError) as exc_info:
            await WebhookService().create_config(
                test_db_session, CurrentUser(user_id=user.id), "javascript:alert(1)", ["audit.completed"])
        assert exc_info.value.error_code.code == "WEBHOOK_001"

    @pytest.mark.asyncio
    async def test_list_and_delete_scoped(self, test_db_session, make_user):
        owner = await make_user()
        other = await make_user()
        service = WebhookService()
        config = await service.create_config(
            test_db_session, CurrentUser(user_id=owner.id), "https://hooks.example.com/a", ["audit.completed"])

        assert await service.list_configs(test_db_session, CurrentUser(user_id=other.id)) == []
        with pytest.raises(HTTPException):
            await service.delete_config(test_db_session, config.id, CurrentUser(user_id=other.id))

        await service.delete_config(test_db_session, config.id, CurrentUser(user_id=owner.id))
        assert await service.list_configs(test_db_session, CurrentUser(user_id=owner.id)) == []
