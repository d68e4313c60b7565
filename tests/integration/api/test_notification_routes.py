"""Integration tests for notification routes"""
from uuid import uuid4

import pytest

from sitewatch.db.enums import AuditCategory


@pytest.fixture
def low_score_website(client, headers, create_website, fake_engine):
    """A website whose audit scored below the alert threshold"""
    fake_engine.scores = {category.value: 40.0 for category in AuditCategory}
    website_id = create_website()
    client.post(f"/api/v1/websites/{website_id}/audits", json={}, headers=headers)
    return website_id


class TestNotificationPreferences:
    """Tests for notification preferences"""

    @pytest.mark.integration
    def test_defaults(self, client, headers):
        """Test preferences before the user saved any"""
        data = client.get("/api/v1/notifications/preferences", headers=headers).json()

        assert data == {
            "min_score_threshold": 70.0,
            "min_score_drop": 5.0,
            "email_enabled": True,
            "realtime_alerts": True,
        }

    @pytest.mark.integration
    def test_update(self, client, headers):
        """Test saving preferences"""
        response = client.put(
            "/api/v1/notifications/preferences",
            json={"min_score_threshold": 85, "email_enabled": False},
            headers=headers,
        )

        assert response.status_code == 200
        data = client.get("/api/v1/notifications/preferences", headers=headers).json()
        assert data["min_score_threshold"] == 85.0
        assert data["min_score_drop"] == 5.0
        assert data["email_enabled"] is False

    @pytest.mark.integration
    def test_threshold_range(self, client, headers):
        """Test that thresholds are percentages"""
        response = client.put(
            "/api/v1/notifications/preferences", json={"min_score_drop": -1}, headers=headers
        )
        assert response.status_code == 422


class TestNotificationInbox:
    """Tests for listing and managing notifications"""

    @pytest.mark.integration
    def test_low_score_creates_notification(self, client, headers, low_score_website, email_sender):
        """Test that a low-scoring audit lands in the inbox and sends an email"""
        data = client.get("/api/v1/notifications", headers=headers).json()

        assert data["unread_count"] == 1
        notification = data["items"][0]
        assert notification["type"] == "score_alert"
        assert notification["website_id"] == low_score_website
        assert notification["read"] is False
        assert any(subject.startswith("[ALERT] Low score detected") for _, subject in email_sender.sent)

    @pytest.mark.integration
    def test_filter_by_type(self, client, headers, low_score_website):
        """Test filtering notifications by type"""
        data = client.get("/api/v1/notifications?type=critical_issue", headers=headers).json()
        assert data["items"] == []

    @pytest.mark.integration
    def test_inbox_is_private(self, client, low_score_website, seed_user, auth_headers):
        """Test that other users do not see the notification"""
        data = client.get("/api/v1/notifications", headers=auth_headers(seed_user())).json()

        assert data["pagination"]["total"] == 0
        assert data["unread_count"] == 0

    @pytest.mark.integration
    def test_mark_one_read(self, client, headers, low_score_website):
        """Test marking a single notification read"""
        notification_id = client.get("/api/v1/notifications", headers=headers).json()["items"][0]["id"]

        response = client.post(f"/api/v1/notifications/{notification_id}/read", headers=headers)

        assert response.json()["unread_count"] == 0
        unread = client.get("/api/v1/notifications?read=false", headers=headers).json()
        assert unread["pagination"]["total"] == 0

    @pytest.mark.integration
    def test_mark_all_read(self, client, headers, low_score_website):
        """Test marking every notification read"""
        response = client.post("/api/v1/notifications/read-all", headers=headers)

        assert response.status_code == 200
        assert response.json()["unread_count"] == 0

    @pytest.mark.integration
    def test_delete_one(self, client, headers, low_score_website):
        """Test deleting a notification"""
        notification_id = client.get("/api/v1/notifications", headers=headers).json()["items"][0]["id"]

        assert client.delete(f"/api/v1/notifications/{notification_id}", headers=headers).status_code == 200
        assert client.delete(f"/api/v1/notifications/{notification_id}", headers=headers).status_code == 404

    @pytest.mark.integration
    def test_delete_unknown(self, client, headers):
        """Test deleting a notification that does not exist"""
        response = client.delete(f"/api/v1/notifications/{uuid4()}", headers=headers)
        assert response.status_code == 404

    @pytest.mark.integration
    def test_delete_all(self, client, headers, low_score_website):
        """Test clearing the inbox"""
        response = client.delete("/api/v1/notifications", headers=headers)

        assert response.json()["deleted"] == 1
        assert client.get("/api/v1/notifications", headers=headers).json()["unread_count"] == 0
