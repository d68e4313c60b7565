"""Integration tests for schedule routes"""
from datetime import timedelta

import pytest

from sitewatch.utils.dates import utcnow


def create_schedule(client, headers, website_id, **values):
    body = {"website_id": website_id, "frequency": "weekly", **values}
    return client.post("/api/v1/schedules", json=body, headers=headers)


class TestScheduleCrud:
    """Tests for schedule management"""

    @pytest.mark.integration
    def test_create_weekly_schedule(self, client, headers, create_website):
        """Test that a new schedule gets its first run time"""
        website_id = create_website()

        response = create_schedule(
            client, headers, website_id, day_of_week=2, time_of_day="03:00", timezone="Europe/Berlin"
        )

        assert response.status_code == 201
        data = response.json()
        assert data["frequency"] == "weekly"
        assert data["is_active"] is True
        assert data["next_run_at"] is not None
        assert data["run_count"] == 0

    @pytest.mark.integration
    def test_unknown_timezone_rejected(self, client, headers, create_website):
        """Test that an unknown IANA zone is rejected"""
        website_id = create_website()

        response = create_schedule(client, headers, website_id, timezone="Mars/Olympus")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "SCHEDULE_002"

    @pytest.mark.integration
    def test_invalid_time_of_day_rejected(self, client, headers, create_website):
        """Test that a malformed time of day is rejected"""
        website_id = create_website()

        response = create_schedule(client, headers, website_id, time_of_day="25:99")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "SCHEDULE_001"

    @pytest.mark.integration
    def test_one_time_in_past_rejected(self, client, headers, create_website):
        """Test that a one-time schedule must lie in the future"""
        website_id = create_website()
        past = (utcnow() - timedelta(days=1)).isoformat()

        response = create_schedule(client, headers, website_id, frequency="one_time", scheduled_at=past)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "SCHEDULE_008"

    @pytest.mark.integration
    def test_one_time_in_future(self, client, headers, create_website):
        """Test that a future one-time schedule runs at its time"""
        website_id = create_website()
        when = (utcnow() + timedelta(days=2)).replace(microsecond=0)

        response = create_schedule(
            client, headers, website_id, frequency="one_time", scheduled_at=when.isoformat()
        )

        assert response.status_code == 201
        assert response.json()["next_run_at"].startswith(when.isoformat())

    @pytest.mark.integration
    def test_list_and_filter(self, client, headers, create_website):
        """Test listing schedules filtered by active flag"""
        website_id = create_website()
        create_schedule(client, headers, website_id)
        create_schedule(client, headers, website_id, frequency="daily", is_active=False)

        everything = client.get("/api/v1/schedules", headers=headers).json()
        active = client.get("/api/v1/schedules?active=true", headers=headers).json()

        assert everything["count"] == 2
        assert active["count"] == 1
        assert active["schedules"][0]["frequency"] == "weekly"

    @pytest.mark.integration
    def test_pause_clears_next_run(self, client, headers, create_website):
        """Test that deactivating a schedule clears its next run"""
        website_id = create_website()
        schedule_id = create_schedule(client, headers, website_id).json()["id"]

        response = client.patch(f"/api/v1/schedules/{schedule_id}", json={"is_active": False}, headers=headers)

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert response.json()["next_run_at"] is None

    @pytest.mark.integration
    def test_other_tenant_cannot_read(self, client, headers, create_website, seed_user, auth_headers):
        """Test that another user's schedule looks missing"""
        website_id = create_website()
        schedule_id = create_schedule(client, headers, website_id).json()["id"]

        response = client.get(f"/api/v1/schedules/{schedule_id}", headers=auth_headers(seed_user()))

        assert response.status_code == 404

    @pytest.mark.integration
    def test_delete_schedule(self, client, headers, create_website):
        """Test deleting a schedule"""
        website_id = create_website()
        schedule_id = create_schedule(client, headers, website_id).json()["id"]

        assert client.delete(f"/api/v1/schedules/{schedule_id}", headers=headers).status_code == 200
        assert client.get(f"/api/v1/schedules/{schedule_id}", headers=headers).status_code == 404


class TestWebsiteSchedule:
    """Tests for the per-website schedule shortcut"""

    @pytest.mark.integration
    def test_no_schedule_yet(self, client, headers, create_website):
        """Test a website without a schedule"""
        website_id = create_website()

        data = client.get(f"/api/v1/websites/{website_id}/schedule", headers=headers).json()

        assert data == {"website_id": website_id, "enabled": False, "schedule": None}

    @pytest.mark.integration
    def test_enable_then_disable(self, client, headers, create_website):
        """Test enabling and disabling recurring audits for a website"""
        website_id = create_website()

        enabled = client.post(
            f"/api/v1/websites/{website_id}/schedule", json={"frequency": "monthly"}, headers=headers
        )
        assert enabled.status_code == 200
        assert enabled.json()["frequency"] == "monthly"

        disabled = client.delete(f"/api/v1/websites/{website_id}/schedule", headers=headers)
        assert disabled.json()["data"]["schedule_id"] == enabled.json()["id"]

        data = client.get(f"/api/v1/websites/{website_id}/schedule", headers=headers).json()
        assert data["enabled"] is False
        assert data["schedule"]["next_run_at"] is None

    @pytest.mark.integration
    def test_reenable_reuses_schedule(self, client, headers, create_website):
        """Test that enabling twice updates the same schedule"""
        website_id = create_website()
        first = client.post(f"/api/v1/websites/{website_id}/schedule", json={}, headers=headers).json()
        client.delete(f"/api/v1/websites/{website_id}/schedule", headers=headers)

        second = client.post(
            f"/api/v1/websites/{website_id}/schedule", json={"frequency": "daily"}, headers=headers
        ).json()

        assert second["id"] == first["id"]
        assert second["frequency"] == "daily"
        assert second["is_active"] is True

    @pytest.mark.integration
    def test_one_time_not_allowed(self, client, headers, create_website):
        """Test that the website shortcut only accepts recurring frequencies"""
        website_id = create_website()

        response = client.post(
            f"/api/v1/websites/{website_id}/schedule", json={"frequency": "one_time"}, headers=headers
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "SCHEDULE_006"

    @pytest.mark.integration
    def test_history_is_empty_before_runs(self, client, headers, create_website):
        """Test schedule history before any run"""
        website_id = create_website()

        data = client.get(f"/api/v1/websites/{website_id}/schedule/history", headers=headers).json()

        assert data["items"] == []
        assert data["pagination"]["total"] == 0
