"""Integration tests for continuous monitoring routes"""
import pytest

from sitewatch.db.enums import AuditCategory


def configure(client, headers, website_id, **values):
    return client.put("/api/v1/monitor/config", json={"website_id": website_id, **values}, headers=headers)


def run_check(client, headers, website_id):
    return client.post(f"/api/v1/monitor/check?website_id={website_id}", headers=headers)


class TestMonitoringConfig:
    """Tests for monitoring configuration"""

    @pytest.mark.integration
    def test_config_before_setup(self, client, headers, create_website):
        """Test reading config for a website that is not monitored"""
        website_id = create_website()

        data = client.get(f"/api/v1/monitor/config?website_id={website_id}", headers=headers).json()

        assert data["monitoring_enabled"] is False
        assert data["config"] is None
        assert data["unread_alerts"] == 0

    @pytest.mark.integration
    def test_enable_with_defaults(self, client, headers, create_website):
        """Test that enabling fills in default settings"""
        website_id = create_website()

        response = configure(client, headers, website_id, enabled=True)

        assert response.status_code == 200
        data = response.json()
        assert data["frequency"] == "weekly"
        assert data["alert_threshold"] == 10.0
        assert data["metrics"] == ["overall_score", "seo_score", "performance_score"]
        assert data["next_check_at"] is not None

        website = client.get(f"/api/v1/websites/{website_id}", headers=headers).json()
        assert website["monitoring_enabled"] is True

    @pytest.mark.integration
    def test_threshold_out_of_range(self, client, headers, create_website):
        """Test that the alert threshold must be a percentage"""
        website_id = create_website()

        response = configure(client, headers, website_id, enabled=True, alert_threshold=150)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "MONITORING_002"

    @pytest.mark.integration
    def test_unknown_metric(self, client, headers, create_website):
        """Test that only score metrics can be watched"""
        website_id = create_website()

        response = configure(client, headers, website_id, enabled=True, metrics=["bounce_rate"])

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "MONITORING_003"

    @pytest.mark.integration
    def test_toggle_off_clears_next_check(self, client, headers, create_website):
        """Test that disabling monitoring stops future checks"""
        website_id = create_website()
        configure(client, headers, website_id, enabled=True, frequency="daily")

        response = client.post(
            "/api/v1/monitor/toggle", json={"website_id": website_id, "enabled": False}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["enabled"] is False
        assert response.json()["next_check_at"] is None

    @pytest.mark.integration
    def test_other_tenant_cannot_configure(self, client, create_website, seed_user, auth_headers):
        """Test that another user's website cannot be configured"""
        website_id = create_website()

        response = configure(client, auth_headers(seed_user()), website_id, enabled=True)

        assert response.status_code == 404


class TestMonitoringChecks:
    """Tests for running checks and managing alerts"""

    @pytest.mark.integration
    def test_check_without_config(self, client, headers, create_website):
        """Test that a check needs a monitoring config"""
        website_id = create_website()

        response = run_check(client, headers, website_id)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "MONITORING_001"

    @pytest.mark.integration
    def test_first_check_has_no_alerts(self, client, headers, create_website):
        """Test that a healthy first check raises nothing"""
        website_id = create_website()
        configure(client, headers, website_id, enabled=True)

        data = run_check(client, headers, website_id).json()

        assert data["audit"]["trigger"] == "monitoring"
        assert data["audit"]["status"] == "completed"
        assert data["alerts"] == []
        assert data["error"] is None
        assert data["next_check_at"] is not None

    @pytest.fixture
    def alerted_website(self, client, headers, create_website, fake_engine):
        """A monitored website whose second check dropped sharply"""
        website_id = create_website()
        configure(client, headers, website_id, enabled=True, metrics=["overall_score"])
        run_check(client, headers, website_id)
        fake_engine.scores = {category.value: 40.0 for category in AuditCategory}
        return website_id, run_check(client, headers, website_id).json()

    @pytest.mark.integration
    def test_score_drop_raises_alerts(self, alerted_website):
        """Test that a 50% drop to 40 raises a drop and a low-score alert"""
        _, data = alerted_website

        by_category = {alert["category"]: alert for alert in data["alerts"]}
        assert by_category["score_drop"]["severity"] == "critical"
        assert by_category["score_drop"]["value"] == -50.0
        assert by_category["low_score"]["severity"] == "warning"

    @pytest.mark.integration
    def test_list_and_mark_alerts(self, client, headers, alerted_website):
        """Test listing alerts and marking them read"""
        website_id, _ = alerted_website

        listing = client.get(f"/api/v1/monitor/alerts?website_id={website_id}", headers=headers).json()
        assert listing["pagination"]["total"] == 2
        assert listing["unread"] == 2

        first_id = listing["items"][0]["id"]
        marked = client.patch(
            "/api/v1/monitor/alerts",
            json={"website_id": website_id, "alert_ids": [first_id]},
            headers=headers,
        ).json()
        assert marked["updated"] == 1

        unread = client.get(
            f"/api/v1/monitor/alerts?website_id={website_id}&unread_only=true", headers=headers
        ).json()
        assert unread["pagination"]["total"] == 1

        client.patch("/api/v1/monitor/alerts", json={"website_id": website_id, "all": True}, headers=headers)
        config = client.get(f"/api/v1/monitor/config?website_id={website_id}", headers=headers).json()
        assert config["unread_alerts"] == 0

    @pytest.mark.integration
    def test_delete_alerts(self, client, headers, alerted_website):
        """Test deleting every alert of a website"""
        website_id, _ = alerted_website

        response = client.delete(f"/api/v1/monitor/alerts?website_id={website_id}", headers=headers)

        assert response.json()["deleted"] == 2

    @pytest.mark.integration
    def test_history_lists_monitoring_audits(self, client, headers, alerted_website):
        """Test that monitoring history holds both check audits"""
        website_id, _ = alerted_website

        data = client.get(f"/api/v1/monitor/history?website_id={website_id}", headers=headers).json()

        assert data["pagination"]["total"] == 2
        assert data["items"][0]["overall_score"] == 40.0
