"""Tests for the sitewatch CLI"""
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from click.testing import CliRunner

from sitewatch.cli import main as cli_main
from sitewatch.core.auth import decode_access_token


class TestCli:
    """Tests for CLI commands"""

    def test_token_for_admin(self):
        """Test issuing an admin token"""
        user_id = uuid4()

        result = CliRunner().invoke(cli_main.cli, ["token", str(user_id), "--admin"])

        assert result.exit_code == 0
        payload = decode_access_token(result.output.strip())
        assert payload["sub"] == str(user_id)
        assert payload["role"] == "admin"

    def test_run_schedules_reports_counts(self):
        """Test the schedule batch summary output"""
        summary = {"processed": 3, "succeeded": 2, "failed": 1, "next_scheduled": "2026-01-05T09:00:00"}

        with patch.object(cli_main, "_run_schedules", AsyncMock(return_value=summary)):
            result = CliRunner().invoke(cli_main.cli, ["run-schedules"])

        assert result.exit_code == 0
        assert "3 processed, 2 succeeded, 1 failed" in result.output
        assert "Next scheduled run: 2026-01-05T09:00:00" in result.output

    def test_run_monitoring_reports_count(self):
        """Test the monitoring batch output"""
        with patch.object(cli_main, "_run_monitoring", AsyncMock(return_value=4)):
            result = CliRunner().invoke(cli_main.cli, ["run-monitoring"])

        assert result.exit_code == 0
        assert "Checked 4 websites" in result.output

    def test_db_init_creates_tables(self):
        """Test that db init creates the schema"""
        with patch("sitewatch.cli.db.create_tables", AsyncMock()) as create_tables:
            result = CliRunner().invoke(cli_main.cli, ["db", "init"])

        assert result.exit_code == 0
        create_tables.assert_awaited_once_with(drop=False)
