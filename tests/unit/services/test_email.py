"""Unit tests for alert email delivery"""
import smtplib
import pytest
from unittest.mock import MagicMock, patch

from sitewatch.services.email import EmailSender, render_alert_email


class TestRenderAlertEmail:
    """Tests for the alert email body"""

    def test_escapes_content(self):
        body = render_alert_email("<b>Low score</b>", "Score & stuff", "urgent", "https://app.example.com/a?x=1&y=2")

        assert "&lt;b&gt;Low score&lt;/b&gt;" in body
        assert "Score &amp; stuff" in body
        assert "#dc2626" in body
        assert "View details" in body

    def test_unknown_priority_uses_default_color(self):
        assert "#2563eb" in render_alert_email("t", "m", "whatever")


class TestEmailSender:
    """Tests for SMTP sending"""

    @pytest.mark.asyncio
    async def test_log_only_without_host(self):
        sender = EmailSender(host="")

        assert not sender.enabled
        assert await sender.send("a@example.com", "Subject", "<p>hi</p>")

    @pytest.mark.asyncio
    async def test_sends_via_smtp(self):
        """Test message goes through starttls, login and sendmail"""
        sender = EmailSender(host="smtp.example.com", port=587, username="user",
                             password="pass", mail_from="alerts@example.com")
        smtp = MagicMock()
        with patch("sitewatch.services.email.smtplib.SMTP") as smtp_class:
            smtp_class.return_value.__enter__.return_value = smtp
            assert await sender.send("a@example.com", "Subject", "<p>hi</p>")

        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=30)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user", "pass")
        from_addr, to_addrs, message = smtp.sendmail.call_args.args
        assert from_addr == "alerts@example.com"
        assert to_addrs == ["a@example.com"]
        assert "Subject: Subject" in message

    @pytest.mark.asyncio
    async def test_smtp_failure_returns_false(self):
        sender = EmailSender(host="smtp.example.com")
        with patch("sitewatch.services.email.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
            assert not await sender.send("a@example.com", "Subject", "<p>hi</p>")
