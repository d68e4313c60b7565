"""Outbound email for alert notifications"""
import asyncio
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from sitewatch.core.config import settings

logger = logging.getLogger(__name__)

PRIORITY_COLORS = {
    "low": "#6b7280",
    "medium": "#2563eb",
    "high": "#f59e0b",
    "urgent": "#dc2626",
    "critical": "#991b1b",
}


def render_alert_email(title: str, message: str, priority: str = "medium",
                       link: Optional[str] = None) -> str:
    """HTML body for an alert email, colored by priority"""
    color = PRIORITY_COLORS.get(priority, PRIORITY_COLORS["medium"])
    link_html = ""
    if link:
        link_html = f"<p><a href='{html.escape(link)}'>View details</a></p>"
    return f"""
    <div style="font-family: sans-serif; max-width: 600px;">
      <div style="border-left: 4px solid {color}; padding: 12px 16px;">
        <p style="color: {color}; text-transform: uppercase; font-size: 12px; margin: 0;">{html.escape(priority)} priority</p>
        <h2 style="margin: 4px 0 12px;">{html.escape(title)}</h2>
        <p>{html.escape(message)}</p>
        {link_html}
      </div>
      <p style="color: #6b7280; font-size: 12px;">Sent by Sitewatch</p>
    </div>
    """


class EmailSender:
    """
    Sends email over SMTP.

    Without ``smtp_host`` configured, messages are logged instead of sent.
    """

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 username: Optional[str] = None, password: Optional[str] = None,
                 mail_from: Optional[str] = None):
        self.host = host if host is not None else settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username if username is not None else settings.smtp_username
        self.password = password if password is not None else settings.smtp_password
        self.mail_from = mail_from or settings.mail_from

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def _send_via_smtp(self, to_email: str, subject: str, html_body: str) -> None:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.mail_from
        msg['To'] = to_email
        msg.attach(MIMEText(html_body, 'html'))
        with smtplib.SMTP(self.host, self.port, timeout=30) as s:
            s.starttls()
            if self.username and self.password:
                s.login(self.username, self.password)
            s.sendmail(self.mail_from, [to_email], msg.as_string())

    async def send(self, to_email: str, subject: str, html_body: str) -> bool:
        """
        Send an email; returns False instead of raising on delivery failure.
        """
        if not self.enabled:
            logger.info(f"Email (log only) to {to_email}: {subject}")
            return True

        try:
            await asyncio.to_thread(self._send_via_smtp, to_email, subject, html_body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"Sent email to {to_email}: {subject}")
        return True
