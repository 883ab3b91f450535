"""Service for sending password reset emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from urllib.parse import urlencode

logger = logging.getLogger(__name__)


class EmailService:
    """Notification sender that delivers reset tokens via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "Bondfire",
        base_url: str = "http://localhost:5173",
        reset_ttl_minutes: int = 60,
    ):
        self.smtp_host = smtp_host or ""
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username or ""
        self.smtp_password = smtp_password or ""
        self.from_email = from_email or ""
        self.from_name = from_name
        self.base_url = base_url.rstrip("/")
        self.reset_ttl_minutes = reset_ttl_minutes
        self.enabled = bool(self.smtp_host and self.from_email)

    def send(self, email: str, reset_token: str) -> bool:
        """
        Send the password reset link.

        Args:
            email: Recipient email
            reset_token: Single-use reset token

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.enabled:
            logger.warning("SMTP not configured; password reset email for %s was not delivered", email)
            return False

        reset_url = f"{self.base_url}/reset-password?{urlencode({'token': reset_token})}"
        subject = "Reset your Bondfire password"
        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #1e293b;">Password reset</h2>
                <p style="color: #475569; line-height: 1.6;">
                    Someone asked to reset the password for this Bondfire account.
                    Use the button below to choose a new one.
                </p>
                <p style="text-align: center; margin: 30px 0;">
                    <a href="{reset_url}"
                       style="background-color: #ea580c; color: white; padding: 15px 30px;
                              text-decoration: none; border-radius: 5px; font-weight: bold;">
                        Reset password
                    </a>
                </p>
                <p style="color: #64748b; font-size: 14px;">
                    This link expires in {self.reset_ttl_minutes} minutes and works once.
                    If you did not ask for it, you can ignore this email.
                </p>
            </body>
        </html>
        """

        text_body = f"""
        Bondfire - Password reset

        Open the link below to choose a new password:
        {reset_url}

        This link expires in {self.reset_ttl_minutes} minutes and works once.
        If you did not ask for it, you can ignore this email.
        """

        return self._send_email(email, subject, html_body, text_body)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                if self.smtp_username:
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", to_email, exc)
            return False

        logger.info("Password reset email sent to %s", to_email)
        return True
