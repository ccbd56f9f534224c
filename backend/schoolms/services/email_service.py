"""
Email Service for the School Management System
==============================================
Outbound mail for the account lifecycle:
- Account created (temporary password)
- Password reset link

Delivery is a single SMTP attempt. The result always comes back as a
MailResponse; transport errors never escape this module.
"""

import aiosmtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional

from schoolms.core.config import settings
from schoolms.core.logging_config import logger


@dataclass
class MailResponse:
    is_success: bool
    message: str = ""


class EmailService:
    """Async SMTP mail gateway"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.start_tls = settings.SMTP_START_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.subject_prefix = settings.MAIL_SUBJECT_PREFIX

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> MailResponse:
        """
        Send an email asynchronously.

        Only the recipient and subject are logged; bodies may hold credentials.
        """
        if not self.is_configured:
            logger.warning(f"[Email] Mail service not configured, not sending '{subject}' to {to_email}")
            return MailResponse(False, "Mail service is not configured.")

        return await self._send_via_smtp(to_email, subject, html_content, text_content)

    async def _send_via_smtp(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> MailResponse:
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject

        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.start_tls
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return MailResponse(False, str(e))

        logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
        return MailResponse(True, "Email sent.")

    # ===== TEMPLATES =====

    async def send_account_created_email(self, to_email: str, temporary_password: str) -> MailResponse:
        """Deliver the login email and temporary password of an admin-created account"""
        subject = f"{self.subject_prefix} - Account Created"
        html_content = f"""
        <h2>Account Created</h2>
        <p>An account has been created for you.</p>
        <p><b>Email:</b> {escape(to_email)}</p>
        <p><b>Temporary password:</b> {escape(temporary_password)}</p>
        <p>Please login and then change your password.</p>
        <p>If the password does not work, use the "Forgot your password?" option on the login page.</p>
        """
        return await self.send_email(to_email, subject, html_content)

    async def send_password_reset_email(self, to_email: str, reset_link: str) -> MailResponse:
        subject = f"{self.subject_prefix} - Password Reset"
        html_content = f"""
        <h2>Password Reset</h2>
        <p>To reset your password, click the link below:</p>
        <p><a href="{escape(reset_link)}">Reset Password</a></p>
        <p>If you did not request a password reset, you can ignore this email.</p>
        """
        return await self.send_email(to_email, subject, html_content)


email_service = EmailService()


def get_email_service() -> EmailService:
    """Mail gateway dependency"""
    return email_service
