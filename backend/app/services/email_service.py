"""
Email Service

Builds account emails and hands them to the configured delivery backend.
"""

import html
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List
from urllib.parse import quote

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailTemplate:
    to: str
    subject: str
    html: str
    text: str


def _link(path: str, token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}{path}?token={quote(token, safe='')}"


def _html_page(title: str, paragraphs: List[str], link: str = "", link_label: str = "") -> str:
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    if link:
        body += f'<p><a href="{html.escape(link)}">{html.escape(link_label)}</a></p>'
        body += f"<p>{html.escape(link)}</p>"
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)}</title></head>"
        f"<body><h2>{html.escape(title)}</h2>{body}"
        "<p>&copy; EduSpark</p></body></html>"
    )


def create_email_verification_template(email: str, verification_token: str, name: str) -> EmailTemplate:
    url = _link("/auth/verify-email", verification_token)
    safe_name = html.escape(name)
    return EmailTemplate(
        to=email,
        subject="Welcome to EduSpark - Verify Your Email",
        html=_html_page(
            "Verify your email",
            [
                f"Hi {safe_name}!",
                "Thank you for joining EduSpark. Please verify your email address to get started.",
                "<strong>This link will expire in 24 hours.</strong>",
                "If you didn't create this account, please ignore this email.",
            ],
            url,
            "Verify Email Address",
        ),
        text=(
            f"Hi {name}!\n\n"
            "Thank you for joining EduSpark. To get started, please verify your email address by visiting:\n\n"
            f"{url}\n\n"
            "This link will expire in 24 hours.\n\n"
            "If you didn't create this account, please ignore this email.\n"
        ),
    )


def create_password_reset_template(email: str, reset_token: str, name: str) -> EmailTemplate:
    url = _link("/auth/reset-password", reset_token)
    safe_name = html.escape(name)
    return EmailTemplate(
        to=email,
        subject="Reset Your EduSpark Password",
        html=_html_page(
            "Password reset request",
            [
                f"Hi {safe_name}!",
                "We received a request to reset the password for your EduSpark account.",
                "<strong>This link will expire in 1 hour and can only be used once.</strong>",
                "If you didn't request this reset, please ignore this email. "
                "Your current password remains unchanged.",
            ],
            url,
            "Reset Password",
        ),
        text=(
            f"Hi {name}!\n\n"
            "We received a request to reset the password for your EduSpark account.\n"
            "Visit this link to create a new password:\n\n"
            f"{url}\n\n"
            "This link will expire in 1 hour and can only be used once.\n"
            "If you didn't request this reset, please ignore this email. Your current password remains unchanged.\n"
        ),
    )


def create_welcome_template(email: str, name: str, role: str) -> EmailTemplate:
    sign_in_url = f"{settings.FRONTEND_URL.rstrip('/')}/auth/sign-in"
    if role == "child":
        highlights = "Interactive games, achievements and rewards, and progress tracking are waiting for you."
    else:
        highlights = (
            f"As a {role}, you now have access to the progress dashboard, "
            "goal setting and family connection."
        )
    safe_name = html.escape(name)
    return EmailTemplate(
        to=email,
        subject="Welcome to EduSpark - Let's Start Learning!",
        html=_html_page(
            "Welcome to EduSpark!",
            [
                f"Hi {safe_name}!",
                "Congratulations! Your email has been verified and your EduSpark account is now active.",
                html.escape(highlights),
            ],
            sign_in_url,
            "Start Learning Now!",
        ),
        text=(
            f"Hi {name}!\n\n"
            "Congratulations! Your email has been verified and your EduSpark account is now active.\n"
            f"{highlights}\n\n"
            f"Start your learning journey at: {sign_in_url}\n"
        ),
    )


class EmailService:
    """Dispatch emails through the backend named by EMAIL_BACKEND"""

    def __init__(self) -> None:
        # Sent messages when EMAIL_BACKEND=memory
        self.outbox: List[EmailTemplate] = []

    def send_email(self, template: EmailTemplate) -> bool:
        """
        Send an email

        Args:
            template: Rendered email

        Returns:
            bool: True if the backend accepted the message
        """
        backend = settings.EMAIL_BACKEND.lower()
        if backend == "memory":
            self.outbox.append(template)
            return True
        if backend == "console":
            logger.info(f"Email to {template.to}: {template.subject}")
            return True
        if backend == "smtp":
            return self._send_smtp(template)
        raise ValueError(f"Unknown EMAIL_BACKEND: {settings.EMAIL_BACKEND}")

    def _send_smtp(self, template: EmailTemplate) -> bool:
        message = MIMEMultipart("alternative")
        message["From"] = settings.EMAIL_FROM
        message["To"] = template.to
        message["Subject"] = template.subject
        message.attach(MIMEText(template.text, "plain"))
        message.attach(MIMEText(template.html, "html"))

        try:
            with smtplib.SMTP(
                settings.SMTP_HOST,
                settings.SMTP_PORT,
                timeout=settings.SMTP_TIMEOUT_SECONDS
            ) as server:
                if settings.SMTP_USE_TLS:
                    server.starttls()
                if settings.SMTP_USERNAME:
                    server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error sending '{template.subject}' to {template.to}: {e}")
            return False

        logger.info(f"Email sent to {template.to}: {template.subject}")
        return True

    def send_best_effort(self, template: EmailTemplate) -> None:
        """Send without affecting the caller; failures are only logged."""
        try:
            sent = self.send_email(template)
        except Exception:
            logger.exception(f"Failed to send '{template.subject}' to {template.to}")
            return
        if not sent:
            logger.error(f"Failed to send '{template.subject}' to {template.to}")


email_service = EmailService()
