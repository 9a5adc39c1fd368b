"""Invitation email delivery.

Delivery happens after the invitation is committed. Failures are the
caller's to log; they never undo the invitation.
"""

import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Optional, Protocol, runtime_checkable

from src.settings import Settings

logger = logging.getLogger(__name__)


@runtime_checkable
class InvitationMailer(Protocol):
    """Sends the "you have been invited" email."""

    def send_invitation(
        self,
        to: str,
        inviter_name: str,
        workspace_name: str,
        accept_url: str,
        expires_at: Optional[datetime] = None,
    ) -> None:
        ...


def render_invitation(
    inviter_name: str,
    workspace_name: str,
    accept_url: str,
    expires_at: Optional[datetime] = None,
) -> tuple[str, str]:
    """Subject and plain-text body of an invitation email.

    ``expires_at`` is naive UTC; without it the body carries no expiry line.
    """
    inviter = inviter_name or "A teammate"
    subject = f"{inviter} invited you to join {workspace_name}"
    body = (
        f"{inviter} has invited you to join the workspace \"{workspace_name}\".\n\n"
        f"Accept the invitation:\n{accept_url}\n"
    )
    if expires_at is not None:
        body += f"\nThis link expires on {expires_at:%Y-%m-%d %H:%M} UTC.\n"
    return subject, body


class LoggingInvitationMailer:
    """Writes invitations to the log instead of sending them (development)."""

    def send_invitation(
        self,
        to: str,
        inviter_name: str,
        workspace_name: str,
        accept_url: str,
        expires_at: Optional[datetime] = None,
    ) -> None:
        subject, _ = render_invitation(inviter_name, workspace_name, accept_url, expires_at)
        logger.info(f"Invitation email to {to}: {subject} <{accept_url}>")


class SmtpInvitationMailer:
    """Sends invitations through an SMTP relay with STARTTLS."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = "noreply@workroom.local",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpInvitationMailer":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.mail_from,
        )

    def send_invitation(
        self,
        to: str,
        inviter_name: str,
        workspace_name: str,
        accept_url: str,
        expires_at: Optional[datetime] = None,
    ) -> None:
        subject, body = render_invitation(inviter_name, workspace_name, accept_url, expires_at)

        msg = EmailMessage()
        msg.set_content(body)
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.ehlo()
            smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)
        logger.info(f"Invitation email sent to {to}")


def build_mailer(settings: Settings) -> InvitationMailer:
    """SMTP mailer when a relay is configured, otherwise the logging mailer."""
    if settings.smtp_host:
        return SmtpInvitationMailer.from_settings(settings)
    return LoggingInvitationMailer()
