"""
notify/mailer.py -- Notifier implementations for account mail.

SmtpNotifier sends through a relay with the stdlib smtplib client. LogNotifier
writes the message to the log instead; it is the default when SMTP_HOST is
empty, so a development server can complete a reset without a mail relay.

Both satisfy the Notifier protocol in auth/reset.py:
    send(user, subject, reset_link, template) -> None
and raise NotifierUnavailable when the message cannot be handed off.

Message bodies are plain text built from _TEMPLATES with str.format. HTML
rendering is the job of the mail client, not this module.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from auth.errors import NotifierUnavailable
from auth.models import User
from core.config import Settings

logger = logging.getLogger("jobboard.notify")

_TEMPLATES: dict[str, str] = {
    "reset": (
        "Hello {name},\n\n"
        "We received a request to reset the password for your account.\n"
        "Open the link below to choose a new password. It is valid for one hour.\n\n"
        "{link}\n\n"
        "If you did not ask for this, you can ignore this email; your password stays the same.\n"
    ),
}


def render_message(template: str, user: User, reset_link: str) -> str:
    """Return the plain-text body for a named template. Unknown names raise KeyError."""
    return _TEMPLATES[template].format(name=user.name, link=reset_link)


class SmtpNotifier:
    """Send account mail through an SMTP relay (STARTTLS when use_tls)."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        sender: str = "no-reply@localhost",
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def build(self, user: User, subject: str, reset_link: str, template: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = user.email
        msg.set_content(render_message(template, user, reset_link))
        return msg

    def send(self, user: User, subject: str, reset_link: str, template: str) -> None:
        msg = self.build(user, subject, reset_link, template)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Mail to user_id=%s failed: %s", user.id, exc.__class__.__name__)
            raise NotifierUnavailable() from exc
        logger.info("Mail '%s' sent to user_id=%s", template, user.id)


class LogNotifier:
    """Development notifier: logs the message, including the link."""

    def send(self, user: User, subject: str, reset_link: str, template: str) -> None:
        body = render_message(template, user, reset_link)
        logger.info("Mail (not sent) to=%s subject=%r\n%s", user.email, subject, body)


def notifier_from_settings(settings: Settings) -> SmtpNotifier | LogNotifier:
    if not settings.smtp_host:
        logger.warning("SMTP_HOST not set -- account mail will be written to the log only")
        return LogNotifier()
    return SmtpNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        sender=settings.mail_from,
    )
