"""Digest delivery over SMTP."""

import smtplib
import socket
from email.message import EmailMessage
from email.utils import make_msgid

import structlog

from pohoda_digest.config.settings import DigestSettings

logger = structlog.get_logger(__name__)


def default_sender(settings: DigestSettings) -> str:
    return settings.digest_from_email or f"noreply@{socket.gethostname()}"


def build_message(to: str, subject: str, html: str, sender: str) -> EmailMessage:
    """HTML message with a short plain-text fallback part."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=sender.rsplit("@", 1)[-1] or None)
    message.set_content(
        "This digest is formatted as HTML. Please open it in an HTML capable mail client."
    )
    message.add_alternative(html, subtype="html")
    return message


def send_html_email(
    settings: DigestSettings,
    to: str,
    subject: str,
    html: str,
    sender: str | None = None,
) -> None:
    """Send ``html`` to ``to``. SMTP and socket errors propagate."""
    message = build_message(to, subject, html, sender or default_sender(settings))

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as server:
        if settings.smtp_starttls:
            server.starttls()
        if settings.smtp_username:
            password = settings.smtp_password.get_secret_value() if settings.smtp_password else ""
            server.login(settings.smtp_username, password)
        server.send_message(message)

    logger.info("digest_email_sent", to=to, smtp_host=settings.smtp_host, subject=subject)
