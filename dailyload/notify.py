from email.message import EmailMessage
import logging
import smtplib
from typing import Protocol

from dailyload.config import Settings


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, subject: str, body: str) -> None: ...


class LogNotifier:
    def notify(self, subject: str, body: str) -> None:
        logger.info("notification: %s\n%s", subject, body)


class SmtpNotifier:
    def __init__(self, *, host: str, port: int, sender: str, recipients: tuple[str, ...]) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.recipients = recipients

    def notify(self, subject: str, body: str) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = ", ".join(self.recipients)
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            smtp.send_message(message)


def build_notifier(settings: Settings) -> Notifier:
    if settings.smtp_host and settings.notify_recipients:
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.notify_sender,
            recipients=settings.notify_recipients,
        )
    return LogNotifier()
