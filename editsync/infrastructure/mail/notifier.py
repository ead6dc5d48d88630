import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from editsync.core.config import Settings, settings as default_settings
from editsync.core.errors import DeliveryFailure

logger = logging.getLogger(__name__)


class Notifier:
    """Интерфейс отправки уведомлений"""

    async def send(self, to: str, subject: str, body: str) -> None:
        raise NotImplementedError


class SmtpNotifier(Notifier):
    """Отправка HTML писем через SMTP"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    @property
    def is_configured(self) -> bool:
        return bool(self.config.smtp_host and self.config.smtp_user and self.config.smtp_password)

    async def send(self, to: str, subject: str, body: str) -> None:
        if not self.is_configured:
            logger.error("Cannot send email: SMTP credentials not configured")
            raise DeliveryFailure()

        message = EmailMessage()
        message["From"] = self.config.mail_from or self.config.smtp_user
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body, subtype="html")

        try:
            # smtplib блокирующий, уводим в пул потоков
            await run_in_threadpool(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email to {to}: {e}")
            raise DeliveryFailure() from e

        logger.info(f"Email '{subject}' sent to {to}")

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as smtp:
            if self.config.smtp_use_tls:
                smtp.starttls()
            smtp.login(self.config.smtp_user, self.config.smtp_password)
            smtp.send_message(message)


_notifier = SmtpNotifier()


def get_notifier() -> Notifier:
    """Зависимость FastAPI, в тестах подменяется через dependency_overrides"""
    return _notifier
