# commerce/core/mailer.py

import smtplib
from email.message import EmailMessage

from fastapi.concurrency import run_in_threadpool

from commerce.core.config import (
    MAIL_HOST,
    MAIL_PORT,
    MAIL_USERNAME,
    MAIL_PASSWORD,
    MAIL_FROM,
    MAIL_USE_TLS,
)
from commerce.utils.logger import get_logger

logger = get_logger("commerce.mail")


class SmtpMailer:
    """Delivers ``EmailMessage`` objects over SMTP."""

    def __init__(
        self,
        host: str = MAIL_HOST,
        port: int = MAIL_PORT,
        username: str | None = MAIL_USERNAME,
        password: str | None = MAIL_PASSWORD,
        use_tls: bool = MAIL_USE_TLS,
        from_addr: str = MAIL_FROM,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_addr = from_addr

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(message)

    async def send(self, message: EmailMessage) -> None:
        if not message["From"]:
            message["From"] = self.from_addr

        # smtplib blocks
        await run_in_threadpool(self._send_sync, message)

        logger.info(
            "Email sent",
            extra={"to": message["To"], "subject": message["Subject"]},
        )


def get_mailer() -> SmtpMailer:
    return SmtpMailer()
