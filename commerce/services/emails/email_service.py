from email.message import EmailMessage
from email.utils import getaddresses
from pathlib import Path
from typing import Optional

from jinja2 import TemplateError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commerce.core.config import EMAIL_TEMPLATES_DIR
from commerce.core.mailer import SmtpMailer
from commerce.models.emails.email_models import Email
from commerce.models.enums.email_recipient_type import EmailRecipientType
from commerce.schemas.emails.email_schemas import EmailCreate, EmailOut
from commerce.utils.email_render import render_body, render_string
from commerce.utils.logger import get_logger
from commerce.utils.response import list_data

logger = get_logger(__name__)


# =========================
# MAPPER
# =========================
def _map_email(email: Email) -> EmailOut:
    return EmailOut.model_validate(email)


def _split_addresses(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [addr for _, addr in getaddresses([value]) if addr]


class EmailService:
    """Email templates and their delivery for order notifications."""

    def __init__(
        self,
        db: AsyncSession,
        mailer: SmtpMailer,
        template_dir: Path = EMAIL_TEMPLATES_DIR,
    ):
        self.db = db
        self.mailer = mailer
        self.template_dir = template_dir

    # =========================
    # CREATE
    # =========================
    async def create_email(self, payload: EmailCreate) -> EmailOut:
        email = Email(
            **payload.model_dump(exclude={"recipient_type"}),
            recipient_type=payload.recipient_type.value,
        )
        self.db.add(email)

        await self.db.commit()
        await self.db.refresh(email)

        logger.info("Email template created", extra={"email_id": email.id})
        return _map_email(email)

    # =========================
    # LIST
    # =========================
    async def list_emails(self) -> dict:
        emails = (
            await self.db.scalars(select(Email).order_by(Email.name, Email.id))
        ).all()
        return list_data([_map_email(e) for e in emails])

    # =========================
    # SEND
    # =========================
    async def send_email(self, email: EmailOut, order, order_history, order_status=None) -> bool:
        """
        Render ``email`` for ``order`` and hand it to the mailer.

        Returns False, after logging, when the template is disabled, has no
        recipient, fails to render or the transport refuses the message.
        """
        if not email.enabled:
            logger.debug("Email disabled, skipping", extra={"email_id": email.id})
            return False

        variables = {
            "order": order,
            "order_history": order_history,
            "order_status": order_status,
        }

        try:
            if email.recipient_type == EmailRecipientType.CUSTOMER:
                to = _split_addresses(order.email)
            else:
                to = _split_addresses(render_string(email.to or "", variables))

            subject = render_string(email.subject, variables)
            body = render_body(email.template_path, variables, self.template_dir)
        except TemplateError:
            logger.exception(
                "Email could not be rendered",
                extra={"email_id": email.id, "template": email.template_path},
            )
            return False

        if not to:
            logger.error(
                "Email has no recipient",
                extra={"email_id": email.id, "order_id": order.id},
            )
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.mailer.from_addr
        message["To"] = ", ".join(to)
        bcc = _split_addresses(email.bcc)
        if bcc:
            message["Bcc"] = ", ".join(bcc)
        message.set_content(body, subtype="html")

        try:
            await self.mailer.send(message)
        except OSError:
            logger.exception(
                "Email could not be sent",
                extra={"email_id": email.id, "order_id": order.id},
            )
            return False

        return True
