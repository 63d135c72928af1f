# commerce/core/dependencies.py

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from commerce.core.db import get_db
from commerce.core.mailer import SmtpMailer, get_mailer
from commerce.services.emails.email_service import EmailService
from commerce.services.orders.order_status_service import OrderStatusService


def get_email_service(
    db: AsyncSession = Depends(get_db),
    mailer: SmtpMailer = Depends(get_mailer),
) -> EmailService:
    return EmailService(db, mailer)


def get_order_status_service(
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> OrderStatusService:
    return OrderStatusService(db, email_service=email_service)
