from sqlalchemy import Column, Integer, String, Boolean, text
from commerce.core.db import Base
from commerce.models.base.mixins import TimestampMixin
from commerce.models.enums.email_recipient_type import EmailRecipientType


class Email(Base, TimestampMixin):
    __tablename__ = "emails"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    recipient_type = Column(
        String(20),
        nullable=False,
        default=EmailRecipientType.CUSTOMER.value,
    )
    to = Column(String(255), nullable=True)
    bcc = Column(String(255), nullable=True)
    template_path = Column(String(255), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True, server_default=text("true"))

    def __repr__(self):
        return f"<Email id={self.id} name={self.name}>"
