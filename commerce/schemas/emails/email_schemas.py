from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from commerce.models.enums.email_recipient_type import EmailRecipientType


class EmailCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    subject: str = Field(min_length=1, max_length=255)
    recipient_type: EmailRecipientType = EmailRecipientType.CUSTOMER
    to: Optional[str] = None
    bcc: Optional[str] = None
    template_path: str = Field(min_length=1, max_length=255)
    enabled: bool = True


class EmailOut(BaseModel):
    id: int
    name: str
    subject: str
    recipient_type: EmailRecipientType
    to: Optional[str]
    bcc: Optional[str]
    template_path: str
    enabled: bool

    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


