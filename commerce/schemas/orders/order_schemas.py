from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime


class OrderCreate(BaseModel):
    email: EmailStr
    number: Optional[str] = Field(default=None, max_length=32)
    order_status_id: Optional[int] = None


class OrderStatusChange(BaseModel):
    order_status_id: int
    message: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    number: str
    email: str
    order_status_id: Optional[int]

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderHistoryOut(BaseModel):
    id: int
    order_id: int
    prev_status_id: Optional[int]
    new_status_id: Optional[int]
    message: Optional[str]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
