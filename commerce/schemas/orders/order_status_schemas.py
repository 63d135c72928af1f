from pydantic import BaseModel, Field, PrivateAttr
from typing import Optional, List, Dict

from commerce.models.enums.order_status_color import OrderStatusColor
from commerce.schemas.emails.email_schemas import EmailOut


class OrderStatusDraft(BaseModel):
    """
    Order status as handed to ``save_order_status``.

    Field values are checked by the service rather than by pydantic, so
    that problems can be reported per field. Errors collected during a
    save are kept on the draft and read back through ``errors``.
    """

    id: Optional[int] = None
    name: Optional[str] = None
    handle: Optional[str] = None
    color: Optional[str] = OrderStatusColor.GREEN.value
    sort_order: Optional[int] = None
    default: bool = False

    _errors: Dict[str, List[str]] = PrivateAttr(default_factory=dict)

    @property
    def errors(self) -> Dict[str, List[str]]:
        return self._errors

    def add_error(self, field: str, message: str) -> None:
        self._errors.setdefault(field, []).append(message)

    def has_errors(self, field: Optional[str] = None) -> bool:
        if field is None:
            return bool(self._errors)
        return bool(self._errors.get(field))

    def clear_errors(self) -> None:
        self._errors.clear()


class OrderStatusCreate(BaseModel):
    name: str
    handle: str
    color: str = OrderStatusColor.GREEN.value
    sort_order: Optional[int] = None
    default: bool = False
    email_ids: List[int] = Field(default_factory=list)

    def to_draft(self, status_id: Optional[int] = None) -> OrderStatusDraft:
        return OrderStatusDraft(
            id=status_id,
            **self.model_dump(exclude={"email_ids"}),
        )


class OrderStatusUpdate(OrderStatusCreate):
    pass


class OrderStatusOut(BaseModel):
    id: int
    name: str
    handle: str
    color: str
    sort_order: int
    default: bool
    emails: List[EmailOut] = Field(default_factory=list)

    class Config:
        from_attributes = True

    @property
    def email_ids(self) -> List[int]:
        return [e.id for e in self.emails]


class OrderStatusReorder(BaseModel):
    ids: List[int] = Field(min_length=1)
