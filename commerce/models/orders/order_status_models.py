from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    ForeignKey,
    UniqueConstraint,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from commerce.core.db import Base
from commerce.models.base.mixins import TimestampMixin
from commerce.models.enums.order_status_color import OrderStatusColor

DEFAULT_SORT_ORDER = 999


class OrderStatus(Base, TimestampMixin):
    __tablename__ = "orderstatuses"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    handle = Column(String(255), nullable=False, unique=True, index=True)
    color = Column(String(20), nullable=False, default=OrderStatusColor.GREEN.value)
    sort_order = Column(Integer, nullable=False, default=DEFAULT_SORT_ORDER)
    default = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    email_links = relationship(
        "OrderStatusEmail",
        back_populates="order_status",
        order_by="OrderStatusEmail.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_orderstatuses_sort_order", "sort_order"),)

    def __repr__(self):
        return f"<OrderStatus id={self.id} handle={self.handle} default={self.default}>"


class OrderStatusEmail(Base):
    """Link row between an order status and an email template."""

    __tablename__ = "orderstatus_email"

    id = Column(Integer, primary_key=True)
    email_id = Column(
        Integer,
        ForeignKey("emails.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_status_id = Column(
        Integer,
        ForeignKey("orderstatuses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    order_status = relationship("OrderStatus", back_populates="email_links")
    email = relationship("Email", lazy="joined")

    __table_args__ = (
        UniqueConstraint("email_id", "order_status_id", name="uq_orderstatus_email"),
    )

    def __repr__(self):
        return f"<OrderStatusEmail status={self.order_status_id} email={self.email_id}>"
