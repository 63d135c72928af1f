from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from commerce.core.db import Base
from commerce.models.base.mixins import TimestampMixin


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False)
    order_status_id = Column(
        Integer,
        ForeignKey("orderstatuses.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    histories = relationship(
        "OrderHistory",
        back_populates="order",
        order_by="OrderHistory.id",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Order id={self.id} number={self.number} status={self.order_status_id}>"


class OrderHistory(Base):
    """Status transitions of an order. Append-only."""

    __tablename__ = "order_histories"

    id = Column(Integer, primary_key=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    prev_status_id = Column(
        Integer,
        ForeignKey("orderstatuses.id", ondelete="SET NULL"),
        nullable=True,
    )
    new_status_id = Column(
        Integer,
        ForeignKey("orderstatuses.id", ondelete="SET NULL"),
        nullable=True,
    )
    message = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    order = relationship("Order", back_populates="histories")

    def __repr__(self):
        return f"<OrderHistory order={self.order_id} {self.prev_status_id}->{self.new_status_id}>"
