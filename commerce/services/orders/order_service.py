import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from commerce.constants.error_codes import ErrorCode
from commerce.core.exceptions import AppException, OrderStatusNotFound
from commerce.models.orders.order_models import Order, OrderHistory
from commerce.schemas.orders.order_schemas import (
    OrderCreate,
    OrderOut,
    OrderHistoryOut,
    OrderStatusChange,
)
from commerce.services.orders.order_status_service import OrderStatusService
from commerce.utils.logger import get_logger

logger = get_logger(__name__)


def generate_order_number() -> str:
    return uuid.uuid4().hex


async def _get_order_or_404(db: AsyncSession, order_id: int) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise AppException(404, "Order not found", ErrorCode.ORDER_NOT_FOUND)
    return order


# =========================
# CREATE
# =========================
async def create_order(
    db: AsyncSession,
    payload: OrderCreate,
    status_service: OrderStatusService,
) -> OrderOut:
    order = Order(
        number=payload.number or generate_order_number(),
        email=payload.email,
    )

    if payload.order_status_id:
        status = await status_service.get_order_status_by_id(payload.order_status_id)
        if not status:
            raise OrderStatusNotFound(payload.order_status_id)
    else:
        status = await status_service.get_default_order_status_for_order(order)
        if not status:
            raise AppException(
                422,
                "No default order status is configured",
                ErrorCode.ORDER_STATUS_DEFAULT_MISSING,
            )

    order.order_status_id = status.id
    db.add(order)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AppException(409, "Order number already exists", ErrorCode.ORDER_NUMBER_EXISTS)

    await db.refresh(order)

    logger.info(
        "Order created",
        extra={"order_id": order.id, "order_status_id": order.order_status_id},
    )
    return OrderOut.model_validate(order)


# =========================
# GET
# =========================
async def get_order(db: AsyncSession, order_id: int) -> OrderOut:
    return OrderOut.model_validate(await _get_order_or_404(db, order_id))


async def list_order_history(db: AsyncSession, order_id: int) -> list[OrderHistoryOut]:
    await _get_order_or_404(db, order_id)

    histories = await db.scalars(
        select(OrderHistory)
        .where(OrderHistory.order_id == order_id)
        .order_by(OrderHistory.id)
    )
    return [OrderHistoryOut.model_validate(h) for h in histories.all()]


# =========================
# STATUS CHANGE
# =========================
async def change_order_status(
    db: AsyncSession,
    order_id: int,
    payload: OrderStatusChange,
    status_service: OrderStatusService,
) -> OrderOut:
    order = await _get_order_or_404(db, order_id)

    status = await status_service.get_order_status_by_id(payload.order_status_id)
    if not status:
        raise OrderStatusNotFound(payload.order_status_id)

    if order.order_status_id == status.id:
        raise AppException(400, "No changes detected", ErrorCode.VALIDATION_ERROR)

    history = OrderHistory(
        order_id=order.id,
        prev_status_id=order.order_status_id,
        new_status_id=status.id,
        message=payload.message,
    )
    order.order_status_id = status.id
    db.add(history)

    await db.commit()
    await db.refresh(order)
    await db.refresh(history)

    logger.info(
        "Order status changed",
        extra={
            "order_id": order.id,
            "prev_status_id": history.prev_status_id,
            "new_status_id": history.new_status_id,
        },
    )

    await status_service.status_change_handler(
        OrderOut.model_validate(order),
        OrderHistoryOut.model_validate(history),
    )

    return OrderOut.model_validate(order)
