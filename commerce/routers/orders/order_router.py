from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from commerce.core.db import get_db
from commerce.core.dependencies import get_order_status_service
from commerce.schemas.orders.order_schemas import (
    OrderCreate,
    OrderOut,
    OrderHistoryOut,
    OrderStatusChange,
)
from commerce.services.orders.order_service import (
    create_order,
    get_order,
    list_order_history,
    change_order_status,
)
from commerce.services.orders.order_status_service import OrderStatusService
from commerce.utils.check_roles import require_role
from commerce.utils.response import APIResponse, success_response
from commerce.utils.logger import get_logger

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = get_logger(__name__)


@router.post("/", response_model=APIResponse[OrderOut], status_code=201)
async def create_order_api(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db),
    status_service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin", "staff"])),
):
    logger.info("Create order", extra={"order_status_id": payload.order_status_id})

    order = await create_order(db, payload, status_service)
    return success_response("Order created successfully", order)


@router.get("/{order_id}", response_model=APIResponse[OrderOut])
async def get_order_api(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "staff"])),
):
    order = await get_order(db, order_id)
    return success_response("Order fetched successfully", order)


@router.get("/{order_id}/history", response_model=APIResponse[list[OrderHistoryOut]])
async def list_order_history_api(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "staff"])),
):
    history = await list_order_history(db, order_id)
    return success_response("Order history fetched successfully", history)


@router.patch("/{order_id}/status", response_model=APIResponse[OrderOut])
async def change_order_status_api(
    order_id: int,
    payload: OrderStatusChange,
    db: AsyncSession = Depends(get_db),
    status_service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin", "staff"])),
):
    logger.info(
        "Change order status",
        extra={"order_id": order_id, "order_status_id": payload.order_status_id},
    )

    order = await change_order_status(db, order_id, payload, status_service)
    return success_response("Order status changed successfully", order)
