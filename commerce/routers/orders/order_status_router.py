from fastapi import APIRouter, Depends

from commerce.constants.error_codes import ErrorCode
from commerce.core.dependencies import get_order_status_service
from commerce.core.exceptions import AppException, OrderStatusNotFound
from commerce.schemas.orders.order_status_schemas import (
    OrderStatusCreate,
    OrderStatusUpdate,
    OrderStatusOut,
    OrderStatusReorder,
)
from commerce.services.orders.order_status_service import OrderStatusService
from commerce.utils.check_roles import require_role
from commerce.utils.response import APIResponse, success_response
from commerce.utils.logger import get_logger

router = APIRouter(prefix="/order-statuses", tags=["Order Statuses"])
logger = get_logger(__name__)

DELETE_BLOCKERS = {
    ErrorCode.ORDER_STATUS_NOT_FOUND: (404, "Order status not found"),
    ErrorCode.ORDER_STATUS_IN_USE: (409, "Order status is used by existing orders"),
    ErrorCode.ORDER_STATUS_LAST_REMAINING: (409, "At least two order statuses must exist to delete one"),
    ErrorCode.CONFLICT: (409, "Order status was deleted by another request"),
}


async def _save(
    service: OrderStatusService,
    payload: OrderStatusCreate,
    status_id: int | None = None,
) -> OrderStatusOut:
    model = payload.to_draft(status_id)

    if not await service.save_order_status(model, payload.email_ids):
        raise AppException(
            422,
            "Couldn’t save order status",
            ErrorCode.VALIDATION_ERROR,
            model.errors,
        )

    return await service.get_order_status_by_id(model.id)


@router.get("/", response_model=APIResponse[list[OrderStatusOut]])
async def list_order_statuses_api(
    service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin", "staff"])),
):
    statuses = await service.get_all_order_statuses()
    return success_response("Order statuses fetched successfully", statuses)


@router.get("/default", response_model=APIResponse[OrderStatusOut])
async def get_default_order_status_api(
    service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin", "staff"])),
):
    status = await service.get_default_order_status()
    if not status:
        raise AppException(
            404,
            "No default order status is configured",
            ErrorCode.ORDER_STATUS_DEFAULT_MISSING,
        )
    return success_response("Default order status fetched successfully", status)


@router.get("/handle/{handle}", response_model=APIResponse[OrderStatusOut])
async def get_order_status_by_handle_api(
    handle: str,
    service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin", "staff"])),
):
    status = await service.get_order_status_by_handle(handle)
    if not status:
        raise AppException(404, "Order status not found", ErrorCode.ORDER_STATUS_NOT_FOUND)
    return success_response("Order status fetched successfully", status)


@router.get("/{status_id}", response_model=APIResponse[OrderStatusOut])
async def get_order_status_api(
    status_id: int,
    service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin", "staff"])),
):
    status = await service.get_order_status_by_id(status_id)
    if not status:
        raise OrderStatusNotFound(status_id)
    return success_response("Order status fetched successfully", status)


@router.post("/", response_model=APIResponse[OrderStatusOut], status_code=201)
async def create_order_status_api(
    payload: OrderStatusCreate,
    service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin"])),
):
    logger.info(
        "Create order status",
        extra={"handle": payload.handle, "actor": user.username},
    )

    status = await _save(service, payload)
    return success_response("Order status created successfully", status)


@router.put("/{status_id}", response_model=APIResponse[OrderStatusOut])
async def update_order_status_api(
    status_id: int,
    payload: OrderStatusUpdate,
    service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin"])),
):
    logger.info(
        "Update order status",
        extra={"order_status_id": status_id, "actor": user.username},
    )

    status = await _save(service, payload, status_id)
    return success_response("Order status updated successfully", status)


@router.delete("/{status_id}", response_model=APIResponse[None])
async def delete_order_status_api(
    status_id: int,
    service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin"])),
):
    logger.info(
        "Delete order status",
        extra={"order_status_id": status_id, "actor": user.username},
    )

    blocker = await service.delete_order_status(status_id)
    if blocker:
        status_code, message = DELETE_BLOCKERS[blocker]
        raise AppException(status_code, message, blocker)

    return success_response("Order status deleted successfully")


@router.post("/reorder", response_model=APIResponse[list[OrderStatusOut]])
async def reorder_order_statuses_api(
    payload: OrderStatusReorder,
    service: OrderStatusService = Depends(get_order_status_service),
    user=Depends(require_role(["admin"])),
):
    logger.info(
        "Reorder order statuses",
        extra={"ids": payload.ids, "actor": user.username},
    )

    await service.reorder_order_statuses(payload.ids)
    statuses = await service.get_all_order_statuses()
    return success_response("Order statuses reordered successfully", statuses)
