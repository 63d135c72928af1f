import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence

from sqlalchemy import select, update, delete, insert, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from commerce.constants.error_codes import ErrorCode
from commerce.core.exceptions import OrderStatusNotFound
from commerce.models.emails.email_models import Email
from commerce.models.enums.order_status_color import OrderStatusColor
from commerce.models.orders.order_models import Order
from commerce.models.orders.order_status_models import (
    DEFAULT_SORT_ORDER,
    OrderStatus,
    OrderStatusEmail,
)
from commerce.schemas.emails.email_schemas import EmailOut
from commerce.schemas.orders.order_status_schemas import OrderStatusDraft, OrderStatusOut
from commerce.services.emails.email_service import EmailService
from commerce.utils.logger import get_logger

logger = get_logger(__name__)

HANDLE_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")
RESERVED_HANDLES = frozenset(
    {
        "id",
        "uid",
        "title",
        "handle",
        "name",
        "default",
        "datecreated",
        "dateupdated",
        "sortorder",
    }
)
MAX_LENGTH = 255
MIN_STATUS_COUNT = 2


@dataclass
class DefaultOrderStatusEvent:
    """Passed through resolvers; any of them may replace ``order_status``."""

    order: Any
    order_status: Optional[OrderStatusOut]


DefaultOrderStatusResolver = Callable[[DefaultOrderStatusEvent], None]


# =========================
# MAPPER
# =========================
def _map_order_status(status: OrderStatus) -> OrderStatusOut:
    return OrderStatusOut(
        id=status.id,
        name=status.name,
        handle=status.handle,
        color=status.color,
        sort_order=status.sort_order,
        default=status.default,
        emails=[EmailOut.model_validate(link.email) for link in status.email_links],
    )


def _unique(ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(ids))


class OrderStatusService:
    """
    Order statuses for one session.

    Lookups by id and handle are memoized for the lifetime of the service.
    Once ``get_all_order_statuses`` has run, a miss is answered from memory
    without touching the database. Every successful write drops the memo.
    """

    def __init__(
        self,
        db: AsyncSession,
        email_service: Optional[EmailService] = None,
        default_status_resolvers: Sequence[DefaultOrderStatusResolver] = (),
    ):
        self.db = db
        self.email_service = email_service
        self.default_status_resolvers = list(default_status_resolvers)

        self._fetched_all_statuses = False
        self._order_statuses_by_id: dict[int, OrderStatusOut] = {}
        self._order_statuses_by_handle: dict[str, OrderStatusOut] = {}

    # =========================
    # READ
    # =========================
    async def get_order_status_by_handle(self, handle: str) -> Optional[OrderStatusOut]:
        if handle in self._order_statuses_by_handle:
            return self._order_statuses_by_handle[handle]

        if self._fetched_all_statuses:
            return None

        status = await self.db.scalar(
            self._create_order_statuses_query().where(OrderStatus.handle == handle)
        )
        if not status:
            return None

        return self._memoize_order_status(_map_order_status(status))

    async def get_order_status_by_id(self, status_id: int) -> Optional[OrderStatusOut]:
        if status_id in self._order_statuses_by_id:
            return self._order_statuses_by_id[status_id]

        if self._fetched_all_statuses:
            return None

        status = await self.db.scalar(
            self._create_order_statuses_query().where(OrderStatus.id == status_id)
        )
        if not status:
            return None

        return self._memoize_order_status(_map_order_status(status))

    async def get_all_order_statuses(self) -> list[OrderStatusOut]:
        if not self._fetched_all_statuses:
            statuses = (await self.db.scalars(self._create_order_statuses_query())).all()

            # rebuilt so iteration follows sort_order
            self._order_statuses_by_id = {}
            self._order_statuses_by_handle = {}
            for status in statuses:
                self._memoize_order_status(_map_order_status(status))

            self._fetched_all_statuses = True

        return list(self._order_statuses_by_id.values())

    async def get_default_order_status(self) -> Optional[OrderStatusOut]:
        status = await self.db.scalar(
            self._create_order_statuses_query()
            .where(OrderStatus.default.is_(True))
            .limit(1)
        )
        if not status:
            return None

        return _map_order_status(status)

    async def get_default_order_status_id(self) -> Optional[int]:
        default_status = await self.get_default_order_status()
        return default_status.id if default_status else None

    async def get_default_order_status_for_order(
        self,
        order,
        resolvers: Sequence[DefaultOrderStatusResolver] = (),
    ) -> Optional[OrderStatusOut]:
        """Default status for ``order`` after every resolver had its say."""
        event = DefaultOrderStatusEvent(
            order=order,
            order_status=await self.get_default_order_status(),
        )

        for resolver in [*self.default_status_resolvers, *resolvers]:
            resolver(event)

        return event.order_status

    # =========================
    # SAVE
    # =========================
    async def save_order_status(self, model: OrderStatusDraft, email_ids: Sequence[int]) -> bool:
        """
        Create or update the status described by ``model`` and replace its
        email links with ``email_ids``.

        Returns False with the problems recorded on ``model.errors`` when
        validation fails. Raises ``OrderStatusNotFound`` when ``model.id``
        points at nothing.
        """
        if model.id:
            record = await self.db.get(OrderStatus, model.id)
            if not record:
                raise OrderStatusNotFound(model.id)
        else:
            record = None

        email_ids = _unique(email_ids)

        await self._validate_order_status(model)
        await self._validate_email_ids(model, email_ids)

        if model.has_errors():
            logger.info(
                "Order status failed validation",
                extra={"order_status_id": model.id, "errors": model.errors},
            )
            return False

        try:
            # only one default status
            if model.default:
                await self.db.execute(update(OrderStatus).values(default=False))

            if record is None:
                record = OrderStatus()
                self.db.add(record)

            record.name = model.name
            record.handle = model.handle
            record.color = model.color
            record.sort_order = model.sort_order or DEFAULT_SORT_ORDER
            record.default = model.default

            await self.db.flush()

            await self.db.execute(
                delete(OrderStatusEmail).where(OrderStatusEmail.order_status_id == record.id)
            )
            if email_ids:
                await self.db.execute(
                    insert(OrderStatusEmail),
                    [
                        {"email_id": email_id, "order_status_id": record.id}
                        for email_id in email_ids
                    ],
                )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Order status save failed", extra={"order_status_id": model.id})
            raise

        model.id = record.id
        self._invalidate()

        logger.info(
            "Order status saved",
            extra={"order_status_id": model.id, "handle": model.handle, "email_ids": email_ids},
        )
        return True

    async def _validate_order_status(self, model: OrderStatusDraft) -> None:
        name = (model.name or "").strip()
        if not name:
            model.add_error("name", "Name cannot be blank.")
        elif len(name) > MAX_LENGTH:
            model.add_error("name", f"Name should contain at most {MAX_LENGTH} characters.")

        handle = model.handle or ""
        if not handle:
            model.add_error("handle", "Handle cannot be blank.")
        elif len(handle) > MAX_LENGTH:
            model.add_error("handle", f"Handle should contain at most {MAX_LENGTH} characters.")
        elif not HANDLE_PATTERN.match(handle):
            model.add_error("handle", "Handle is not a valid handle.")
        elif handle.lower() in RESERVED_HANDLES:
            model.add_error("handle", f"“{handle}” is a reserved word.")
        else:
            taken = select(OrderStatus.id).where(OrderStatus.handle == handle)
            if model.id:
                taken = taken.where(OrderStatus.id != model.id)
            if await self.db.scalar(taken.limit(1)):
                model.add_error("handle", f"Handle “{handle}” has already been taken.")

        if model.color not in {c.value for c in OrderStatusColor}:
            model.add_error("color", "Color is invalid.")

    async def _validate_email_ids(self, model: OrderStatusDraft, email_ids: list[int]) -> None:
        if not email_ids:
            return

        existing = await self.db.scalars(select(Email.id).where(Email.id.in_(email_ids)))
        if set(email_ids) - set(existing.all()):
            model.add_error("emails", "One or more emails do not exist in the system.")

    # =========================
    # DELETE
    # =========================
    async def get_delete_blocker(self, status_id: int) -> Optional[ErrorCode]:
        """Why ``status_id`` cannot be deleted, or None when it can."""
        exists = await self.db.scalar(
            select(OrderStatus.id).where(OrderStatus.id == status_id)
        )
        if not exists:
            return ErrorCode.ORDER_STATUS_NOT_FOUND

        in_use = await self.db.scalar(
            select(Order.id).where(Order.order_status_id == status_id).limit(1)
        )
        if in_use:
            return ErrorCode.ORDER_STATUS_IN_USE

        total = await self.db.scalar(select(func.count()).select_from(OrderStatus))
        if total < MIN_STATUS_COUNT:
            return ErrorCode.ORDER_STATUS_LAST_REMAINING

        return None

    async def delete_order_status(self, status_id: int) -> Optional[ErrorCode]:
        """
        Delete ``status_id`` unless something blocks it.

        Returns None once the row is gone, otherwise the reason it was kept.
        ``CONFLICT`` means the guard passed but another writer removed the
        row first.
        """
        blocker = await self.get_delete_blocker(status_id)
        if blocker:
            logger.info(
                "Order status not deleted",
                extra={"order_status_id": status_id, "reason": blocker.value},
            )
            return blocker

        try:
            await self.db.execute(
                delete(OrderStatusEmail).where(OrderStatusEmail.order_status_id == status_id)
            )
            result = await self.db.execute(
                delete(OrderStatus).where(OrderStatus.id == status_id)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Order status delete failed", extra={"order_status_id": status_id})
            raise

        self._invalidate()

        if not result.rowcount:
            logger.info("Order status already gone", extra={"order_status_id": status_id})
            return ErrorCode.CONFLICT

        logger.info("Order status deleted", extra={"order_status_id": status_id})
        return None

    async def delete_order_status_by_id(self, status_id: int) -> bool:
        return await self.delete_order_status(status_id) is None

    # =========================
    # REORDER
    # =========================
    async def reorder_order_statuses(self, ids: Sequence[int]) -> bool:
        try:
            for position, status_id in enumerate(ids):
                await self.db.execute(
                    update(OrderStatus)
                    .where(OrderStatus.id == status_id)
                    .values(sort_order=position + 1)
                )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Order status reorder failed", extra={"ids": list(ids)})
            raise

        self._invalidate()
        return True

    # =========================
    # STATUS CHANGE
    # =========================
    async def status_change_handler(self, order, order_history) -> int:
        """Send the emails attached to the order's new status. Returns how many went out."""
        if not order.order_status_id:
            return 0

        status = await self.get_order_status_by_id(order.order_status_id)
        if not status or not status.emails:
            return 0

        if self.email_service is None:
            logger.warning(
                "No email service, status emails not sent",
                extra={"order_id": order.id, "order_status_id": status.id},
            )
            return 0

        sent = 0
        for email in status.emails:
            if await self.email_service.send_email(email, order, order_history, status):
                sent += 1

        return sent

    # =========================
    # INTERNALS
    # =========================
    def _memoize_order_status(self, status: OrderStatusOut) -> OrderStatusOut:
        self._order_statuses_by_id[status.id] = status
        self._order_statuses_by_handle[status.handle] = status
        return status

    def _invalidate(self) -> None:
        self._fetched_all_statuses = False
        self._order_statuses_by_id = {}
        self._order_statuses_by_handle = {}

    @staticmethod
    def _create_order_statuses_query():
        return (
            select(OrderStatus)
            .options(
                selectinload(OrderStatus.email_links).selectinload(OrderStatusEmail.email)
            )
            .order_by(OrderStatus.sort_order, OrderStatus.id)
            .execution_options(populate_existing=True)
        )
