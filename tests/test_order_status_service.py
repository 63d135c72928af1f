import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from commerce.constants.error_codes import ErrorCode
from commerce.core.exceptions import OrderStatusNotFound
from commerce.models.orders.order_status_models import OrderStatus, OrderStatusEmail
from commerce.schemas.orders.order_status_schemas import OrderStatusDraft
from commerce.services.orders.order_status_service import OrderStatusService


async def _linked_email_ids(db, status_id):
    rows = await db.scalars(
        select(OrderStatusEmail.email_id)
        .where(OrderStatusEmail.order_status_id == status_id)
        .order_by(OrderStatusEmail.id)
    )
    return rows.all()


async def _default_handles(db):
    rows = await db.scalars(select(OrderStatus.handle).where(OrderStatus.default.is_(True)))
    return rows.all()


def _fail_execute_when(db, monkeypatch, matches):
    original = db.execute

    async def execute(statement, *args, **kwargs):
        if matches(statement):
            raise OperationalError(str(statement), {}, Exception("disk I/O error"))
        return await original(statement, *args, **kwargs)

    monkeypatch.setattr(db, "execute", execute)


# -------------------------
# READS
# -------------------------
async def test_get_all_is_sorted_and_cached(db, make_status, query_log):
    await make_status("shipped", sort_order=3)
    await make_status("new", sort_order=1)
    await make_status("processing", sort_order=2)

    service = OrderStatusService(db)
    first = await service.get_all_order_statuses()
    assert [s.handle for s in first] == ["new", "processing", "shipped"]

    query_log.clear()
    second = await service.get_all_order_statuses()

    assert query_log == []
    assert all(a is b for a, b in zip(first, second))


async def test_lookups_after_full_load_do_not_query(db, make_status, query_log):
    new = await make_status("new", sort_order=1)
    service = OrderStatusService(db)
    statuses = await service.get_all_order_statuses()

    query_log.clear()
    assert await service.get_order_status_by_id(new.id) is statuses[0]
    assert await service.get_order_status_by_handle("new") is statuses[0]
    assert await service.get_order_status_by_id(12345) is None
    assert await service.get_order_status_by_handle("missing") is None
    assert query_log == []


async def test_get_by_handle_memoizes_without_marking_all_fetched(db, make_status, query_log):
    await make_status("new", sort_order=1)
    await make_status("shipped", sort_order=2)
    service = OrderStatusService(db)

    status = await service.get_order_status_by_handle("new")
    assert status.handle == "new"

    query_log.clear()
    assert await service.get_order_status_by_handle("new") is status
    assert query_log == []

    assert await service.get_order_status_by_handle("unknown") is None
    assert len(query_log) > 0

    statuses = await service.get_all_order_statuses()
    assert [s.handle for s in statuses] == ["new", "shipped"]


async def test_get_by_id_loads_linked_emails(db, make_status, make_email):
    e1 = await make_email("Paid")
    e2 = await make_email("Shipped")
    status = await make_status("paid", emails=[e1, e2])

    found = await OrderStatusService(db).get_order_status_by_id(status.id)

    assert found.email_ids == [e1.id, e2.id]
    assert found.emails[0].name == "Paid"


async def test_get_default_returns_none_without_default(db, make_status):
    await make_status("new")
    service = OrderStatusService(db)

    assert await service.get_default_order_status() is None
    assert await service.get_default_order_status_id() is None


async def test_get_default_is_not_memoized(db, make_status):
    status = await make_status("new", default=True)
    service = OrderStatusService(db)

    first = await service.get_default_order_status()
    second = await service.get_default_order_status()

    assert first.id == status.id
    assert first is not second
    assert await service.get_default_order_status_id() == status.id


async def test_default_for_order_runs_resolvers_in_order(db, make_status):
    new = await make_status("new", default=True)
    wholesale = await make_status("wholesale")
    seen = []

    def service_resolver(event):
        seen.append(("service", event.order_status.handle))

    service = OrderStatusService(db, default_status_resolvers=[service_resolver])
    wholesale_status = await service.get_order_status_by_id(wholesale.id)

    def wholesale_resolver(event):
        seen.append(("call", event.order_status.handle))
        if event.order["wholesale"]:
            event.order_status = wholesale_status

    resolved = await service.get_default_order_status_for_order(
        {"wholesale": True}, resolvers=[wholesale_resolver]
    )
    assert resolved is wholesale_status
    assert seen == [("service", "new"), ("call", "new")]

    plain = await service.get_default_order_status_for_order({"wholesale": True})
    assert plain.id == new.id


# -------------------------
# SAVE
# -------------------------
async def test_save_creates_status_with_email_links(db, make_email):
    e1 = await make_email("One")
    e2 = await make_email("Two")
    model = OrderStatusDraft(name="New", handle="new", color="blue")

    assert await OrderStatusService(db).save_order_status(model, [e1.id, e2.id]) is True

    assert model.id is not None
    record = await db.get(OrderStatus, model.id)
    assert record.sort_order == 999
    assert record.color == "blue"
    assert await _linked_email_ids(db, model.id) == [e1.id, e2.id]


async def test_save_replaces_previous_email_links(db, make_status, make_email):
    e1 = await make_email("One")
    e2 = await make_email("Two")
    e3 = await make_email("Three")
    status = await make_status("new", emails=[e1, e2])
    service = OrderStatusService(db)

    model = OrderStatusDraft(id=status.id, name="New", handle="new", sort_order=5)
    assert await service.save_order_status(model, [e3.id, e2.id, e3.id]) is True

    assert await _linked_email_ids(db, status.id) == [e3.id, e2.id]
    saved = await service.get_order_status_by_id(status.id)
    assert saved.email_ids == [e3.id, e2.id]
    assert saved.sort_order == 5


async def test_save_default_leaves_exactly_one_default(db, make_status):
    await make_status("new", default=True)
    await make_status("processing", default=True)

    model = OrderStatusDraft(name="Pending", handle="pending", default=True)
    assert await OrderStatusService(db).save_order_status(model, []) is True

    assert await _default_handles(db) == ["pending"]


async def test_save_existing_as_default_clears_others(db, make_status):
    await make_status("new", default=True)
    shipped = await make_status("shipped")

    model = OrderStatusDraft(id=shipped.id, name="Shipped", handle="shipped", default=True)
    assert await OrderStatusService(db).save_order_status(model, []) is True

    assert await _default_handles(db) == ["shipped"]


async def test_save_unknown_id_raises_not_found(db, make_status):
    await make_status("new")
    model = OrderStatusDraft(id=4242, name="Ghost", handle="ghost")

    with pytest.raises(OrderStatusNotFound) as exc:
        await OrderStatusService(db).save_order_status(model, [])

    assert exc.value.status_code == 404
    assert exc.value.error_code == ErrorCode.ORDER_STATUS_NOT_FOUND
    assert await db.scalar(select(func.count()).select_from(OrderStatus)) == 1


async def test_save_with_missing_email_changes_nothing(db, make_status, make_email):
    e1 = await make_email("One")
    status = await make_status("new", name="New", emails=[e1])

    model = OrderStatusDraft(id=status.id, name="Renamed", handle="new")
    assert await OrderStatusService(db).save_order_status(model, [e1.id, 999]) is False

    assert model.errors["emails"] == ["One or more emails do not exist in the system."]
    assert await _linked_email_ids(db, status.id) == [e1.id]
    record = await db.scalar(select(OrderStatus.name).where(OrderStatus.id == status.id))
    assert record == "New"


async def test_save_collects_errors_per_field(db):
    model = OrderStatusDraft(name="  ", handle="1-bad", color="magenta")

    assert await OrderStatusService(db).save_order_status(model, []) is False

    assert set(model.errors) == {"name", "handle", "color"}
    assert await db.scalar(select(func.count()).select_from(OrderStatus)) == 0


async def test_save_rejects_taken_and_reserved_handles(db, make_status):
    await make_status("new")
    service = OrderStatusService(db)

    taken = OrderStatusDraft(name="Other new", handle="new")
    assert await service.save_order_status(taken, []) is False
    assert "already been taken" in taken.errors["handle"][0]

    reserved = OrderStatusDraft(name="Id", handle="id")
    assert await service.save_order_status(reserved, []) is False
    assert "reserved" in reserved.errors["handle"][0]


async def test_update_may_keep_its_own_handle(db, make_status):
    status = await make_status("new")

    model = OrderStatusDraft(id=status.id, name="Brand new", handle="new")
    assert await OrderStatusService(db).save_order_status(model, []) is True


async def test_save_drops_memoized_statuses(db, make_status):
    await make_status("new", sort_order=1)
    service = OrderStatusService(db)
    assert len(await service.get_all_order_statuses()) == 1

    await service.save_order_status(OrderStatusDraft(name="Done", handle="done", sort_order=2), [])

    assert [s.handle for s in await service.get_all_order_statuses()] == ["new", "done"]
    assert (await service.get_order_status_by_handle("done")).sort_order == 2


async def test_failed_link_insert_rolls_back_default_change(db, make_status, make_email, monkeypatch):
    email = await make_email()
    await make_status("new", default=True)
    _fail_execute_when(
        db,
        monkeypatch,
        lambda stmt: stmt.is_insert and stmt.table is OrderStatusEmail.__table__,
    )

    model = OrderStatusDraft(name="Pending", handle="pending", default=True)
    with pytest.raises(OperationalError):
        await OrderStatusService(db).save_order_status(model, [email.id])

    monkeypatch.undo()
    rows = (await db.execute(select(OrderStatus.handle, OrderStatus.default))).all()
    assert rows == [("new", True)]
    assert model.id is None


async def test_failed_commit_leaves_draft_id_unset(db, monkeypatch):
    async def commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", commit)

    model = OrderStatusDraft(name="Pending", handle="pending")
    with pytest.raises(OperationalError):
        await OrderStatusService(db).save_order_status(model, [])

    assert model.id is None
    monkeypatch.undo()
    assert await db.scalar(select(func.count()).select_from(OrderStatus)) == 0


# -------------------------
# DELETE
# -------------------------
async def test_delete_refuses_only_status(db, make_status):
    status = await make_status("new", default=True)
    service = OrderStatusService(db)

    assert await service.get_delete_blocker(status.id) == ErrorCode.ORDER_STATUS_LAST_REMAINING
    assert await service.delete_order_status_by_id(status.id) is False
    assert await db.get(OrderStatus, status.id) is not None


async def test_delete_refuses_status_in_use(db, make_status, make_order):
    new = await make_status("new")
    await make_status("shipped")
    await make_status("done")
    await make_order(new)
    service = OrderStatusService(db)

    assert await service.get_delete_blocker(new.id) == ErrorCode.ORDER_STATUS_IN_USE
    assert await service.delete_order_status_by_id(new.id) is False


async def test_delete_unknown_status_returns_false(db, make_status):
    await make_status("new")
    await make_status("shipped")
    service = OrderStatusService(db)

    assert await service.get_delete_blocker(999) == ErrorCode.ORDER_STATUS_NOT_FOUND
    assert await service.delete_order_status_by_id(999) is False


async def test_delete_removes_status_and_links(db, make_status, make_email):
    email = await make_email()
    await make_status("new")
    shipped = await make_status("shipped", emails=[email])
    service = OrderStatusService(db)
    await service.get_all_order_statuses()

    assert await service.get_delete_blocker(shipped.id) is None
    assert await service.delete_order_status_by_id(shipped.id) is True

    assert await db.scalar(select(OrderStatus.id).where(OrderStatus.id == shipped.id)) is None
    assert await _linked_email_ids(db, shipped.id) == []
    assert await service.get_order_status_by_id(shipped.id) is None
    assert [s.handle for s in await service.get_all_order_statuses()] == ["new"]


async def test_delete_reports_blocker_from_one_guard_run(db, make_status, make_order, monkeypatch):
    new = await make_status("new")
    await make_status("shipped")
    await make_order(new)
    service = OrderStatusService(db)

    calls = []
    guard = service.get_delete_blocker

    async def counting_guard(status_id):
        calls.append(status_id)
        return await guard(status_id)

    monkeypatch.setattr(service, "get_delete_blocker", counting_guard)

    assert await service.delete_order_status(new.id) == ErrorCode.ORDER_STATUS_IN_USE
    assert await service.delete_order_status(999) == ErrorCode.ORDER_STATUS_NOT_FOUND
    assert calls == [new.id, 999]


async def test_delete_of_row_removed_concurrently_is_conflict(db, make_status, monkeypatch):
    await make_status("new")
    await make_status("shipped")
    service = OrderStatusService(db)

    async def stale_guard(status_id):
        return None

    monkeypatch.setattr(service, "get_delete_blocker", stale_guard)

    assert await service.delete_order_status(999) == ErrorCode.CONFLICT
    assert await service.delete_order_status_by_id(999) is False
    assert await db.scalar(select(func.count()).select_from(OrderStatus)) == 2


# -------------------------
# REORDER
# -------------------------
async def test_reorder_assigns_positions(db, make_status):
    s1 = await make_status("one", sort_order=10)
    s2 = await make_status("two", sort_order=20)
    s3 = await make_status("three", sort_order=30)
    service = OrderStatusService(db)
    await service.get_all_order_statuses()

    assert await service.reorder_order_statuses([s3.id, s1.id, s2.id]) is True

    rows = (await db.execute(select(OrderStatus.id, OrderStatus.sort_order))).all()
    assert dict(rows) == {s3.id: 1, s1.id: 2, s2.id: 3}
    assert [s.handle for s in await service.get_all_order_statuses()] == ["three", "one", "two"]


async def test_reorder_failure_keeps_previous_positions(db, make_status, monkeypatch):
    a = await make_status("a", sort_order=10)
    b = await make_status("b", sort_order=20)
    updates = []

    def second_update(stmt):
        if not stmt.is_update:
            return False
        updates.append(stmt)
        return len(updates) == 2

    _fail_execute_when(db, monkeypatch, second_update)

    with pytest.raises(OperationalError):
        await OrderStatusService(db).reorder_order_statuses([b.id, a.id])

    monkeypatch.undo()
    rows = (await db.execute(select(OrderStatus.handle, OrderStatus.sort_order))).all()
    assert dict(rows) == {"a": 10, "b": 20}


# -------------------------
# STATUS CHANGE
# -------------------------
class RecordingEmailService:
    def __init__(self, result=True):
        self.calls = []
        self.result = result

    async def send_email(self, email, order, order_history, order_status=None):
        self.calls.append((email.id, order.id, order_status.id))
        return self.result


async def test_status_change_handler_sends_each_linked_email(db, make_status, make_email, make_order):
    e1 = await make_email("One")
    e2 = await make_email("Two")
    shipped = await make_status("shipped", emails=[e1, e2])
    order = await make_order(shipped)
    emails = RecordingEmailService()

    sent = await OrderStatusService(db, email_service=emails).status_change_handler(order, None)

    assert sent == 2
    assert emails.calls == [(e1.id, order.id, shipped.id), (e2.id, order.id, shipped.id)]


async def test_status_change_handler_ignores_orders_without_status(db):
    emails = RecordingEmailService()

    class NoStatusOrder:
        id = 1
        order_status_id = None

    assert await OrderStatusService(db, email_service=emails).status_change_handler(NoStatusOrder(), None) == 0
    assert emails.calls == []
