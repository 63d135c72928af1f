import os

# Settings are read at import time
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DB_TYPE", "sqlite")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_commerce.db")
os.environ.setdefault("JWT_ACCESS_SECRET_KEY", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from commerce.core.db import Base, get_db, enable_sqlite_foreign_keys
from commerce.core.mailer import get_mailer
from commerce.core.security import create_access_token
from commerce.models.emails.email_models import Email
from commerce.models.orders.order_models import Order
from commerce.models.orders.order_status_models import OrderStatus, OrderStatusEmail


class DummyMailer:
    from_addr = "shop@example.com"

    def __init__(self):
        self.sent = []

    async def send(self, message):
        self.sent.append(message)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def query_log(engine):
    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", record)
    yield statements
    event.remove(engine.sync_engine, "before_cursor_execute", record)


@pytest.fixture
def mailer():
    return DummyMailer()


@pytest.fixture
async def client(session_factory, mailer):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token('admin@example.com', 'admin')}"}


@pytest.fixture
def staff_headers():
    return {"Authorization": f"Bearer {create_access_token('staff@example.com', 'staff')}"}


# -------------------------
# DATA FACTORIES
# -------------------------
@pytest.fixture
def make_status(db):
    async def _make(handle, *, sort_order=999, default=False, name=None, color="green", emails=()):
        status = OrderStatus(
            name=name or handle.title(),
            handle=handle,
            color=color,
            sort_order=sort_order,
            default=default,
        )
        db.add(status)
        await db.flush()
        for email in emails:
            db.add(OrderStatusEmail(email_id=email.id, order_status_id=status.id))
        await db.commit()
        return status

    return _make


@pytest.fixture
def make_email(db):
    async def _make(name="Status changed", **fields):
        values = {
            "subject": "Order {{ order.number }} update",
            "recipient_type": "customer",
            "template_path": "order_status_changed.html",
            "enabled": True,
        }
        values.update(fields)
        email = Email(name=name, **values)
        db.add(email)
        await db.commit()
        await db.refresh(email)
        return email

    return _make


@pytest.fixture
def make_order(db):
    async def _make(status, *, number=None, email="customer@example.com"):
        order = Order(
            number=number or f"order-{status.id}",
            email=email,
            order_status_id=status.id,
        )
        db.add(order)
        await db.commit()
        await db.refresh(order)
        return order

    return _make
