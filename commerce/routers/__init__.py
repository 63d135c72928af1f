# commerce/routers/__init__.py

from .orders.order_status_router import router as order_status_router
from .orders.order_router import router as order_router
from .emails.email_router import router as email_router


__all__ = [
"order_status_router",
"order_router",
"email_router",
]
