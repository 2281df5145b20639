# routers/__init__.py
from .invoices import router as invoices_router
from .webhooks import router as webhooks_router

__all__ = [
     "invoices_router",
     "webhooks_router",
]
