# schemas/__init__.py
from .actor import AuthenticatedActor
from .invoice import (
     CustomerDetails,
     InvoiceCreateRequest,
     GetInvoiceRequest,
     ProviderTestRequest,
)
from .xendit import InvoiceStatus, XenditInvoice, XenditWebhookPayload

__all__ = [
     "AuthenticatedActor",
     "CustomerDetails",
     "InvoiceCreateRequest",
     "GetInvoiceRequest",
     "ProviderTestRequest",
     "InvoiceStatus",
     "XenditInvoice",
     "XenditWebhookPayload",
]
