# services/__init__.py
from .exceptions import (
     ServiceError,
     BadRequestError,
     InvalidArgumentError,
     NotFoundError,
     GatewayError,
     InternalServiceError,
)
from .xendit_client import XenditClient
from .invoice_service import InvoiceService
from .webhook_service import (
     decide_settlement_status,
     process_xendit_webhook,
     settle_booking,
     expire_booking,
)

__all__ = [
     "ServiceError",
     "BadRequestError",
     "InvalidArgumentError",
     "NotFoundError",
     "GatewayError",
     "InternalServiceError",
     "XenditClient",
     "InvoiceService",
     "decide_settlement_status",
     "process_xendit_webhook",
     "settle_booking",
     "expire_booking",
]
