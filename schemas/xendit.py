# schemas/xendit.py
"""
Typed views of Xendit invoice payloads.

Only the fields the reconciler depends on are declared; everything else
Xendit sends is kept (extra="allow") so it can be stored in booking logs.
"""
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class InvoiceStatus(str, Enum):
     """Xendit invoice lifecycle."""
     PENDING = "PENDING"
     PAID = "PAID"
     SETTLED = "SETTLED"
     EXPIRED = "EXPIRED"

     @classmethod
     def has_value(cls, value) -> bool:
          return isinstance(value, str) and value in cls._value2member_map_


SETTLED_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.SETTLED})


class XenditInvoice(BaseModel):
     """Invoice as reported by GET /v2/invoices/{id}; the authoritative state."""
     id: str
     external_id: Optional[str] = None
     status: InvoiceStatus
     amount: Optional[Decimal] = None
     paid_amount: Optional[Decimal] = None
     payment_method: Optional[str] = None
     payment_channel: Optional[str] = None
     invoice_url: Optional[str] = None
     paid_at: Optional[str] = None

     model_config = ConfigDict(extra="allow")

     @property
     def is_settled(self) -> bool:
          return self.status in SETTLED_STATUSES

     @property
     def settled_amount(self) -> Decimal:
          """paid_amount, falling back to amount, falling back to zero."""
          if self.paid_amount is not None:
               return self.paid_amount
          if self.amount is not None:
               return self.amount
          return Decimal("0")


class XenditWebhookPayload(BaseModel):
     """
     Invoice callback body.

     Nothing here is trusted beyond `id` and `external_id`, which are used to
     look the invoice up again at Xendit.
     """
     id: str
     external_id: str
     status: Optional[InvoiceStatus] = None
     amount: Optional[Decimal] = None
     paid_amount: Optional[Decimal] = None
     payment_method: Optional[str] = None
     user_id: Optional[str] = None

     model_config = ConfigDict(
          extra="allow",
          json_schema_extra={
               "example": {
                    "id": "579c8d61f23fa4ca35e52da4",
                    "external_id": "0b6f7a8e-3b2c-4c1d-9e8f-7a6b5c4d3e2f",
                    "status": "PAID",
                    "amount": 150000,
                    "paid_amount": 150000,
                    "payment_method": "BANK_TRANSFER"
               }
          }
     )
