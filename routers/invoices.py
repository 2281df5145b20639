# routers/invoices.py
"""
Invoice proxy API.

POST /v1/create/invoice: create a Xendit invoice for a booking.
POST /v1/get/invoice: fetch Xendit's live view of an invoice.
POST /v1/test/provider: check a payment provider's stored credentials.

Responses use the {"success", "data"} envelope; failures are rendered by
the ServiceError handler in main.py.
"""
from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from database import get_session
from routers.common import envelope, preflight
from schemas.invoice import GetInvoiceRequest, InvoiceCreateRequest, ProviderTestRequest
from services.invoice_service import InvoiceService

router = APIRouter(prefix="/v1", tags=["invoices"])


@router.post("/create/invoice", summary="Create a Xendit invoice")
def create_invoice(body: InvoiceCreateRequest, db: Session = Depends(get_session)):
     """
     Create an invoice for a booking.

     - **performed_by**: ID of the user creating the invoice
     - **external_id**: booking ID
     - **amount**: positive amount in IDR
     - **currency** / **invoice_duration**: default to IDR / 86400 seconds
     """
     result = InvoiceService.create_invoice(db, body)
     return envelope({"success": True, "data": jsonable_encoder(result)})


@router.post("/get/invoice", summary="Get a Xendit invoice")
def get_invoice(body: GetInvoiceRequest, db: Session = Depends(get_session)):
     result = InvoiceService.get_invoice(db, body)
     return envelope({"success": True, "data": jsonable_encoder(result)})


@router.post("/test/provider", summary="Test payment provider credentials")
def test_provider(body: ProviderTestRequest, db: Session = Depends(get_session)):
     result = InvoiceService.test_provider(db, body.provider_id)
     return envelope({"success": True, "data": jsonable_encoder(result)})


@router.options("/create/invoice", include_in_schema=False)
@router.options("/get/invoice", include_in_schema=False)
@router.options("/test/provider", include_in_schema=False)
def invoices_preflight():
     return preflight()
