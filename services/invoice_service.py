# services/invoice_service.py
"""
Invoice Service - Business logic layer for Xendit invoice operations.

Validates requests against stored users and payment providers, applies
invoice defaults and delegates to the Xendit client. Secrets never leave
this layer.
"""
from typing import Callable, Optional

from sqlalchemy.orm import Session

import config
from models import Booking, PaymentProvider, User
from schemas.actor import AuthenticatedActor
from schemas.invoice import GetInvoiceRequest, InvoiceCreateRequest
from services.exceptions import BadRequestError, NotFoundError
from services.payment_provider_service import (
     build_client,
     ensure_secret_key,
     get_provider_by_id,
     provider_public_profile,
     require_active_provider,
)
from services.xendit_client import XenditClient, is_positive_number
from utils.logging_config import get_logger

logger = get_logger("payment")

ClientFactory = Callable[[PaymentProvider], XenditClient]


class InvoiceService:
     """Service class for Xendit invoice business logic."""

     @staticmethod
     def resolve_actor(db: Session, performed_by: Optional[str]) -> AuthenticatedActor:
          """
          Turn a `performed_by` id into an AuthenticatedActor.

          Raises:
               BadRequestError: MISSING_PERFORMED_BY
               NotFoundError: USER_NOT_FOUND (403)
          """
          if not performed_by:
               raise BadRequestError(
                    "Parameter performed_by is required",
                    error_code="MISSING_PERFORMED_BY",
               )

          user = db.query(User).filter(User.id == performed_by).first()
          if not user:
               logger.warning(f"Unknown performed_by user | {performed_by}")
               raise NotFoundError(
                    "User not found or invalid",
                    error_code="USER_NOT_FOUND",
                    status_code=403,
               )
          return AuthenticatedActor.from_user(user)

     @staticmethod
     def _result(invoice: dict, actor: AuthenticatedActor, provider: PaymentProvider) -> dict:
          return {
               "invoice": invoice,
               "performed_by": actor.public_profile(),
               "provider": provider_public_profile(provider),
          }

     @staticmethod
     def create_invoice(
          db: Session,
          request: InvoiceCreateRequest,
          client_factory: ClientFactory = build_client,
     ) -> dict:
          """
          Create a Xendit invoice for a booking.

          Checks run in a fixed order: performed_by, user, active provider and
          its secret, required fields, amount. Request fields are merged over
          the defaults (currency IDR, 24 hour validity).

          Returns:
               {"invoice": ..., "performed_by": ..., "provider": ...}
          """
          logger.info(f"Creating invoice | external_id={request.external_id} performed_by={request.performed_by}")

          actor = InvoiceService.resolve_actor(db, request.performed_by)
          provider = require_active_provider(db)

          if not request.external_id or request.amount is None:
               raise BadRequestError(
                    "Parameters external_id and amount are required",
                    error_code="MISSING_REQUIRED_FIELDS",
               )
          if not is_positive_number(request.amount):
               raise BadRequestError(
                    "Amount must be a positive number",
                    error_code="INVALID_AMOUNT",
               )

          invoice_data = {
               "currency": config.DEFAULT_INVOICE_CURRENCY,
               "invoice_duration": config.DEFAULT_INVOICE_DURATION_SECONDS,
               **request.invoice_fields(),
          }

          invoice = client_factory(provider).create_invoice(invoice_data)

          # Keep the checkout link on the booking so it can be shown again
          invoice_url = invoice.get("invoice_url")
          if invoice_url:
               booking = db.query(Booking).filter(Booking.id == request.external_id).first()
               if booking:
                    booking.payment_link = invoice_url
                    db.commit()

          logger.info(f"Invoice created | id={invoice.get('id')} external_id={request.external_id}")
          return InvoiceService._result(invoice, actor, provider)

     @staticmethod
     def get_invoice(
          db: Session,
          request: GetInvoiceRequest,
          client_factory: ClientFactory = build_client,
     ) -> dict:
          """
          Fetch the live Xendit view of an invoice.

          Looks up by external_id (the booking id) when given, otherwise by
          Xendit invoice id.
          """
          logger.info(
               f"Getting invoice | external_id={request.external_id} invoice_id={request.invoice_id}"
          )

          if not request.performed_by:
               raise BadRequestError(
                    "Parameter performed_by is required",
                    error_code="MISSING_PERFORMED_BY",
               )
          if not request.invoice_id and not request.external_id:
               raise BadRequestError(
                    "Parameter invoice_id or external_id is required",
                    error_code="MISSING_INVOICE_IDENTIFIER",
               )

          actor = InvoiceService.resolve_actor(db, request.performed_by)
          provider = require_active_provider(db)
          client = client_factory(provider)

          if request.external_id:
               invoice = client.get_invoice(external_id=request.external_id)
          else:
               invoice = client.get_invoice(invoice_id=request.invoice_id)

          return InvoiceService._result(invoice, actor, provider)

     @staticmethod
     def test_provider(
          db: Session,
          provider_id: Optional[str],
          client_factory: ClientFactory = build_client,
     ) -> dict:
          """Verify the stored credentials of one provider against Xendit."""
          if not provider_id:
               raise BadRequestError("Provider ID is required", error_code="MISSING_PROVIDER_ID")

          provider = ensure_secret_key(get_provider_by_id(db, provider_id))
          test = client_factory(provider).test_connection()
          logger.info(f"Provider connection test passed | {provider.name}")
          return {
               "provider": provider_public_profile(provider, include_api_url=True),
               "test": test,
          }
