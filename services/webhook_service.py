# services/webhook_service.py
"""
Xendit invoice callback reconciliation.

A callback is only a hint that something changed. The invoice is fetched
again from Xendit and the booking is moved according to that live status:

     PAID / SETTLED  -> settle (booking becomes `installment` or `paid`)
     EXPIRED         -> expire (booking becomes `expired`)
     anything else   -> not actionable

Each transition is one database transaction, executed while holding the
booking's lock, and is a no-op when the same payment was already applied.
"""
from decimal import Decimal
from typing import Callable, Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Booking, BookingLog, Installment, PaymentProvider, Transaction
from models.booking import BookingStatus
from models.transaction import PaymentType, TransactionStatus
from schemas.actor import AuthenticatedActor
from schemas.xendit import InvoiceStatus, XenditInvoice, XenditWebhookPayload
from services.booking_lock import booking_locks
from services.exceptions import (
     BadRequestError,
     GatewayError,
     InternalServiceError,
     NotFoundError,
)
from services.payment_provider_service import build_client, get_active_provider
from services.xendit_client import XenditClient
from utils.logging_config import get_logger

logger = get_logger("webhook")

DEFAULT_PAYMENT_METHOD = "Xendit"

# Booking log action types
PAYMENT_RECEIVED = "payment_received"
PAYMENT_EXPIRED = "payment_expired"
PAYMENT_IGNORED = "payment_ignored"
WEBHOOK_RECEIVED = "webhook_received"


def decide_settlement_status(
     total_paid_before: Decimal,
     paid_amount: Decimal,
     invoice_amount: Decimal,
     has_installments: bool,
) -> BookingStatus:
     """
     Booking status after a confirmed payment.

     - Earlier installments exist: `installment` while their sum plus this
       payment is still below the booking total, else `paid`.
     - No installments yet and this payment is short: first installment.
     - Otherwise: `paid`.
     """
     if has_installments:
          total_combined = total_paid_before + paid_amount
          if total_combined < invoice_amount:
               return BookingStatus.INSTALLMENT
          return BookingStatus.PAID
     if paid_amount < invoice_amount:
          return BookingStatus.INSTALLMENT
     return BookingStatus.PAID


def _to_decimal(value) -> Decimal:
     if value is None:
          return Decimal("0")
     if isinstance(value, Decimal):
          return value
     return Decimal(str(value))


def _log_entry(
     booking: Booking,
     actor: AuthenticatedActor,
     action_type: str,
     payload: dict,
     note: str,
     old_status: Optional[BookingStatus] = None,
) -> BookingLog:
     return BookingLog(
          booking_id=booking.id,
          action_type=action_type,
          performed_by=actor.id,
          old_data={"status": old_status.value} if old_status is not None else None,
          new_data=payload,
          note=note,
     )


def _commit(db: Session, booking: Booking, action: str) -> None:
     try:
          db.commit()
     except SQLAlchemyError as e:
          db.rollback()
          logger.error(f"{action} failed for booking {booking.id}, rolled back | {e}")
          raise InternalServiceError(
               f"Failed to record {action} for booking",
               error_code="DATABASE_ERROR",
          )


def _outcome(message: str, invoice: XenditInvoice, booking: Booking, applied: bool) -> dict:
     return {
          "message": message,
          "verifiedStatus": invoice.status.value,
          "booking_status": booking.status.value,
          "applied": applied,
     }


def settle_booking(
     db: Session,
     booking: Booking,
     invoice: XenditInvoice,
     invoice_payload: dict,
     actor: AuthenticatedActor,
     provider: Optional[PaymentProvider] = None,
) -> dict:
     """
     Apply a confirmed payment to a booking.

     Writes an installment (partial payments only), the booking status, a
     transaction and a `payment_received` log in a single commit.
     """
     if booking.status == BookingStatus.PAID:
          logger.info(f"Booking {booking.id} already paid, invoice {invoice.id} ignored")
          return _outcome("Booking already paid", invoice, booking, applied=False)

     already_recorded = (
          db.query(Transaction.id).filter(Transaction.reference_id == invoice.id).first()
     )
     if already_recorded:
          logger.info(f"Invoice {invoice.id} already recorded for booking {booking.id}")
          return _outcome("Payment already recorded", invoice, booking, applied=False)

     if booking.is_terminal:
          logger.warning(
               f"Payment {invoice.id} received for booking {booking.id} in status {booking.status.value}"
          )
          db.add(_log_entry(
               booking,
               actor,
               PAYMENT_IGNORED,
               invoice_payload,
               f"Xendit payment {invoice.id} received while booking is {booking.status.value}; status unchanged",
          ))
          _commit(db, booking, "ignored payment log")
          return _outcome(
               f"Booking is {booking.status.value}, payment not applied",
               invoice,
               booking,
               applied=False,
          )

     paid_amount = invoice.settled_amount
     invoice_amount = _to_decimal(booking.total_amount)

     installment_count, total_paid_before = (
          db.query(func.count(Installment.id), func.coalesce(func.sum(Installment.amount), 0))
          .filter(Installment.booking_id == booking.id)
          .one()
     )
     total_paid_before = _to_decimal(total_paid_before)
     has_installments = installment_count > 0

     new_status = decide_settlement_status(total_paid_before, paid_amount, invoice_amount, has_installments)
     old_status = booking.status
     payment_method = invoice.payment_method or DEFAULT_PAYMENT_METHOD

     logger.info(
          f"Settling booking {booking.id} | total={invoice_amount} paid_before={total_paid_before} "
          f"payment={paid_amount} -> {new_status.value}"
     )

     if new_status == BookingStatus.INSTALLMENT:
          db.add(Installment(
               booking_id=booking.id,
               installment_number=installment_count + 1,
               amount=paid_amount,
               payment_method=payment_method,
               reference_id=invoice.id,
               note=f"Online installment via {payment_method} - Xendit Invoice ID: {invoice.id}",
               performed_by=actor.id,
          ))

     booking.mark_status(new_status)

     db.add(Transaction(
          booking_id=booking.id,
          amount=paid_amount,
          type="online",
          payment_type=(
               PaymentType.INSTALLMENT if new_status == BookingStatus.INSTALLMENT else PaymentType.ONLINE
          ),
          status=TransactionStatus.PAID,
          description=f"Online payment via {payment_method} - Invoice ID: {invoice.id}",
          reference_id=invoice.id,
          performed_by=actor.id,
          payment_provider_id=provider.id if provider is not None else None,
     ))

     db.add(_log_entry(
          booking,
          actor,
          PAYMENT_RECEIVED,
          invoice_payload,
          f"Payment received via Xendit - Status: {invoice.status.value}, Amount: {paid_amount}, "
          f"Booking status: {new_status.value}",
          old_status=old_status,
     ))

     _commit(db, booking, "payment")
     return _outcome(f"Payment applied, booking is {new_status.value}", invoice, booking, applied=True)


def expire_booking(
     db: Session,
     booking: Booking,
     invoice: XenditInvoice,
     invoice_payload: dict,
     actor: AuthenticatedActor,
) -> dict:
     """Mark a pending booking expired and log it. Other statuses are left alone."""
     if booking.status != BookingStatus.PENDING:
          logger.info(f"Expiry of invoice {invoice.id} ignored, booking {booking.id} is {booking.status.value}")
          db.add(_log_entry(
               booking,
               actor,
               WEBHOOK_RECEIVED,
               invoice_payload,
               f"Xendit invoice {invoice.id} expired while booking is {booking.status.value}; status unchanged",
          ))
          _commit(db, booking, "webhook log")
          return _outcome(
               f"Booking is {booking.status.value}, expiry not applied",
               invoice,
               booking,
               applied=False,
          )

     old_status = booking.status
     booking.mark_status(BookingStatus.EXPIRED)
     db.add(_log_entry(
          booking,
          actor,
          PAYMENT_EXPIRED,
          invoice_payload,
          f"Invoice expired - Xendit Invoice ID: {invoice.id}",
          old_status=old_status,
     ))
     _commit(db, booking, "expiry")
     return _outcome("Booking marked as expired", invoice, booking, applied=True)


def record_non_actionable(
     db: Session,
     booking: Booking,
     invoice: XenditInvoice,
     invoice_payload: dict,
     actor: AuthenticatedActor,
) -> dict:
     db.add(_log_entry(
          booking,
          actor,
          WEBHOOK_RECEIVED,
          invoice_payload,
          f"Xendit webhook received with status: {invoice.status.value}",
     ))
     _commit(db, booking, "webhook log")
     return _outcome(
          f"Invoice status {invoice.status.value} is not actionable",
          invoice,
          booking,
          applied=False,
     )


def parse_webhook_payload(payload) -> XenditWebhookPayload:
     """
     Validate the callback body before anything is looked up.

     Raises:
          BadRequestError: MISSING_FIELDS, INVALID_STATUS or INVALID_PAYLOAD
     """
     if not isinstance(payload, dict):
          raise BadRequestError("Webhook payload must be a JSON object", error_code="INVALID_PAYLOAD")
     if not payload.get("external_id") or not payload.get("id"):
          raise BadRequestError(
               "Missing required fields: id and external_id",
               error_code="MISSING_FIELDS",
          )
     status = payload.get("status")
     if status is not None and not InvoiceStatus.has_value(status):
          raise BadRequestError(f"Unknown invoice status: {status}", error_code="INVALID_STATUS")
     try:
          return XenditWebhookPayload.model_validate(payload)
     except ValidationError as e:
          raise BadRequestError(
               f"Invalid webhook payload: {e.errors()[0]['msg']}",
               error_code="INVALID_PAYLOAD",
          )


def verify_invoice(client: XenditClient, notification: XenditWebhookPayload) -> tuple:
     """
     Fetch the invoice named by the callback and return (invoice, raw payload).

     Raises:
          InternalServiceError: INVOICE_VERIFICATION_FAILED or INVALID_INVOICE_RESPONSE
          BadRequestError: EXTERNAL_ID_MISMATCH
     """
     try:
          invoice_payload = client.get_invoice(invoice_id=notification.id)
     except GatewayError as e:
          logger.error(f"Verification of invoice {notification.id} failed | {e.kind} | {e.message}")
          raise InternalServiceError(
               f"Failed to verify invoice with Xendit: {e.message}",
               error_code="INVOICE_VERIFICATION_FAILED",
          )

     try:
          invoice = XenditInvoice.model_validate(invoice_payload)
     except ValidationError as e:
          logger.error(f"Xendit returned an unusable invoice {notification.id} | {e}")
          raise InternalServiceError(
               "Xendit returned an invoice with an unknown status or shape",
               error_code="INVALID_INVOICE_RESPONSE",
          )

     if invoice.external_id is not None and invoice.external_id != notification.external_id:
          logger.warning(
               f"Invoice {invoice.id} belongs to {invoice.external_id}, "
               f"callback claimed {notification.external_id}"
          )
          raise BadRequestError(
               "Invoice does not belong to the given external_id",
               error_code="EXTERNAL_ID_MISMATCH",
          )

     return invoice, invoice_payload


ClientFactory = Callable[[PaymentProvider], XenditClient]


def process_xendit_webhook(db: Session, payload, client_factory: ClientFactory = build_client) -> dict:
     """
     Reconcile one Xendit invoice callback.

     Steps: validate body, find booking, find active provider, re-fetch the
     invoice from Xendit, then settle / expire / ignore based on the fetched
     status. Nothing is written before the fetch succeeds.

     Returns:
          {"success": True, "message", "verifiedStatus", "external_id", "booking_status", "applied"}
     """
     notification = parse_webhook_payload(payload)
     logger.info(
          f"Received Xendit webhook | invoice={notification.id} external_id={notification.external_id} "
          f"status={notification.status.value if notification.status else None}"
     )

     booking = db.query(Booking).filter(Booking.id == notification.external_id).first()
     if booking is None:
          logger.warning(f"Booking not found for external_id {notification.external_id}")
          raise NotFoundError(
               "Booking not found with the provided external_id",
               error_code="BOOKING_NOT_FOUND",
          )

     provider = get_active_provider(db)
     if provider is None or not provider.secret_key:
          logger.error("Xendit webhook received but no active payment provider is configured")
          raise InternalServiceError(
               "Payment provider not configured",
               error_code="PAYMENT_PROVIDER_NOT_CONFIGURED",
          )

     invoice, invoice_payload = verify_invoice(client_factory(provider), notification)

     if notification.status is not None and notification.status != invoice.status:
          logger.warning(
               f"Status mismatch for invoice {invoice.id}: webhook={notification.status.value} "
               f"xendit={invoice.status.value}; using Xendit status"
          )

     with booking_locks.hold(booking.id):
          # Re-read under the lock; another callback may have just written
          db.expire_all()
          booking = (
               db.query(Booking)
               .filter(Booking.id == notification.external_id)
               .with_for_update()
               .one()
          )
          actor = AuthenticatedActor.for_booking_owner(booking)

          if invoice.is_settled:
               outcome = settle_booking(db, booking, invoice, invoice_payload, actor, provider)
          elif invoice.status == InvoiceStatus.EXPIRED:
               outcome = expire_booking(db, booking, invoice, invoice_payload, actor)
          else:
               outcome = record_non_actionable(db, booking, invoice, invoice_payload, actor)

     logger.info(f"Webhook processed | booking={booking.id} | {outcome['message']}")
     return {"success": True, "external_id": booking.id, **outcome}
