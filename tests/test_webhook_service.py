"""Tests for Xendit callback reconciliation."""

import threading
from decimal import Decimal

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from models import Base, Booking, BookingLog, Installment, PaymentProvider, Transaction, User
from models.booking import BookingStatus
from models.payment_provider import PaymentEnvironment
from models.transaction import PaymentType, TransactionStatus
from models.user import UserRole
from services.booking_lock import booking_locks
from services.exceptions import BadRequestError, InternalServiceError, NotFoundError
from services.webhook_service import (
    PAYMENT_EXPIRED,
    PAYMENT_IGNORED,
    PAYMENT_RECEIVED,
    WEBHOOK_RECEIVED,
    process_xendit_webhook,
)


def callback(invoice, **overrides):
    body = {"id": invoice["id"], "external_id": invoice["external_id"], "status": invoice["status"]}
    body.update(overrides)
    return body


def rows(db_session, model, booking):
    return db_session.query(model).filter(model.booking_id == booking.id).all()


def assert_untouched(db_session, booking, status=BookingStatus.PENDING):
    db_session.expire_all()
    assert db_session.get(type(booking), booking.id).status == status
    assert rows(db_session, Transaction, booking) == []
    assert rows(db_session, BookingLog, booking) == []


class TestSettle:
    def test_full_payment_marks_booking_paid(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=100000)
        invoice = xendit.add_invoice(booking.id, status="PAID", amount=100000, paid_amount=100000)

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["success"] is True
        assert result["verifiedStatus"] == "PAID"
        assert result["booking_status"] == "paid"
        assert result["applied"] is True
        assert booking.status == BookingStatus.PAID

        transactions = rows(db_session, Transaction, booking)
        assert len(transactions) == 1
        assert transactions[0].amount == Decimal("100000")
        assert transactions[0].payment_type == PaymentType.ONLINE
        assert transactions[0].status == TransactionStatus.PAID
        assert transactions[0].reference_id == invoice["id"]
        assert transactions[0].payment_provider_id == provider.id
        assert transactions[0].performed_by == booking.user_id
        assert rows(db_session, Installment, booking) == []

        logs = rows(db_session, BookingLog, booking)
        assert [log.action_type for log in logs] == [PAYMENT_RECEIVED]
        assert logs[0].old_data == {"status": "pending"}
        assert logs[0].new_data["id"] == invoice["id"]

    def test_partial_payment_becomes_first_installment(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=100000)
        invoice = xendit.add_invoice(
            booking.id, status="PAID", amount=50000, paid_amount=50000, payment_method="BANK_TRANSFER"
        )

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["booking_status"] == "installment"
        installments = rows(db_session, Installment, booking)
        assert len(installments) == 1
        assert installments[0].amount == Decimal("50000")
        assert installments[0].installment_number == 1
        assert installments[0].payment_method == "BANK_TRANSFER"
        assert installments[0].reference_id == invoice["id"]

        transactions = rows(db_session, Transaction, booking)
        assert len(transactions) == 1
        assert transactions[0].payment_type == PaymentType.INSTALLMENT

    def test_second_payment_completes_booking(self, db_session, provider, make_booking, xendit):
        booking = make_booking(
            total_amount=100000, status=BookingStatus.INSTALLMENT, installments=[50000]
        )
        invoice = xendit.add_invoice(booking.id, status="PAID", amount=50000, paid_amount=50000)

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["booking_status"] == "paid"
        assert len(rows(db_session, Installment, booking)) == 1
        transactions = rows(db_session, Transaction, booking)
        assert len(transactions) == 1
        assert transactions[0].payment_type == PaymentType.ONLINE

    def test_second_short_payment_is_numbered_after_existing(self, db_session, provider, make_booking, xendit):
        booking = make_booking(
            total_amount=100000, status=BookingStatus.INSTALLMENT, installments=[30000]
        )
        invoice = xendit.add_invoice(booking.id, status="SETTLED", amount=30000)

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["booking_status"] == "installment"
        numbers = [i.installment_number for i in rows(db_session, Installment, booking)]
        assert sorted(numbers) == [1, 2]

    def test_amount_used_when_paid_amount_missing(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=100000)
        invoice = xendit.add_invoice(booking.id, status="SETTLED", amount=100000)

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["booking_status"] == "paid"
        assert rows(db_session, Transaction, booking)[0].amount == Decimal("100000")

    def test_booking_without_total_is_paid(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=None)
        invoice = xendit.add_invoice(booking.id, status="PAID", amount=75000)

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["booking_status"] == "paid"

    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.EXPIRED, BookingStatus.COMPLETED])
    def test_payment_for_closed_booking_is_logged_only(self, db_session, provider, make_booking, xendit, status):
        booking = make_booking(total_amount=100000, status=status)
        invoice = xendit.add_invoice(booking.id, status="PAID", paid_amount=100000)

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["applied"] is False
        assert booking.status == status
        assert rows(db_session, Transaction, booking) == []
        assert [log.action_type for log in rows(db_session, BookingLog, booking)] == [PAYMENT_IGNORED]


class TestIdempotence:
    def test_redelivered_full_payment(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=100000)
        invoice = xendit.add_invoice(booking.id, status="PAID", paid_amount=100000)

        process_xendit_webhook(db_session, callback(invoice))
        second = process_xendit_webhook(db_session, callback(invoice))

        assert second["success"] is True
        assert second["applied"] is False
        assert booking.status == BookingStatus.PAID
        assert len(rows(db_session, Transaction, booking)) == 1
        assert rows(db_session, Installment, booking) == []

    def test_redelivered_partial_payment(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=100000)
        invoice = xendit.add_invoice(booking.id, status="PAID", paid_amount=50000)

        process_xendit_webhook(db_session, callback(invoice))
        second = process_xendit_webhook(db_session, callback(invoice))

        assert second["applied"] is False
        assert booking.status == BookingStatus.INSTALLMENT
        assert len(rows(db_session, Installment, booking)) == 1
        assert len(rows(db_session, Transaction, booking)) == 1

    def test_other_invoice_for_paid_booking(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=100000, status=BookingStatus.PAID)
        invoice = xendit.add_invoice(booking.id, status="PAID", paid_amount=100000)

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["message"] == "Booking already paid"
        assert rows(db_session, Transaction, booking) == []

    def test_lock_released_after_processing(self, db_session, provider, make_booking, xendit):
        booking = make_booking()
        invoice = xendit.add_invoice(booking.id, status="PAID", paid_amount=100000)

        process_xendit_webhook(db_session, callback(invoice))

        assert booking_locks.active_count() == 0


class TestExpire:
    def test_expired_invoice_expires_pending_booking(self, db_session, provider, make_booking, xendit):
        booking = make_booking()
        invoice = xendit.add_invoice(booking.id, status="EXPIRED")

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["booking_status"] == "expired"
        assert booking.status == BookingStatus.EXPIRED
        logs = rows(db_session, BookingLog, booking)
        assert [log.action_type for log in logs] == [PAYMENT_EXPIRED]
        assert logs[0].old_data == {"status": "pending"}
        assert rows(db_session, Transaction, booking) == []

    def test_expiry_does_not_undo_payment(self, db_session, provider, make_booking, xendit):
        booking = make_booking(status=BookingStatus.PAID)
        invoice = xendit.add_invoice(booking.id, status="EXPIRED")

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["applied"] is False
        assert booking.status == BookingStatus.PAID
        assert [log.action_type for log in rows(db_session, BookingLog, booking)] == [WEBHOOK_RECEIVED]


class TestNotActionable:
    def test_pending_invoice_changes_nothing(self, db_session, provider, make_booking, xendit):
        booking = make_booking()
        invoice = xendit.add_invoice(booking.id, status="PENDING")

        result = process_xendit_webhook(db_session, callback(invoice))

        assert result["success"] is True
        assert "not actionable" in result["message"]
        assert result["applied"] is False
        assert booking.status == BookingStatus.PENDING
        assert rows(db_session, Transaction, booking) == []
        assert [log.action_type for log in rows(db_session, BookingLog, booking)] == [WEBHOOK_RECEIVED]


class TestVerification:
    def test_fetched_status_wins_over_callback(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=100000)
        invoice = xendit.add_invoice(booking.id, status="SETTLED", paid_amount=100000)

        result = process_xendit_webhook(db_session, callback(invoice, status="PENDING"))

        assert result["verifiedStatus"] == "SETTLED"
        assert booking.status == BookingStatus.PAID

    def test_claimed_payment_not_trusted(self, db_session, provider, make_booking, xendit):
        booking = make_booking(total_amount=100000)
        invoice = xendit.add_invoice(booking.id, status="PENDING")

        result = process_xendit_webhook(
            db_session, callback(invoice, status="PAID", paid_amount=100000)
        )

        assert result["verifiedStatus"] == "PENDING"
        assert booking.status == BookingStatus.PENDING
        assert rows(db_session, Transaction, booking) == []

    def test_invoice_fetched_by_callback_id(self, db_session, provider, make_booking, xendit):
        booking = make_booking()
        invoice = xendit.add_invoice(booking.id, status="PENDING")

        process_xendit_webhook(db_session, callback(invoice))

        assert xendit.last_call["method"] == "GET"
        assert xendit.last_call["url"] == f"https://api.xendit.co/v2/invoices/{invoice['id']}"

    @pytest.mark.parametrize("fail_status", [401, 500, 503])
    def test_upstream_error_writes_nothing(self, db_session, provider, make_booking, xendit, fail_status):
        booking = make_booking()
        invoice = xendit.add_invoice(booking.id, status="PAID", paid_amount=100000)
        xendit.fail_status = fail_status

        with pytest.raises(InternalServiceError) as exc_info:
            process_xendit_webhook(db_session, callback(invoice))

        assert exc_info.value.error_code == "INVOICE_VERIFICATION_FAILED"
        assert exc_info.value.status_code == 500
        assert_untouched(db_session, booking)

    @pytest.mark.parametrize("exc", [requests.ConnectionError("refused"), requests.Timeout("slow")])
    def test_network_failure_writes_nothing(self, db_session, provider, make_booking, xendit, exc):
        booking = make_booking()
        invoice = xendit.add_invoice(booking.id, status="PAID", paid_amount=100000)
        xendit.raise_exc = exc

        with pytest.raises(InternalServiceError):
            process_xendit_webhook(db_session, callback(invoice))

        assert_untouched(db_session, booking)

    def test_unknown_invoice_writes_nothing(self, db_session, provider, make_booking, xendit):
        booking = make_booking()

        with pytest.raises(InternalServiceError):
            process_xendit_webhook(db_session, {"id": "inv-ghost", "external_id": booking.id})

        assert_untouched(db_session, booking)

    def test_unrecognised_fetched_status(self, db_session, provider, make_booking, xendit):
        booking = make_booking()
        invoice = xendit.add_invoice(booking.id, status="REFUNDED")

        with pytest.raises(InternalServiceError) as exc_info:
            process_xendit_webhook(db_session, {"id": invoice["id"], "external_id": booking.id})

        assert exc_info.value.error_code == "INVALID_INVOICE_RESPONSE"
        assert_untouched(db_session, booking)

    def test_invoice_for_another_booking(self, db_session, provider, make_booking, xendit):
        booking = make_booking()
        other = make_booking()
        invoice = xendit.add_invoice(other.id, status="PAID", paid_amount=100000)

        with pytest.raises(BadRequestError) as exc_info:
            process_xendit_webhook(db_session, callback(invoice, external_id=booking.id))

        assert exc_info.value.error_code == "EXTERNAL_ID_MISMATCH"
        assert_untouched(db_session, booking)
        assert_untouched(db_session, other)


class TestRejectedCallbacks:
    def test_unknown_booking(self, db_session, provider, xendit):
        with pytest.raises(NotFoundError) as exc_info:
            process_xendit_webhook(db_session, {"id": "inv-1", "external_id": "no-such-booking", "status": "PAID"})

        assert exc_info.value.error_code == "BOOKING_NOT_FOUND"
        assert exc_info.value.status_code == 404
        assert xendit.calls == []
        assert db_session.query(Transaction).count() == 0
        assert db_session.query(BookingLog).count() == 0

    def test_no_active_provider(self, db_session, make_booking, xendit):
        booking = make_booking()

        with pytest.raises(InternalServiceError) as exc_info:
            process_xendit_webhook(db_session, {"id": "inv-1", "external_id": booking.id, "status": "PAID"})

        assert exc_info.value.error_code == "PAYMENT_PROVIDER_NOT_CONFIGURED"
        assert xendit.calls == []
        assert_untouched(db_session, booking)

    @pytest.mark.parametrize("body", [{"external_id": "b-1"}, {"id": "inv-1"}, {"id": "", "external_id": "b-1"}])
    def test_missing_fields(self, db_session, xendit, body):
        with pytest.raises(BadRequestError) as exc_info:
            process_xendit_webhook(db_session, body)
        assert exc_info.value.error_code == "MISSING_FIELDS"

    def test_unknown_claimed_status(self, db_session, xendit):
        with pytest.raises(BadRequestError) as exc_info:
            process_xendit_webhook(db_session, {"id": "inv-1", "external_id": "b-1", "status": "REFUNDED"})
        assert exc_info.value.error_code == "INVALID_STATUS"

    @pytest.mark.parametrize("status", [["PAID"], {"x": 1}, 1])
    def test_non_string_claimed_status(self, db_session, make_booking, xendit, status):
        booking = make_booking()

        with pytest.raises(BadRequestError) as exc_info:
            process_xendit_webhook(db_session, {"id": "inv-1", "external_id": booking.id, "status": status})

        assert exc_info.value.error_code == "INVALID_STATUS"
        assert xendit.calls == []
        assert_untouched(db_session, booking)

    @pytest.mark.parametrize("body", [[1, 2], "PAID", None])
    def test_body_must_be_object(self, db_session, xendit, body):
        with pytest.raises(BadRequestError) as exc_info:
            process_xendit_webhook(db_session, body)
        assert exc_info.value.error_code == "INVALID_PAYLOAD"


def test_database_failure_rolls_back(db_session, provider, make_booking, xendit, monkeypatch):
    booking = make_booking(total_amount=100000)
    invoice = xendit.add_invoice(booking.id, status="PAID", paid_amount=50000)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(InternalServiceError) as exc_info:
        process_xendit_webhook(db_session, callback(invoice))

    assert exc_info.value.error_code == "DATABASE_ERROR"
    monkeypatch.undo()
    assert_untouched(db_session, booking)
    assert rows(db_session, Installment, booking) == []


class TestConcurrentCallbacks:
    @pytest.fixture
    def file_session_factory(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'payments.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(engine)
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
        engine.dispose()

    def test_two_partial_payments_for_one_booking(self, file_session_factory, xendit):
        setup = file_session_factory()
        user = User(name="Sinta Wijaya", email="sinta@example.com", role=UserRole.PELANGGAN)
        setup.add(user)
        setup.add(PaymentProvider(
            name="Xendit",
            secret_key="xnd_production_secret",
            environment=PaymentEnvironment.PRODUCTION,
        ))
        setup.flush()
        booking = Booking(user_id=user.id, total_amount=Decimal("100000"))
        setup.add(booking)
        setup.commit()
        booking_id = booking.id
        setup.close()

        invoices = [
            xendit.add_invoice(booking_id, status="PAID", amount=50000, paid_amount=50000),
            xendit.add_invoice(booking_id, status="PAID", amount=50000, paid_amount=50000),
        ]
        start = threading.Barrier(len(invoices))
        errors = []

        def deliver(invoice):
            session = file_session_factory()
            try:
                start.wait(timeout=5)
                process_xendit_webhook(session, callback(invoice))
            except Exception as e:
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=deliver, args=(invoice,)) for invoice in invoices]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        check = file_session_factory()
        try:
            assert check.get(Booking, booking_id).status == BookingStatus.PAID
            assert check.query(Installment).filter(Installment.booking_id == booking_id).count() == 1
            assert check.query(Transaction).filter(Transaction.booking_id == booking_id).count() == 2
        finally:
            check.close()
        assert booking_locks.active_count() == 0
