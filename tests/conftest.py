"""Shared fixtures: in-memory database, API client and a fake Xendit API."""

import os

# Must be set before config is imported
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from decimal import Decimal
from itertools import count
from urllib.parse import urlparse

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import get_session
from main import app
from models import Base, Booking, Installment, PaymentProvider, User
from models.booking import BookingStatus
from models.payment_provider import PaymentEnvironment, ProviderStatus
from models.user import UserRole


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ============================================================================
# Records
# ============================================================================


@pytest.fixture
def customer(db_session):
    user = User(name="Sinta Wijaya", email="sinta@example.com", role=UserRole.PELANGGAN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def staff(db_session):
    user = User(name="Rina Keuangan", email="rina@studio.example", role=UserRole.KEUANGAN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def make_provider(db_session):
    def _make(
        name="Xendit",
        secret_key="xnd_production_secret",
        environment=PaymentEnvironment.PRODUCTION,
        status=ProviderStatus.ACTIVE,
        updated_at=None,
        api_url="https://api.xendit.co",
    ):
        provider = PaymentProvider(
            name=name,
            secret_key=secret_key,
            environment=environment,
            status=status,
            api_url=api_url,
            updated_at=updated_at or datetime(2025, 1, 1, 12, 0, 0),
        )
        db_session.add(provider)
        db_session.commit()
        return provider

    return _make


@pytest.fixture
def provider(make_provider):
    return make_provider()


@pytest.fixture
def make_booking(db_session, customer):
    def _make(total_amount=100000, status=BookingStatus.PENDING, installments=()):
        booking = Booking(
            user_id=customer.id,
            total_amount=Decimal(str(total_amount)) if total_amount is not None else None,
            status=status,
        )
        db_session.add(booking)
        db_session.flush()
        for number, amount in enumerate(installments, start=1):
            db_session.add(Installment(
                booking_id=booking.id,
                installment_number=number,
                amount=Decimal(str(amount)),
                payment_method="cash",
                note="Paid at studio",
                performed_by=customer.id,
            ))
        db_session.commit()
        return booking

    return _make


# ============================================================================
# Fake Xendit API
# ============================================================================


class FakeResponse:
    def __init__(self, status_code, body=None, reason="OK"):
        self.status_code = status_code
        self._body = body
        self.reason = reason
        self.text = "" if body is None else str(body)

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeXendit:
    """Stands in for requests.request against the Xendit invoice API."""

    def __init__(self):
        self.invoices = {}
        self.calls = []
        self.fail_status = None
        self.raise_exc = None
        self._ids = count(1)

    def add_invoice(self, external_id, status="PAID", amount=100000, paid_amount=None, **extra):
        invoice_id = extra.pop("id", None) or f"inv-{next(self._ids)}"
        invoice = {
            "id": invoice_id,
            "external_id": external_id,
            "status": status,
            "amount": amount,
            "invoice_url": f"https://checkout.xendit.co/web/{invoice_id}",
            **extra,
        }
        if paid_amount is not None:
            invoice["paid_amount"] = paid_amount
        self.invoices[invoice_id] = invoice
        return invoice

    def __call__(self, method, url, headers=None, timeout=None, json=None, params=None, **kwargs):
        self.calls.append({
            "method": method,
            "url": url,
            "headers": headers or {},
            "timeout": timeout,
            "json": json,
            "params": params,
        })
        if self.raise_exc is not None:
            raise self.raise_exc
        if self.fail_status is not None:
            return FakeResponse(
                self.fail_status,
                {"error_code": "API_ERROR", "message": "upstream says no"},
                reason="Error",
            )

        path = urlparse(url).path
        if method == "POST" and path == "/v2/invoices":
            invoice = self.add_invoice(
                json["external_id"],
                status="PENDING",
                amount=json["amount"],
                currency=json.get("currency"),
                invoice_duration=json.get("invoice_duration"),
            )
            return FakeResponse(200, invoice)
        if method == "GET" and path.startswith("/v2/invoices/"):
            invoice = self.invoices.get(path.rsplit("/", 1)[1])
            if invoice is None:
                return FakeResponse(404, {"error_code": "INVOICE_NOT_FOUND_ERROR", "message": "not found"})
            return FakeResponse(200, invoice)
        if method == "GET" and path == "/v2/invoices":
            params = params or {}
            matches = list(self.invoices.values())
            if "external_id" in params:
                matches = [inv for inv in matches if inv["external_id"] == params["external_id"]]
            if "limit" in params:
                matches = matches[: params["limit"]]
            return FakeResponse(200, matches)
        return FakeResponse(404, {"message": "no route"})

    @property
    def last_call(self):
        return self.calls[-1]


@pytest.fixture
def xendit(monkeypatch):
    fake = FakeXendit()
    monkeypatch.setattr("services.xendit_client.requests.request", fake)
    return fake


@pytest.fixture
def later():
    """Timestamps after the default provider timestamp."""
    def _later(hours):
        return datetime(2025, 1, 1, 12, 0, 0) + timedelta(hours=hours)

    return _later
