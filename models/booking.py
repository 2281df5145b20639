# models/booking.py
import enum
import uuid

from sqlalchemy import Column, String, Text, Numeric, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from .base import Base, enum_values


class BookingStatus(str, enum.Enum):
     """Booking lifecycle status."""
     PENDING = "pending"
     CONFIRMED = "confirmed"
     INSTALLMENT = "installment"
     PAID = "paid"
     EXPIRED = "expired"
     CANCELLED = "cancelled"
     COMPLETED = "completed"
     FAILED = "failed"


class PaymentMethod(str, enum.Enum):
     ONLINE = "online"
     OFFLINE = "offline"


TERMINAL_STATUSES = frozenset({
     BookingStatus.PAID,
     BookingStatus.EXPIRED,
     BookingStatus.CANCELLED,
     BookingStatus.COMPLETED,
     BookingStatus.FAILED,
})


class Booking(Base):
     """
     Booking model - one studio reservation.

     The booking id is sent to Xendit as the invoice `external_id`, so
     every provider notification maps back to exactly one booking.
     """
     __tablename__ = "bookings"

     id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

     # Foreign keys
     user_id = Column(
          String(36),
          ForeignKey("users.id"),
          nullable=False,
          index=True
     )

     # Payment details
     total_amount = Column(Numeric(12, 2), nullable=True)
     payment_method = Column(
          Enum(PaymentMethod, name="payment_method", values_callable=enum_values),
          default=PaymentMethod.ONLINE,
          nullable=False,
     )
     status = Column(
          Enum(BookingStatus, name="booking_status", values_callable=enum_values),
          default=BookingStatus.PENDING,
          nullable=False,
          index=True
     )
     payment_link = Column(String(500), nullable=True)
     notes = Column(Text, nullable=True)

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

     # Relationships
     user = relationship("User")
     installments = relationship(
          "Installment",
          back_populates="booking",
          order_by="Installment.installment_number",
     )
     transactions = relationship("Transaction", back_populates="booking")
     logs = relationship("BookingLog", back_populates="booking", order_by="BookingLog.id")

     def __repr__(self):
          return f"<Booking(id={self.id}, total_amount={self.total_amount}, status='{self.status.value}')>"

     @property
     def is_terminal(self) -> bool:
          """Paid, expired, cancelled, completed and failed bookings are final."""
          return self.status in TERMINAL_STATUSES

     def mark_status(self, status: BookingStatus) -> None:
          self.status = status
