# models/transaction.py
import enum
import uuid

from sqlalchemy import Column, String, Text, Numeric, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from .base import Base, enum_values


class PaymentType(str, enum.Enum):
     ONLINE = "online"
     OFFLINE = "offline"
     INSTALLMENT = "installment"


class TransactionStatus(str, enum.Enum):
     PAID = "paid"
     UNPAID = "unpaid"
     EXPIRED = "expired"
     PENDING = "pending"
     SETTLEMENT = "settlement"
     FAILED = "failed"


class Transaction(Base):
     """
     Financial ledger row mirroring one payment event.

     `reference_id` holds the Xendit invoice id and is unique, so the same
     provider payment can never be booked twice.
     """
     __tablename__ = "transactions"

     id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
     booking_id = Column(
          String(36),
          ForeignKey("bookings.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     amount = Column(Numeric(12, 2), nullable=False)
     type = Column(String(50), nullable=True)
     payment_type = Column(
          Enum(PaymentType, name="payment_type", values_callable=enum_values),
          nullable=False,
     )
     status = Column(
          Enum(TransactionStatus, name="transaction_status", values_callable=enum_values),
          default=TransactionStatus.PENDING,
          nullable=False,
     )
     description = Column(Text, nullable=True)
     reference_id = Column(String(255), nullable=True, unique=True, index=True)
     performed_by = Column(String(36), nullable=True)
     payment_provider_id = Column(String(36), ForeignKey("payment_providers.id"), nullable=True)

     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

     booking = relationship("Booking", back_populates="transactions")

     def __repr__(self):
          return f"<Transaction(id={self.id}, reference_id={self.reference_id}, amount={self.amount})>"
