# models/installment.py
import uuid

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from .base import Base


class Installment(Base):
     """
     Partial payment applied toward a booking total.
     Rows are created by staff or by the Xendit reconciler and never updated.
     """
     __tablename__ = "installments"

     id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
     booking_id = Column(
          String(36),
          ForeignKey("bookings.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     installment_number = Column(Integer, nullable=True)
     amount = Column(Numeric(12, 2), nullable=False)
     payment_method = Column(String(100), nullable=True)
     note = Column(Text, nullable=True)
     reference_id = Column(String(255), nullable=True, index=True)  # Xendit invoice id
     performed_by = Column(String(36), nullable=True)
     paid_at = Column(DateTime, server_default=func.now(), nullable=False)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     booking = relationship("Booking", back_populates="installments")

     def __repr__(self):
          return f"<Installment(id={self.id}, booking_id={self.booking_id}, amount={self.amount})>"
