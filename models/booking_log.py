# models/booking_log.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from .base import Base


class BookingLog(Base):
     """Append-only audit trail for a booking."""
     __tablename__ = "booking_logs"

     id = Column(Integer, primary_key=True, autoincrement=True)
     booking_id = Column(
          String(36),
          ForeignKey("bookings.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     action_type = Column(String(50), nullable=False, index=True)
     performed_by = Column(String(36), nullable=False)
     old_data = Column(JSON, nullable=True)
     new_data = Column(JSON, nullable=True)
     note = Column(Text, nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     booking = relationship("Booking", back_populates="logs")

     def __repr__(self):
          return f"<BookingLog(id={self.id}, booking_id={self.booking_id}, action_type='{self.action_type}')>"
