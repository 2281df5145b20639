# models/__init__.py
from .base import Base
from .user import User, UserRole
from .booking import Booking, BookingStatus, PaymentMethod
from .installment import Installment
from .transaction import Transaction, PaymentType, TransactionStatus
from .booking_log import BookingLog
from .payment_provider import PaymentProvider, PaymentEnvironment, ProviderStatus

__all__ = [
     "Base",
     "User",
     "UserRole",
     "Booking",
     "BookingStatus",
     "PaymentMethod",
     "Installment",
     "Transaction",
     "PaymentType",
     "TransactionStatus",
     "BookingLog",
     "PaymentProvider",
     "PaymentEnvironment",
     "ProviderStatus",
]
