# models/payment_provider.py
import enum
import uuid

from sqlalchemy import Column, String, DateTime, Enum, func
from .base import Base, enum_values


class PaymentEnvironment(str, enum.Enum):
     SANDBOX = "sandbox"
     PRODUCTION = "production"


class ProviderStatus(str, enum.Enum):
     ACTIVE = "active"
     INACTIVE = "inactive"


class PaymentProvider(Base):
     """
     Payment gateway credentials configured from the back office.

     The most recently updated active production record is the credential
     source for every Xendit call.
     """
     __tablename__ = "payment_providers"

     id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
     name = Column(String(255), nullable=False)
     secret_key = Column(String(255), nullable=True)
     public_key = Column(String(255), nullable=True)
     api_url = Column(String(500), nullable=True)
     environment = Column(
          Enum(PaymentEnvironment, name="payment_environment", values_callable=enum_values),
          default=PaymentEnvironment.SANDBOX,
          nullable=False,
     )
     status = Column(
          Enum(ProviderStatus, name="provider_status", values_callable=enum_values),
          default=ProviderStatus.ACTIVE,
          nullable=False,
          index=True
     )
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

     def __repr__(self):
          # never include secret_key
          return f"<PaymentProvider(id={self.id}, name='{self.name}', environment='{self.environment.value}')>"
