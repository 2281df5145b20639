# models/user.py
import enum
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Enum, func
from .base import Base, enum_values


class UserRole(str, enum.Enum):
     """Back-office and customer roles."""
     OWNER = "owner"
     ADMIN = "admin"
     KEUANGAN = "keuangan"  # finance staff
     PELANGGAN = "pelanggan"  # customer


class User(Base):
     """
     User model - staff and customers.
     Only read by the payment core to resolve `performed_by`.
     """
     __tablename__ = "users"

     id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
     name = Column(String(255), nullable=False)
     email = Column(String(255), unique=True, nullable=False, index=True)
     role = Column(
          Enum(UserRole, name="user_role", values_callable=enum_values),
          default=UserRole.PELANGGAN,
          nullable=False,
     )
     is_active = Column(Boolean, default=True, nullable=False)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

     def __repr__(self):
          return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
