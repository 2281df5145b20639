# schemas/actor.py
from typing import Optional
from pydantic import BaseModel, ConfigDict


class AuthenticatedActor(BaseModel):
     """
     The user on whose behalf an operation runs.

     Passed explicitly into every operation that records `performed_by`.
     """
     id: str
     name: Optional[str] = None
     email: Optional[str] = None
     role: Optional[str] = None

     model_config = ConfigDict(frozen=True)

     @classmethod
     def from_user(cls, user) -> "AuthenticatedActor":
          role = getattr(user.role, "value", user.role)
          return cls(id=user.id, name=user.name, email=user.email, role=role)

     @classmethod
     def for_booking_owner(cls, booking) -> "AuthenticatedActor":
          """Provider callbacks act on behalf of the customer who made the booking."""
          if booking.user is not None:
               return cls.from_user(booking.user)
          return cls(id=booking.user_id)

     def public_profile(self) -> dict:
          return self.model_dump()
