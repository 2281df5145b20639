# services/payment_provider_service.py
"""
Selection of the payment provider credential used for Xendit calls.
"""
from typing import Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

import config
from models import PaymentProvider
from models.payment_provider import PaymentEnvironment, ProviderStatus
from services.exceptions import BadRequestError, NotFoundError
from services.xendit_client import XenditClient
from utils.logging_config import get_logger

logger = get_logger("payment")


def _latest_active(db: Session, environment: Optional[PaymentEnvironment] = None) -> Optional[PaymentProvider]:
     query = db.query(PaymentProvider).filter(PaymentProvider.status == ProviderStatus.ACTIVE)
     if environment is not None:
          query = query.filter(PaymentProvider.environment == environment)
     return (
          query
          .order_by(desc(PaymentProvider.updated_at), desc(PaymentProvider.id))
          .limit(1)
          .first()
     )


def get_active_provider(db: Session, allow_sandbox_fallback: Optional[bool] = None) -> Optional[PaymentProvider]:
     """
     Most recently updated active production provider.

     With sandbox fallback enabled, the most recently updated active provider
     of any environment is used when no production provider is active.
     """
     if allow_sandbox_fallback is None:
          allow_sandbox_fallback = config.XENDIT_ALLOW_SANDBOX_FALLBACK

     provider = _latest_active(db, PaymentEnvironment.PRODUCTION)
     if provider is None and allow_sandbox_fallback:
          logger.info("No active production provider, trying any active provider")
          provider = _latest_active(db)
     return provider


def ensure_secret_key(provider: PaymentProvider) -> PaymentProvider:
     if not provider.secret_key:
          raise BadRequestError(
               "Secret key not found on payment provider",
               error_code="MISSING_SECRET_KEY",
          )
     return provider


def require_active_provider(db: Session) -> PaymentProvider:
     """
     Active provider with a secret key.

     Raises:
          NotFoundError: PAYMENT_PROVIDER_NOT_FOUND when none is active
          BadRequestError: MISSING_SECRET_KEY when the selected record has no secret
     """
     provider = get_active_provider(db)
     if provider is None:
          raise NotFoundError(
               "Payment provider not found or inactive",
               error_code="PAYMENT_PROVIDER_NOT_FOUND",
          )
     ensure_secret_key(provider)
     logger.info(f"Using payment provider | {provider.name} ({provider.environment.value})")
     return provider


def get_provider_by_id(db: Session, provider_id: str) -> PaymentProvider:
     provider = db.query(PaymentProvider).filter(PaymentProvider.id == provider_id).first()
     if provider is None:
          raise NotFoundError(
               "Payment provider not found",
               error_code="PAYMENT_PROVIDER_NOT_FOUND",
          )
     return provider


def build_client(provider: PaymentProvider) -> XenditClient:
     return XenditClient(provider.secret_key, provider.api_url or config.XENDIT_API_URL)


def provider_public_profile(provider: PaymentProvider, include_api_url: bool = False) -> dict:
     """Identity of a provider that is safe to return to callers (no keys)."""
     profile = {
          "id": provider.id,
          "name": provider.name,
          "environment": provider.environment.value,
     }
     if include_api_url:
          profile["api_url"] = provider.api_url
     return profile
