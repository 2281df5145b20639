# services/xendit_client.py
"""
Xendit Invoice API client.

Authenticates with HTTP Basic auth (secret key as username, empty password).
The header is rebuilt for every request because the credential comes from
whichever payment provider record is active at call time.
"""
import base64
import numbers
from decimal import Decimal
from typing import Optional

import requests

import config
from services.exceptions import GatewayError, InvalidArgumentError
from utils.logging_config import get_logger

logger = get_logger("payment")

INVOICES_ENDPOINT = "/v2/invoices"

ERROR_MESSAGES = {
     GatewayError.AUTHENTICATION_FAILED: "Authentication failed: Invalid API key or credentials",
     GatewayError.FORBIDDEN: "Forbidden: Access denied or insufficient permissions",
     GatewayError.NOT_FOUND: "Invoice not found",
     GatewayError.RATE_LIMITED: "Rate limit exceeded: Too many requests",
     GatewayError.UPSTREAM_UNAVAILABLE: "Xendit server error: Please try again later",
}


def is_positive_number(value) -> bool:
     """True for int/float/Decimal values above zero; bools and strings are rejected."""
     if isinstance(value, bool) or not isinstance(value, numbers.Number):
          return False
     try:
          return value > 0
     except TypeError:
          return False


class XenditClient:
     """Thin wrapper over the Xendit invoice endpoints."""

     def __init__(self, secret_key: str, api_url: Optional[str] = None, timeout: Optional[float] = None):
          self.secret_key = secret_key
          # No trailing slash so endpoints can always start with "/"
          self.api_url = (api_url or config.XENDIT_API_URL).rstrip("/")
          self.timeout = timeout if timeout is not None else config.XENDIT_TIMEOUT_SECONDS

     def auth_header(self) -> str:
          credentials = base64.b64encode(f"{self.secret_key}:".encode()).decode()
          return f"Basic {credentials}"

     def _headers(self) -> dict:
          return {
               "Content-Type": "application/json",
               "Authorization": self.auth_header(),
          }

     def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
          if not endpoint.startswith("/"):
               endpoint = f"/{endpoint}"
          url = f"{self.api_url}{endpoint}"
          logger.info(f"Xendit request | {method} {url}")
          try:
               return requests.request(
                    method,
                    url,
                    headers=self._headers(),
                    timeout=self.timeout,
                    **kwargs,
               )
          except requests.Timeout:
               logger.error(f"Xendit request timed out after {self.timeout}s | {method} {url}")
               raise GatewayError(
                    f"Xendit did not respond within {self.timeout} seconds",
                    kind=GatewayError.TIMEOUT,
               )
          except requests.RequestException as e:
               logger.error(f"Xendit request failed | {method} {url} | {e}")
               raise GatewayError(f"Could not reach Xendit: {e}", kind=GatewayError.NETWORK_ERROR)

     @staticmethod
     def _json(response: requests.Response):
          try:
               return response.json()
          except ValueError:
               return None

     def _raise_for_status(self, response: requests.Response, body) -> None:
          if 200 <= response.status_code < 300:
               return
          kind = GatewayError.kind_for_status(response.status_code)
          provider_message = body.get("message") if isinstance(body, dict) else None
          if kind == GatewayError.BAD_REQUEST:
               message = f"Bad Request: {provider_message or 'Invalid request parameters'}"
          else:
               message = ERROR_MESSAGES.get(kind) or provider_message or (
                    f"HTTP {response.status_code}: {response.reason}"
               )
          logger.warning(f"Xendit error | status={response.status_code} kind={kind} | {provider_message}")
          raise GatewayError(message, kind=kind, upstream_status=response.status_code)

     def _send(self, method: str, endpoint: str, **kwargs):
          response = self._request(method, endpoint, **kwargs)
          body = self._json(response)
          self._raise_for_status(response, body)
          if body is None:
               raise GatewayError(
                    "Xendit returned a non-JSON response",
                    kind=GatewayError.INVALID_RESPONSE,
                    upstream_status=response.status_code,
               )
          return body

     def create_invoice(self, invoice_data: dict) -> dict:
          """
          Create an invoice.

          Args:
               invoice_data: Xendit invoice fields; `external_id` and a positive
                    `amount` are required. `currency` defaults to IDR and
                    `invoice_duration` to 86400 seconds.

          Returns:
               The created invoice, including its checkout `invoice_url`.

          Raises:
               InvalidArgumentError: missing external_id or non-positive amount
               GatewayError: Xendit answered non-2xx, timed out or was unreachable
          """
          if not invoice_data.get("external_id"):
               raise InvalidArgumentError("external_id is required to create an invoice")
          if not is_positive_number(invoice_data.get("amount")):
               raise InvalidArgumentError("amount must be a positive number")

          payload = {
               "currency": config.DEFAULT_INVOICE_CURRENCY,
               "invoice_duration": config.DEFAULT_INVOICE_DURATION_SECONDS,
               **invoice_data,
          }
          # Decimal is not JSON serializable
          if isinstance(payload["amount"], Decimal):
               payload["amount"] = float(payload["amount"])

          invoice = self._send("POST", INVOICES_ENDPOINT, json=payload)
          logger.info(f"Xendit invoice created | id={invoice.get('id')} external_id={payload['external_id']}")
          return invoice

     def get_invoice(self, invoice_id: Optional[str] = None, external_id: Optional[str] = None) -> dict:
          """
          Fetch Xendit's current view of an invoice.

          Exactly one of `invoice_id` or `external_id` must be given. A lookup by
          external_id returns the first matching invoice.
          """
          if bool(invoice_id) == bool(external_id):
               raise InvalidArgumentError("Exactly one of invoice_id or external_id must be provided")

          if invoice_id:
               return self._send("GET", f"{INVOICES_ENDPOINT}/{invoice_id}")

          invoices = self._send("GET", INVOICES_ENDPOINT, params={"external_id": external_id})
          if isinstance(invoices, list):
               if not invoices:
                    raise GatewayError(
                         "No invoice found with the specified external_id",
                         kind=GatewayError.NOT_FOUND,
                         upstream_status=200,
                    )
               return invoices[0]
          return invoices

     def test_connection(self) -> dict:
          """Check the credential by listing a single invoice."""
          invoices = self._send("GET", INVOICES_ENDPOINT, params={"limit": 1})
          return {
               "message": "Connection successful to Xendit API",
               "invoices": invoices,
          }
