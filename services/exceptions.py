# services/exceptions.py
"""
Error taxonomy for the payment core.

Services raise these; main.py renders them as
{"success": false, "error": ..., "errorCode": ...} with `status_code`.
"""
from typing import Optional


class ServiceError(Exception):
     """Base class for errors surfaced to HTTP callers."""
     status_code = 500
     default_code = "INTERNAL_SERVER_ERROR"

     def __init__(self, message: str, error_code: Optional[str] = None, status_code: Optional[int] = None):
          super().__init__(message)
          self.message = message
          self.error_code = error_code or self.default_code
          if status_code is not None:
               self.status_code = status_code

     def to_dict(self) -> dict:
          return {"success": False, "error": self.message, "errorCode": self.error_code}


class BadRequestError(ServiceError):
     """Missing or malformed request fields. Never retried."""
     status_code = 400
     default_code = "BAD_REQUEST"


class InvalidArgumentError(BadRequestError):
     default_code = "INVALID_ARGUMENT"


class NotFoundError(ServiceError):
     """Unknown user, booking or payment provider."""
     status_code = 404
     default_code = "NOT_FOUND"


class InternalServiceError(ServiceError):
     status_code = 500
     default_code = "INTERNAL_SERVER_ERROR"


class GatewayError(ServiceError):
     """
     Xendit call failed.

     `kind` classifies the failure; `upstream_status` is the HTTP status
     Xendit answered with (None for timeouts and network errors).
     """
     status_code = 400
     default_code = "XENDIT_ERROR"

     BAD_REQUEST = "bad_request"
     AUTHENTICATION_FAILED = "authentication_failed"
     FORBIDDEN = "forbidden"
     NOT_FOUND = "not_found"
     RATE_LIMITED = "rate_limited"
     UPSTREAM_UNAVAILABLE = "upstream_unavailable"
     TIMEOUT = "timeout"
     NETWORK_ERROR = "network_error"
     INVALID_RESPONSE = "invalid_response"
     UNEXPECTED_STATUS = "unexpected_status"

     # HTTP status returned to our own caller for each kind
     HTTP_STATUS_BY_KIND = {
          BAD_REQUEST: 400,
          AUTHENTICATION_FAILED: 502,
          FORBIDDEN: 403,
          NOT_FOUND: 404,
          RATE_LIMITED: 429,
          UPSTREAM_UNAVAILABLE: 503,
          TIMEOUT: 504,
     }

     def __init__(self, message: str, kind: str, upstream_status: Optional[int] = None):
          super().__init__(message, status_code=self.HTTP_STATUS_BY_KIND.get(kind, 400))
          self.kind = kind
          self.upstream_status = upstream_status

     @classmethod
     def kind_for_status(cls, status: int) -> str:
          if status == 400:
               return cls.BAD_REQUEST
          if status == 401:
               return cls.AUTHENTICATION_FAILED
          if status == 403:
               return cls.FORBIDDEN
          if status == 404:
               return cls.NOT_FOUND
          if status == 429:
               return cls.RATE_LIMITED
          if status >= 500:
               return cls.UPSTREAM_UNAVAILABLE
          return cls.UNEXPECTED_STATUS
