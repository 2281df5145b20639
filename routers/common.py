# routers/common.py
"""
Shared response helpers for the public payment endpoints.

Every endpoint is called cross-origin (browser booking flow, Xendit
callbacks), so all responses carry permissive CORS headers.
"""
from fastapi import Response
from fastapi.responses import JSONResponse

CORS_HEADERS = {
     "Access-Control-Allow-Origin": "*",
     "Access-Control-Allow-Methods": "POST, OPTIONS",
     "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def preflight() -> Response:
     """Answer an OPTIONS request."""
     return Response(status_code=200, headers=CORS_HEADERS)


def envelope(payload: dict, status_code: int = 200) -> JSONResponse:
     return JSONResponse(content=payload, status_code=status_code, headers=CORS_HEADERS)


def error_envelope(message: str, error_code: str, status_code: int) -> JSONResponse:
     return envelope({"success": False, "error": message, "errorCode": error_code}, status_code)
