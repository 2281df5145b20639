# routers/webhooks.py
"""
Xendit invoice callback.

POST /v1/callback (aliases /webhook/xendit, /api/webhook/xendit).
The body is never trusted: the invoice is re-fetched from Xendit before
any booking is touched.
"""
from fastapi import APIRouter, Body, Depends
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from database import get_session
from routers.common import envelope, preflight
from services.webhook_service import process_xendit_webhook

router = APIRouter(tags=["webhooks"])


@router.post("/v1/callback", summary="Xendit invoice callback")
@router.post("/webhook/xendit", include_in_schema=False)
@router.post("/api/webhook/xendit", include_in_schema=False)
def xendit_callback(
     payload=Body(...),
     db: Session = Depends(get_session),
):
     """
     Receives a Xendit invoice notification.

     Always answers 200 once the event has been processed, including
     statuses that need no action, so Xendit stops retrying.
     """
     result = process_xendit_webhook(db, payload)
     return envelope(jsonable_encoder(result))


@router.options("/v1/callback", include_in_schema=False)
@router.options("/webhook/xendit", include_in_schema=False)
@router.options("/api/webhook/xendit", include_in_schema=False)
def callback_preflight():
     return preflight()
