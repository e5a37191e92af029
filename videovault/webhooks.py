"""Stripe webhook reconciler.

Verifies the signed payload, then maps the event onto the subscription ledger.
Once the signature checks out the endpoint always acknowledges, so Stripe stops
retrying events that carry nothing we act on.
"""
import json
import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import config, ledger
from .db import get_db
from .errors import Internal, SignatureInvalid, ValidationFailed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])

SIGNATURE_HEADER = "stripe-signature"

def verify_event(payload: bytes, signature: Optional[str], secret: str, tolerance: int = 300) -> dict:
    """Check ``signature`` against ``payload`` and return the decoded event."""
    if not signature:
        logger.warning("Stripe webhook called without signature header")
        raise SignatureInvalid("Missing signature")
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured")
        raise Internal()
    try:
        stripe.Webhook.construct_event(payload, signature, secret, tolerance)
    except stripe.SignatureVerificationError:
        logger.warning("Stripe webhook signature verification failed")
        raise SignatureInvalid()
    except (ValueError, TypeError, AttributeError):
        raise ValidationFailed("Invalid payload")
    # handlers work on the plain decoded body rather than the StripeObject
    event = json.loads(payload)
    if not isinstance(event, dict):
        raise ValidationFailed("Invalid payload")
    return event

def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}

def _object_id(value) -> Optional[str]:
    # Stripe sends either the bare id or the expanded object
    if isinstance(value, dict):
        value = value.get("id")
    return value if isinstance(value, str) and value else None

def _on_checkout_completed(db: Session, obj: dict):
    metadata = _as_dict(obj.get("metadata"))
    raw_user_id = metadata.get("user_id") or obj.get("client_reference_id")
    subscription_id = _object_id(obj.get("subscription"))
    customer_id = _object_id(obj.get("customer"))
    if not raw_user_id or not subscription_id:
        logger.info("Checkout session %s carries no user or subscription; skipping", obj.get("id"))
        return
    try:
        user_id = int(raw_user_id)
    except (TypeError, ValueError):
        logger.warning("Checkout session %s has malformed user reference", obj.get("id"))
        return
    if ledger.activate_checkout(db, user_id, customer_id, subscription_id):
        logger.info("Subscription activated: user_id=%s subscription=%s", user_id, subscription_id)
    else:
        logger.warning("Checkout session %s references unknown user_id=%s", obj.get("id"), user_id)

def _on_subscription_changed(db: Session, obj: dict):
    status = "active" if obj.get("status") == "active" else "inactive"
    _set_status(db, _object_id(obj.get("id")), status)

def _on_subscription_deleted(db: Session, obj: dict):
    _set_status(db, _object_id(obj.get("id")), "inactive")

def _on_invoice_paid(db: Session, obj: dict):
    _set_status(db, _object_id(obj.get("subscription")), "active")

def _on_invoice_failed(db: Session, obj: dict):
    _set_status(db, _object_id(obj.get("subscription")), "past_due")

def _set_status(db: Session, subscription_id: Optional[str], status: str):
    if not subscription_id:
        return
    matched = ledger.set_status_for_subscription(db, subscription_id, status)
    logger.info("Subscription %s -> %s (%d account(s))", subscription_id, status, matched)

HANDLERS = {
    "checkout.session.completed": _on_checkout_completed,
    "customer.subscription.created": _on_subscription_changed,
    "customer.subscription.updated": _on_subscription_changed,
    "customer.subscription.deleted": _on_subscription_deleted,
    "invoice.payment_succeeded": _on_invoice_paid,
    "invoice.payment_failed": _on_invoice_failed,
}

def apply_event(db: Session, event: dict) -> bool:
    """Apply a verified event to the ledger. Returns False for unhandled types."""
    event_type = event.get("type")
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled Stripe event type: %s", event_type)
        return False
    obj = _as_dict(_as_dict(event.get("data")).get("object"))
    if not obj:
        logger.warning("Stripe event %s (%s) has no object payload; skipping", event.get("id"), event_type)
        return False
    handler(db, obj)
    return True

@router.post("/webhook")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    event = verify_event(payload, request.headers.get(SIGNATURE_HEADER), config.STRIPE_WEBHOOK_SECRET, config.STRIPE_WEBHOOK_TOLERANCE)
    logger.info("Received Stripe event %s (%s)", event.get("id"), event.get("type"))
    try:
        await run_in_threadpool(apply_event, db, event)
    except SQLAlchemyError:
        logger.exception("Webhook ledger write failed for event %s", event.get("id"))
        raise Internal("Webhook processing failed")
    return {"received": True}
