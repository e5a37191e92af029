"""Subscription ledger writes.

Every write is one UPDATE statement committed on its own, so status and provider
ids land together or not at all. Writes overwrite rather than increment, which
makes replaying the same provider event harmless.
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import SUBSCRIPTION_STATUSES, User

logger = logging.getLogger(__name__)

def _apply(db: Session, criteria, values: dict) -> int:
    values = {**values, User.updated_at: func.now()}
    try:
        matched = db.query(User).filter(criteria).update(values, synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return matched

def activate_checkout(db: Session, user_id: int, customer_id: str, subscription_id: str) -> int:
    """Mark the account active and record its provider ids. Returns matched row count."""
    return _apply(db, User.id == user_id, {
        User.subscription_status: "active",
        User.stripe_customer_id: customer_id,
        User.stripe_subscription_id: subscription_id,
    })

def set_status_for_subscription(db: Session, subscription_id: str, status: str) -> int:
    if status not in SUBSCRIPTION_STATUSES:
        raise ValueError(f"unknown subscription status: {status}")
    return _apply(db, User.stripe_subscription_id == subscription_id, {User.subscription_status: status})
