import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from . import config
from .deps import get_current_user
from .errors import ServiceUnavailable, ValidationFailed
from .models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])

class CheckoutIn(BaseModel):
    price_id: Optional[str] = None

def allowed_price_ids() -> set:
    prices = set(config.STRIPE_ALLOWED_PRICE_IDS)
    if config.STRIPE_PRICE_ID:
        prices.add(config.STRIPE_PRICE_ID)
    return prices

def _origin(request: Request) -> str:
    if config.APP_BASE_URL:
        return config.APP_BASE_URL
    return request.headers.get("origin") or request.url.scheme + "://" + request.url.netloc

@router.get("/status")
def status(user: User = Depends(get_current_user)):
    return {"subscription_status": user.subscription_status}

@router.get("/subscription")
def subscription(user: User = Depends(get_current_user)):
    return {
        "subscription_status": user.subscription_status or "inactive",
        "stripe_customer_id": user.stripe_customer_id,
        "stripe_subscription_id": user.stripe_subscription_id,
    }

@router.post("/create-checkout-session")
def create_checkout_session(request: Request, payload: Optional[CheckoutIn] = None, user: User = Depends(get_current_user)):
    if not config.STRIPE_SECRET_KEY:
        raise ServiceUnavailable("Billing not configured")
    price_id = (payload.price_id if payload else None) or config.STRIPE_PRICE_ID
    if not price_id:
        raise ServiceUnavailable("Billing not configured")
    if price_id not in allowed_price_ids():
        raise ValidationFailed("Unknown price")
    stripe.api_key = config.STRIPE_SECRET_KEY
    origin = _origin(request)
    params = dict(
        mode="subscription",
        line_items=[{"price": price_id, "quantity": 1}],
        success_url=origin + "/dashboard?success=true",
        cancel_url=origin + "/dashboard?canceled=true",
        client_reference_id=str(user.id),
        metadata={"user_id": str(user.id)},
    )
    if user.stripe_customer_id:
        params["customer"] = user.stripe_customer_id
    else:
        params["customer_email"] = user.email
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError:
        logger.exception("Checkout session creation failed for user_id=%s", user.id)
        raise ServiceUnavailable("Payment provider unavailable")
    logger.info("Checkout session %s created for user_id=%s", session.id, user.id)
    return {"checkout_url": session.url}
