from dotenv import load_dotenv
load_dotenv()

import os

def _csv(name: str) -> list:
    return [v.strip() for v in (os.getenv(name) or "").split(",") if v.strip()]

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/app.db")

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_TTL_HOURS = int(os.getenv("JWT_TTL_HOURS", "12"))

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_PRICE_ID = os.getenv("STRIPE_PRICE_ID")
STRIPE_ALLOWED_PRICE_IDS = _csv("STRIPE_ALLOWED_PRICE_IDS")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_WEBHOOK_TOLERANCE = int(os.getenv("STRIPE_WEBHOOK_TOLERANCE", "300"))

APP_BASE_URL = (os.getenv("APP_BASE_URL") or "").rstrip("/")
CORS_ORIGINS = _csv("CORS_ORIGINS") or ["*"]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
