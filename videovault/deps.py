import logging

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .config import JWT_SECRET
from .db import get_db
from .errors import AuthenticationRequired, AuthorizationDenied
from .models import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    if not token:
        raise AuthenticationRequired()
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=["HS256"], options={"require": ["sub", "exp"]})
        uid = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise AuthenticationRequired("Invalid token")
    user = db.get(User, uid)
    if not user or not user.is_active:
        raise AuthenticationRequired("Invalid token")
    return user

def ensure_active_subscription(user: User):
    if user.subscription_status != "active":
        raise AuthorizationDenied("Active subscription required")

def require_active_subscription(user: User = Depends(get_current_user)) -> User:
    ensure_active_subscription(user)
    return user

def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        logger.warning("Admin access denied: user_id=%s", user.id)
        raise AuthorizationDenied("Admin access required")
    return user
