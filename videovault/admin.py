import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .db import get_db
from .deps import require_admin
from .errors import AuthorizationDenied
from .models import User
from .schemas import AccountOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

def list_accounts(db: Session, requester: User) -> List[User]:
    """Every account with its ledger fields. Re-checks the requester's role against the store."""
    role = db.query(User.role).filter(User.id == requester.id).scalar()
    if role != "admin":
        raise AuthorizationDenied("Admin access required")
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

@router.get("/users", response_model=List[AccountOut])
def users(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    accounts = list_accounts(db, admin)
    logger.info("Admin user_id=%s listed %d accounts", admin.id, len(accounts))
    return accounts
