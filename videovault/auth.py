import datetime as dt
import logging

import jwt
from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import JWT_SECRET, JWT_TTL_HOURS
from .db import get_db
from .deps import get_current_user
from .errors import AuthenticationRequired, ConflictDuplicate, ValidationFailed
from .models import User
from .schemas import AccountOut

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256","bcrypt_sha256","bcrypt"], default="pbkdf2_sha256", deprecated="auto")

router = APIRouter(prefix="/auth", tags=["auth"])

class RegisterIn(BaseModel):
    email: EmailStr
    password: str

class CheckUserIn(BaseModel):
    email: str = ""

def hash_password(password: str) -> str:
    return pwd_context.hash(password[:72])

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password[:72], password_hash)

def create_access_token(user: User) -> str:
    # no role or subscription claims; both are read from the store per request
    now = dt.datetime.now(dt.timezone.utc)
    payload = {"sub": str(user.id), "iat": now, "exp": now + dt.timedelta(hours=JWT_TTL_HOURS)}
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")

@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if not payload.password:
        raise ValidationFailed("Password is required")
    if db.query(User).filter(User.email == email).first():
        raise ConflictDuplicate("Email already registered")
    user = User(email=email, password_hash=hash_password(payload.password), role="user", subscription_status="inactive")
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictDuplicate("Email already registered")
    db.refresh(user)
    logger.info("Account created: user_id=%s", user.id)
    return {"ok": True, "id": user.id}

@router.post("/login")
def login(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == form.username.lower()).first()
    if not user or not user.is_active or not verify_password(form.password, user.password_hash):
        raise AuthenticationRequired("Invalid credentials")
    return {"access_token": create_access_token(user), "token_type": "bearer"}

@router.get("/me", response_model=AccountOut)
def me(user: User = Depends(get_current_user)):
    return user

@router.post("/check-user")
def check_user(payload: CheckUserIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if not email:
        raise ValidationFailed("Email is required")
    exists = db.query(User.id).filter(User.email == email).first() is not None
    return {"exists": exists}
