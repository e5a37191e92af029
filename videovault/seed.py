"""Out-of-band account administration.

Role changes only happen here, never through the HTTP API.

Usage:
  python -m videovault.seed seed
  python -m videovault.seed promote someone@example.com
  python -m videovault.seed demote someone@example.com
"""
import argparse
import logging

from sqlalchemy.orm import Session

from .auth import hash_password
from .db import SessionLocal, init_db
from .models import ROLES, User

logger = logging.getLogger(__name__)

SEED_USERS = [
    {"email": "admin@example.com", "password": "admin123", "role": "admin"},
    {"email": "user@example.com", "password": "user123", "role": "user"},
]

def seed_users(db: Session) -> int:
    inserted = 0
    for item in SEED_USERS:
        if db.query(User).filter(User.email == item["email"]).first():
            continue
        db.add(User(email=item["email"], password_hash=hash_password(item["password"]), role=item["role"]))
        inserted += 1
    db.commit()
    return inserted

def set_role(db: Session, email: str, role: str) -> User:
    if role not in ROLES:
        raise ValueError(f"unknown role: {role}")
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None:
        raise LookupError(f"no account for {email}")
    user.role = role
    db.commit()
    logger.info("Role for user_id=%s set to %s", user.id, role)
    return user

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="videovault.seed")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("seed", help="create demo admin and user accounts")
    for name in ("promote", "demote"):
        p = sub.add_parser(name, help=f"{name} an account")
        p.add_argument("email")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    init_db()
    db = SessionLocal()
    try:
        if args.command == "seed":
            print(f"seed_users inserted={seed_users(db)}")
        else:
            role = "admin" if args.command == "promote" else "user"
            try:
                user = set_role(db, args.email, role)
            except LookupError as exc:
                parser.error(str(exc))
            print(f"{user.email} role={user.role}")
    finally:
        db.close()
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
