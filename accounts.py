from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from crud import persist, utcnow
from models import PasswordChange, User, UserIn, UserUpdate
from orm import UserORM

logger = logging.getLogger("app.accounts")

DEFAULT_ROLE = "admin"


def avatar_for(name: str) -> str:
    initial = (name or "?").strip()[:1].upper() or "?"
    return f"https://placehold.co/40x40.png?text={initial}"


def _user_to_schema(u: UserORM) -> User:
    return User(id=u.id, name=u.name, email=u.email, role=u.role, avatar=u.avatar)  # type: ignore[arg-type]


def email_exists(db: Session, email: str, exclude_user_id: Optional[str] = None) -> bool:
    stmt = select(UserORM.id).where(UserORM.email == email.strip().lower())
    if exclude_user_id:
        stmt = stmt.where(UserORM.id != exclude_user_id)
    return db.execute(stmt).first() is not None


def get_user(db: Session, user_id: str) -> Optional[User]:
    row = db.get(UserORM, user_id)
    return _user_to_schema(row) if row else None


def list_users(db: Session) -> list[User]:
    rows = db.execute(select(UserORM).order_by(UserORM.name.asc())).scalars().all()
    return [_user_to_schema(u) for u in rows]


def create_user(db: Session, body: UserIn, *, commit: bool = True) -> Optional[User]:
    """None when the email is already registered."""
    email = str(body.email).strip().lower()
    if email_exists(db, email):
        return None

    now = utcnow()
    name = body.name.strip()
    u = UserORM(
        id=str(uuid4()),
        name=name,
        email=email,
        role=DEFAULT_ROLE,
        avatar=avatar_for(name),
        password_hash=generate_password_hash(body.password),
        created_at=now,
        updated_at=now,
    )
    db.add(u)
    persist(db, commit=commit, touched=("users",))
    logger.info("registered user_id=%s", u.id)
    return _user_to_schema(u)


def update_user(db: Session, user_id: str, body: UserUpdate, *, commit: bool = True) -> Optional[User]:
    u = db.get(UserORM, user_id)
    if not u:
        return None

    if body.name is not None:
        u.name = body.name.strip()
        u.avatar = avatar_for(u.name)
    if body.email is not None:
        u.email = str(body.email).strip().lower()
    u.updated_at = utcnow()

    persist(db, commit=commit, touched=("users",))
    if commit:
        db.refresh(u)
    return _user_to_schema(u)


def change_password(db: Session, user_id: str, body: PasswordChange, *, commit: bool = True) -> bool:
    u = db.get(UserORM, user_id)
    if not u or not check_password_hash(u.password_hash, body.current_password):
        return False

    u.password_hash = generate_password_hash(body.new_password)
    u.updated_at = utcnow()
    persist(db, commit=commit, touched=("users",))
    logger.info("password changed user_id=%s", user_id)
    return True

