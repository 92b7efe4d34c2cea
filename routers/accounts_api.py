from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import accounts
from dependencies import get_db
from models import PasswordChange, User, UserIn, UserUpdate

router = APIRouter()


@router.post("/users", response_model=User, status_code=201)
def register_api(
    body: UserIn,
    db: Session = Depends(get_db),
):
    created = accounts.create_user(db, body)
    if not created:
        raise HTTPException(status_code=409, detail="email already registered")
    return created


@router.get("/users", response_model=list[User])
def list_users_api(db: Session = Depends(get_db)):
    return accounts.list_users(db)


@router.get("/users/{user_id}", response_model=User)
def get_user_api(
    user_id: str,
    db: Session = Depends(get_db),
):
    user = accounts.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user not found")
    return user


@router.patch("/users/{user_id}", response_model=User)
def update_user_api(
    user_id: str,
    body: UserUpdate,
    db: Session = Depends(get_db),
):
    if body.email is not None and accounts.email_exists(db, str(body.email), exclude_user_id=user_id):
        raise HTTPException(status_code=409, detail="email already registered")
    updated = accounts.update_user(db, user_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="user not found")
    return updated


@router.post("/users/{user_id}/password", status_code=204)
def change_password_api(
    user_id: str,
    body: PasswordChange,
    db: Session = Depends(get_db),
):
    if not accounts.get_user(db, user_id):
        raise HTTPException(status_code=404, detail="user not found")
    if not accounts.change_password(db, user_id, body):
        raise HTTPException(status_code=403, detail="current password is incorrect")
    return None
