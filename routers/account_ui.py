from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

import accounts
from dependencies import get_db
from filter_helpers import form_errors
from models import PasswordChange, UserIn, UserUpdate

router = APIRouter()


@router.get("/ui/register", response_class=HTMLResponse)
def register_ui(request: Request):
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "register.html",
        {"form": {}, "errors": []},
    )


@router.post("/ui/register", response_class=HTMLResponse)
def register_ui_post(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    db: Session = Depends(get_db),
):
    templates = request.app.state.templates
    form = {"name": name, "email": email}
    try:
        body = UserIn(name=name, email=email, password=password, confirm_password=confirm_password)
    except ValidationError as e:
        return templates.TemplateResponse(
            request, "register.html", {"form": form, "errors": form_errors(e)}, status_code=422
        )

    user = accounts.create_user(db, body)
    if not user:
        return templates.TemplateResponse(
            request,
            "register.html",
            {"form": form, "errors": ["Could not create account. The email might already be in use."]},
            status_code=409,
        )
    return RedirectResponse(url=f"/ui/account/{user.id}", status_code=303)


@router.get("/ui/account/{user_id}", response_class=HTMLResponse)
def account_ui(
    request: Request,
    user_id: str,
    message: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    user = accounts.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user not found")

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "account.html",
        {"user": user, "message": message, "error": error},
    )


@router.post("/ui/account/{user_id}")
def update_account_ui(
    user_id: str,
    name: str = Form(...),
    email: str = Form(...),
    db: Session = Depends(get_db),
):
    url = f"/ui/account/{user_id}"
    try:
        body = UserUpdate(name=name, email=email)
    except ValidationError as e:
        return RedirectResponse(url=f"{url}?error={quote('; '.join(form_errors(e)))}", status_code=303)

    if accounts.email_exists(db, email, exclude_user_id=user_id):
        return RedirectResponse(url=f"{url}?error={quote('Email already registered.')}", status_code=303)
    if not accounts.update_user(db, user_id, body):
        raise HTTPException(status_code=404, detail="user not found")
    return RedirectResponse(url=f"{url}?message={quote('Account updated.')}", status_code=303)


@router.post("/ui/account/{user_id}/password")
def change_password_ui(
    user_id: str,
    current_password: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    db: Session = Depends(get_db),
):
    url = f"/ui/account/{user_id}"
    try:
        body = PasswordChange(
            current_password=current_password,
            new_password=new_password,
            confirm_password=confirm_password,
        )
    except ValidationError as e:
        return RedirectResponse(url=f"{url}?error={quote('; '.join(form_errors(e)))}", status_code=303)

    if not accounts.change_password(db, user_id, body):
        return RedirectResponse(url=f"{url}?error={quote('Current password is incorrect.')}", status_code=303)
    return RedirectResponse(url=f"{url}?message={quote('Password updated.')}", status_code=303)
