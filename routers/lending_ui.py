from datetime import date, datetime, time, timezone
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

import crud
import lending
from cache import snapshots
from dependencies import get_db, get_sanity_checker
from filter_helpers import blank_to_none, form_errors
from models import MIN_PURPOSE_LENGTH, IssueRequest, ReturnRequest
from sanity_check import DEBOUNCE_MS, PurposeChecker, screen_purpose

router = APIRouter()


def _render_issue(request: Request, db: Session, *, form: dict, errors=(), warning=None, status_code=200):
    components = snapshots.get("components", lambda: crud.list_components(db))
    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "issue.html",
        {
            "components": [c for c in components if c.available_quantity > 0],
            "form": form,
            "errors": list(errors),
            "warning": warning,
            "min_purpose_length": MIN_PURPOSE_LENGTH,
            "debounce_ms": DEBOUNCE_MS,
            "today": date.today().isoformat(),
        },
        status_code=status_code,
    )


@router.get("/ui/issue", response_class=HTMLResponse)
def issue_ui(
    request: Request,
    component_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return _render_issue(request, db, form={"component_id": component_id or "", "quantity": 1})


@router.post("/ui/issue", response_class=HTMLResponse)
def issue_ui_post(
    request: Request,
    component_id: str = Form(""),
    quantity: int = Form(1),
    user_name: str = Form(""),
    contact_number: str = Form(""),
    purpose: str = Form(""),
    expected_return_date: str = Form(""),
    db: Session = Depends(get_db),
    checker: PurposeChecker = Depends(get_sanity_checker),
):
    form = {
        "component_id": component_id,
        "quantity": quantity,
        "user_name": user_name,
        "contact_number": contact_number,
        "purpose": purpose,
        "expected_return_date": expected_return_date,
    }
    try:
        body = IssueRequest(
            component_id=component_id,
            quantity=quantity,
            user_name=user_name,
            contact_number=blank_to_none(contact_number),
            purpose=purpose,
            expected_return_date=expected_return_date or None,  # type: ignore[arg-type]
        )
    except ValidationError as e:
        return _render_issue(request, db, form=form, errors=form_errors(e), status_code=422)

    component = crud.get_component(db, body.component_id)
    if not component:
        return _render_issue(request, db, form=form, errors=["Please select a component."], status_code=404)

    warning = screen_purpose(checker, body.purpose, component.name)
    if warning:
        return _render_issue(request, db, form=form, warning=warning, status_code=422)

    try:
        lending.issue_component(db, body)
    except lending.LendingError as e:
        return _render_issue(request, db, form=form, errors=[e.message], status_code=e.status_code)

    return RedirectResponse(url="/ui/logs", status_code=303)


@router.get("/ui/return", response_class=HTMLResponse)
def return_ui(
    request: Request,
    user_name: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    user_name = blank_to_none(user_name)
    open_borrows = snapshots.get("logs:open", lambda: lending.list_open_borrows(db))
    borrowers = snapshots.get("logs:borrowers", lambda: lending.list_borrowers(db))
    selected = [l for l in open_borrows if l.user_name == user_name] if user_name else []

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "return.html",
        {
            "borrowers": borrowers,
            "user_name": user_name or "",
            "borrows": selected,
            "today": date.today().isoformat(),
            "error": error,
        },
    )


@router.post("/ui/logs/{log_id}/return")
def return_ui_post(
    log_id: str,
    return_date: str = Form(""),
    remarks: str = Form(""),
    db: Session = Depends(get_db),
):
    returned_at = None
    if return_date:
        try:
            day = date.fromisoformat(return_date)
        except ValueError:
            return RedirectResponse(url=f"/ui/return?error={quote('Invalid return date.')}", status_code=303)
        returned_at = datetime.combine(day, time(12, 0), tzinfo=timezone.utc)

    body = ReturnRequest(return_date=returned_at, remarks=blank_to_none(remarks))
    try:
        lending.return_borrow(db, log_id, body)
    except lending.LendingError as e:
        return RedirectResponse(url=f"/ui/return?error={quote(e.message)}", status_code=303)
    return RedirectResponse(url="/ui/logs", status_code=303)
