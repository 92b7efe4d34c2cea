from datetime import date
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

import crud
import lending
from cache import snapshots
from dependencies import get_db
from filter_helpers import blank_to_none, form_errors, normalize_log_status
from models import LogUpdate

router = APIRouter()


@router.get("/ui/logs", response_class=HTMLResponse)
def logs_ui(
    request: Request,
    q: Optional[str] = None,
    status: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    status = normalize_log_status(status)
    logs = snapshots.get("logs", lambda: crud.list_logs(db))
    open_ids = {l.id for l in snapshots.get("logs:open", lambda: lending.list_open_borrows(db))}

    if status:
        logs = [l for l in logs if l.status == status]
    needle = (q or "").strip().lower()
    if needle:
        logs = [
            l for l in logs
            if needle in l.component_name.lower() or needle in l.user_name.lower()
        ]

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "logs.html",
        {
            "logs": logs,
            "open_ids": open_ids,
            "q": q or "",
            "status": (status or "all").lower(),
            "today": date.today().isoformat(),
            "error": error,
        },
    )


@router.get("/ui/logs/{log_id}/edit", response_class=HTMLResponse)
def edit_log_ui(
    request: Request,
    log_id: str,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    log = crud.get_log(db, log_id)
    if not log:
        raise HTTPException(status_code=404, detail="log not found")

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "log_edit.html",
        {"log": log, "error": error},
    )


@router.post("/ui/logs/{log_id}/edit")
def update_log_ui(
    log_id: str,
    user_name: str = Form(...),
    contact_number: str = Form(""),
    expected_return_date: str = Form(""),
    purpose: str = Form(""),
    remarks: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        body = LogUpdate(
            user_name=user_name,
            contact_number=blank_to_none(contact_number),
            expected_return_date=expected_return_date or None,  # type: ignore[arg-type]
            purpose=blank_to_none(purpose),
            remarks=blank_to_none(remarks),
        )
    except ValidationError as e:
        return RedirectResponse(
            url=f"/ui/logs/{log_id}/edit?error={quote('; '.join(form_errors(e)))}", status_code=303
        )

    if not crud.update_log(db, log_id, body):
        raise HTTPException(status_code=404, detail="log not found")
    return RedirectResponse(url="/ui/logs", status_code=303)


@router.post("/ui/logs/{log_id}/delete")
def delete_log_ui(
    log_id: str,
    db: Session = Depends(get_db),
):
    try:
        lending.delete_borrow(db, log_id)
    except lending.LendingError as e:
        return RedirectResponse(url=f"/ui/logs?error={quote(e.message)}", status_code=303)
    return RedirectResponse(url="/ui/logs", status_code=303)
