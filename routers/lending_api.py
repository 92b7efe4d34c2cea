from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
import lending
from dependencies import get_db, get_sanity_checker
from filter_helpers import blank_to_none, normalize_limit, normalize_log_status, normalize_offset
from models import (
    IssueRequest,
    LogUpdate,
    ReturnRequest,
    SanityCheckRequest,
    SanityCheckResult,
    TransactionLog,
)
from sanity_check import PurposeChecker, screen_purpose

router = APIRouter()


@router.post("/issues", response_model=TransactionLog, status_code=201)
def issue_api(
    body: IssueRequest,
    db: Session = Depends(get_db),
    checker: PurposeChecker = Depends(get_sanity_checker),
):
    component = crud.get_component(db, body.component_id)
    if not component:
        raise HTTPException(status_code=404, detail="component not found")

    warning = screen_purpose(checker, body.purpose, component.name)
    if warning:
        raise HTTPException(status_code=422, detail=warning)

    return lending.issue_component(db, body)


@router.post("/logs/{log_id}/return", response_model=TransactionLog, status_code=201)
def return_api(
    log_id: str,
    body: Optional[ReturnRequest] = None,
    db: Session = Depends(get_db),
):
    return lending.return_borrow(db, log_id, body)


@router.post("/sanity-check", response_model=SanityCheckResult)
def sanity_check_api(
    body: SanityCheckRequest,
    checker: PurposeChecker = Depends(get_sanity_checker),
):
    warning = screen_purpose(checker, body.purpose, body.component_name)
    return SanityCheckResult(is_safe=warning is None, warning_message=warning or "")


@router.get("/logs", response_model=list[TransactionLog])
def list_logs_api(
    q: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = crud.DEFAULT_LOG_LIMIT,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return crud.list_logs(
        db,
        q=blank_to_none(q),
        status=normalize_log_status(status),
        limit=normalize_limit(limit),
        offset=normalize_offset(offset),
    )


@router.get("/logs/open", response_model=list[TransactionLog])
def open_borrows_api(
    component_id: Optional[str] = None,
    user_name: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return lending.list_open_borrows(
        db,
        component_id=blank_to_none(component_id),
        user_name=blank_to_none(user_name),
    )


@router.get("/logs/{log_id}", response_model=TransactionLog)
def get_log_api(
    log_id: str,
    db: Session = Depends(get_db),
):
    log = crud.get_log(db, log_id)
    if not log:
        raise HTTPException(status_code=404, detail="log not found")
    return log


@router.patch("/logs/{log_id}", response_model=TransactionLog)
def update_log_api(
    log_id: str,
    body: LogUpdate,
    db: Session = Depends(get_db),
):
    updated = crud.update_log(db, log_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="log not found")
    return updated


@router.delete("/logs/{log_id}", status_code=204)
def delete_log_api(
    log_id: str,
    db: Session = Depends(get_db),
):
    lending.delete_borrow(db, log_id)
    return None
