"""Issue and return workflow.

Issuing decrements ``available_quantity`` and appends a Borrowed row;
returning increments it and appends a Returned row whose ``borrow_id``
points at the borrow. Rows are never rewritten by the workflow, so the log
is the full history. Both writes of one operation share a transaction.
An open borrow entered by mistake can be deleted, which puts its quantity
back; returned loans cannot.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from crud import log_to_schema, open_borrows_query, persist, utcnow
from models import IssueRequest, ReturnRequest, TransactionLog
from orm import LOG_SCHEMA_VERSION, ComponentORM, TransactionLogORM

logger = logging.getLogger("app.lending")

TOUCHED = ("components", "logs")


class LendingError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ComponentNotFound(LendingError):
    status_code = 404

    def __init__(self, component_id: str):
        super().__init__("component not found")
        self.component_id = component_id


class InsufficientQuantity(LendingError):
    status_code = 409

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"requested quantity {requested} exceeds available quantity {available}"
        )
        self.requested = requested
        self.available = available


class LogNotFound(LendingError):
    status_code = 404

    def __init__(self, log_id: str):
        super().__init__("log not found")
        self.log_id = log_id


class NotABorrow(LendingError):
    status_code = 409

    def __init__(self, log_id: str):
        super().__init__("only a Borrowed log can be returned")
        self.log_id = log_id


class AlreadyReturned(LendingError):
    status_code = 409

    def __init__(self, log_id: str):
        super().__init__("this borrow has already been returned")
        self.log_id = log_id


class LogIsHistory(LendingError):
    status_code = 409

    def __init__(self, log_id: str):
        super().__init__("returned loans are kept as history and cannot be deleted")
        self.log_id = log_id


def _restore_quantity(db: Session, component_id: str, quantity: int, now: datetime) -> None:
    restored = ComponentORM.available_quantity + quantity

    # capped: total may have been cut below the amount on loan
    db.execute(
        update(ComponentORM)
        .where(ComponentORM.id == component_id)
        .values(
            available_quantity=case(
                (restored > ComponentORM.total_quantity, ComponentORM.total_quantity),
                else_=restored,
            ),
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )


def issue_component(
    db: Session,
    body: IssueRequest,
    *,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> TransactionLog:
    c = db.get(ComponentORM, body.component_id)
    if not c:
        raise ComponentNotFound(body.component_id)
    if body.quantity > c.available_quantity:
        raise InsufficientQuantity(body.quantity, c.available_quantity)

    now = now or utcnow()

    # guarded decrement: a concurrent issuer that got there first makes this a no-op
    result = db.execute(
        update(ComponentORM)
        .where(
            ComponentORM.id == body.component_id,
            ComponentORM.available_quantity >= body.quantity,
        )
        .values(
            available_quantity=ComponentORM.available_quantity - body.quantity,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.refresh(c)
        raise InsufficientQuantity(body.quantity, c.available_quantity)

    log = TransactionLogORM(
        id=str(uuid4()),
        component_id=c.id,
        component_name=c.name,
        user_name=body.user_name,
        contact_number=(body.contact_number or "").strip() or None,
        quantity=body.quantity,
        status="Borrowed",
        issue_date=now,
        return_date=None,
        expected_return_date=body.expected_return_date,
        purpose=body.purpose,
        remarks=None,
        borrow_id=None,
        schema_version=LOG_SCHEMA_VERSION,
    )
    db.add(log)

    try:
        persist(db, commit=commit, touched=TOUCHED)
    except Exception:
        db.rollback()
        raise

    db.expire(c)
    logger.info(
        "issued component_id=%s quantity=%s borrower=%s log_id=%s",
        c.id,
        body.quantity,
        body.user_name,
        log.id,
    )
    return log_to_schema(log)


def return_borrow(
    db: Session,
    log_id: str,
    body: Optional[ReturnRequest] = None,
    *,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> TransactionLog:
    body = body or ReturnRequest()

    borrow = db.get(TransactionLogORM, log_id)
    if not borrow:
        raise LogNotFound(log_id)
    if borrow.status != "Borrowed":
        raise NotABorrow(log_id)
    if get_closing_return(db, log_id) is not None:
        raise AlreadyReturned(log_id)

    c = db.get(ComponentORM, borrow.component_id)
    if not c:
        raise ComponentNotFound(borrow.component_id)

    now = now or utcnow()
    _restore_quantity(db, c.id, borrow.quantity, now)

    returned = TransactionLogORM(
        id=str(uuid4()),
        component_id=borrow.component_id,
        component_name=borrow.component_name,
        user_name=borrow.user_name,
        contact_number=borrow.contact_number,
        quantity=borrow.quantity,
        status="Returned",
        issue_date=borrow.issue_date,
        return_date=body.return_date or now,
        expected_return_date=borrow.expected_return_date,
        purpose=borrow.purpose,
        remarks=(body.remarks or "").strip() or None,
        borrow_id=borrow.id,
        schema_version=LOG_SCHEMA_VERSION,
    )
    db.add(returned)

    try:
        persist(db, commit=commit, touched=TOUCHED)
    except IntegrityError:
        # lost a race with another return of the same borrow
        db.rollback()
        raise AlreadyReturned(log_id)
    except Exception:
        db.rollback()
        raise

    db.expire(c)
    logger.info(
        "returned component_id=%s quantity=%s borrower=%s borrow_id=%s log_id=%s",
        borrow.component_id,
        borrow.quantity,
        borrow.user_name,
        borrow.id,
        returned.id,
    )
    return log_to_schema(returned)


def delete_borrow(
    db: Session,
    log_id: str,
    *,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> None:
    """Delete an open Borrowed row and put its quantity back on the shelf.

    Returned rows, and borrows that have one, are history and stay.
    """
    borrow = db.get(TransactionLogORM, log_id)
    if not borrow:
        raise LogNotFound(log_id)
    if borrow.status != "Borrowed":
        raise LogIsHistory(log_id)

    closing = aliased(TransactionLogORM)
    # guarded: a return committed since the read above makes this a no-op
    result = db.execute(
        delete(TransactionLogORM)
        .where(
            TransactionLogORM.id == log_id,
            ~select(closing.id).where(closing.borrow_id == log_id).exists(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise LogIsHistory(log_id)

    component_id, quantity = borrow.component_id, borrow.quantity
    db.expunge(borrow)
    _restore_quantity(db, component_id, quantity, now or utcnow())

    try:
        persist(db, commit=commit, touched=TOUCHED)
    except Exception:
        db.rollback()
        raise

    logger.info(
        "deleted borrow log_id=%s component_id=%s restored=%s",
        log_id,
        component_id,
        quantity,
    )


def get_closing_return(db: Session, borrow_id: str) -> Optional[TransactionLog]:
    row = db.execute(
        select(TransactionLogORM).where(TransactionLogORM.borrow_id == borrow_id)
    ).scalars().first()
    return log_to_schema(row) if row else None


def is_open(db: Session, borrow_id: str) -> bool:
    borrow = db.get(TransactionLogORM, borrow_id)
    if not borrow or borrow.status != "Borrowed":
        return False
    return get_closing_return(db, borrow_id) is None


def list_open_borrows(
    db: Session,
    *,
    component_id: Optional[str] = None,
    user_name: Optional[str] = None,
) -> list[TransactionLog]:
    stmt = open_borrows_query(component_id=component_id, user_name=user_name).order_by(
        TransactionLogORM.issue_date.desc(), TransactionLogORM.id.asc()
    )
    rows = db.execute(stmt).scalars().all()
    return [log_to_schema(l) for l in rows]


def list_borrowers(db: Session) -> list[str]:
    """Distinct borrower names with something still out, for the return form."""
    sub = open_borrows_query().subquery()
    rows = db.execute(select(sub.c.user_name).distinct().order_by(sub.c.user_name.asc())).all()
    return [r[0] for r in rows]
