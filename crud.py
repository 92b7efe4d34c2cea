from __future__ import annotations

from datetime import datetime, timezone

from typing import Optional
from uuid import uuid4

from sqlalchemy import select, delete, func, or_
from sqlalchemy.orm import Session, aliased

from cache import mark_dirty
from models import (
    Category,
    Component,
    ComponentIn,
    ComponentUpdate,
    InventorySummary,
    LogUpdate,
    TransactionLog,
)
from orm import CategoryORM, ComponentORM, TransactionLogORM

ALLOWED_SORTS = {
    "name": ComponentORM.name,
    "category": ComponentORM.category,
    "condition": ComponentORM.condition,
    "available_quantity": ComponentORM.available_quantity,
    "total_quantity": ComponentORM.total_quantity,
    "updated_at": ComponentORM.updated_at,
}

PLACEHOLDER_IMAGE = "https://placehold.co/100x100.png"
DEFAULT_LOG_LIMIT = 100

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def persist(db: Session, *, commit: bool, touched: tuple[str, ...] = ()) -> None:
    mark_dirty(db, *touched)
    if commit:
        db.commit()
    else:
        db.flush()

def derive_ai_hint(name: str, category: str) -> str:
    return f"{name.lower()} {category.lower()}".strip()

def _component_to_schema(c: ComponentORM) -> Component:
    return Component(
        id=c.id,
        name=c.name,
        category=c.category,
        total_quantity=c.total_quantity,
        available_quantity=c.available_quantity,
        condition=c.condition,  # type: ignore[arg-type]
        description=c.description,
        ai_hint=c.ai_hint,
        image_url=c.image_url,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )

def log_to_schema(l: TransactionLogORM) -> TransactionLog:
    return TransactionLog(
        id=l.id,
        component_id=l.component_id,
        component_name=l.component_name,
        user_name=l.user_name,
        contact_number=l.contact_number,
        quantity=l.quantity,
        status=l.status,  # type: ignore[arg-type]
        issue_date=l.issue_date,
        return_date=l.return_date,
        expected_return_date=l.expected_return_date,
        purpose=l.purpose,
        remarks=l.remarks,
        borrow_id=l.borrow_id,
        schema_version=l.schema_version,
    )


# ---------- Component ----------
def get_component(db: Session, component_id: str) -> Optional[Component]:
    row = db.get(ComponentORM, component_id)
    return _component_to_schema(row) if row else None


def list_components(db: Session) -> list[Component]:
    rows = db.execute(select(ComponentORM).order_by(ComponentORM.name.asc())).scalars().all()
    return [_component_to_schema(c) for c in rows]


def create_component(db: Session, body: ComponentIn, *, commit: bool = True) -> Component:
    now = utcnow()
    name = body.name.strip()
    category = body.category.strip()

    c = ComponentORM(
        id=str(uuid4()),
        name=name,
        category=category,
        total_quantity=body.quantity,
        available_quantity=body.quantity,
        condition=body.condition,
        description=body.description.strip(),
        ai_hint=derive_ai_hint(name, category),
        image_url=PLACEHOLDER_IMAGE,
        created_at=now,
        updated_at=now,
    )
    db.add(c)
    persist(db, commit=commit, touched=("components",))
    if commit:
        db.refresh(c)
    return _component_to_schema(c)


def update_component(
    db: Session, component_id: str, body: ComponentUpdate, *, commit: bool = True
) -> Optional[Component]:
    c = db.get(ComponentORM, component_id)
    if not c:
        return None

    data = body.model_dump(exclude_unset=True, exclude_none=True)
    new_total = data.pop("total_quantity", None)
    for k, v in data.items():
        setattr(c, k, v.strip() if isinstance(v, str) else v)

    if new_total is not None and new_total != c.total_quantity:
        # keep what is out on loan out on loan
        borrowed = c.total_quantity - c.available_quantity
        c.total_quantity = new_total
        c.available_quantity = max(0, new_total - borrowed)

    c.ai_hint = derive_ai_hint(c.name, c.category)
    c.updated_at = utcnow()

    persist(db, commit=commit, touched=("components",))
    if commit:
        db.refresh(c)
    return _component_to_schema(c)


def delete_component(db: Session, component_id: str, *, commit: bool = True) -> bool:
    c = db.get(ComponentORM, component_id)
    if not c:
        return False

    # refuse while any of it is out on loan
    if count_open_borrows(db, component_id=component_id) > 0:
        return False

    db.execute(delete(ComponentORM).where(ComponentORM.id == component_id))
    persist(db, commit=commit, touched=("components",))
    return True


def build_components_query(
    q: str | None, category: str | None, condition: str | None, availability: str | None
):
    stmt = select(ComponentORM)

    if q:
        like = f"%{q}%"
        stmt = stmt.where(
            or_(
                ComponentORM.name.ilike(like),
                ComponentORM.description.ilike(like),
                ComponentORM.ai_hint.ilike(like),
            )
        )
    if category:
        stmt = stmt.where(ComponentORM.category == category)

    if condition:
        stmt = stmt.where(ComponentORM.condition == condition)

    if availability == "available":
        stmt = stmt.where(ComponentORM.available_quantity > 0)
    elif availability == "borrowed":
        stmt = stmt.where(ComponentORM.available_quantity < ComponentORM.total_quantity)

    return stmt

def count_components_filtered(
    db: Session,
    *,
    q: str | None,
    category: str | None,
    condition: str | None,
    availability: str | None,
) -> int:
    stmt = build_components_query(q, category, condition, availability)
    count_stmt = select(func.count()).select_from(stmt.subquery())
    return int(db.execute(count_stmt).scalar_one())

def components_meta(
    db: Session,
    *,
    q: str | None,
    category: str | None,
    condition: str | None,
    availability: str | None,
    limit: int,
    offset: int,
) -> dict:
    total = count_components_filtered(
        db, q=q, category=category, condition=condition, availability=availability
    )
    total_pages = max(1, (total + limit - 1) // limit)

    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "total_pages": total_pages,
    }

def list_components_filtered(
    db: Session,
    *,
    q: str | None,
    category: str | None,
    condition: str | None,
    availability: str | None,
    sort: str,
    order: str,
    limit: int,
    offset: int,
) -> list[Component]:
    stmt = build_components_query(q, category, condition, availability)

    col = ALLOWED_SORTS.get(sort, ComponentORM.name)
    desc = (order or "").lower() == "desc"
    stmt = stmt.order_by(col.desc() if desc else col.asc(), ComponentORM.id.asc())

    stmt = stmt.limit(limit).offset(offset)
    rows = db.execute(stmt).scalars().all()
    return [_component_to_schema(c) for c in rows]


# ---------- Category ----------
def list_categories(db: Session) -> list[Category]:
    rows = db.execute(select(CategoryORM).order_by(CategoryORM.name.asc())).scalars().all()
    return [Category(id=c.id, name=c.name) for c in rows]


def get_category(db: Session, category_id: str) -> Optional[Category]:
    c = db.get(CategoryORM, category_id)
    return Category(id=c.id, name=c.name) if c else None


def category_name_exists(db: Session, name: str, exclude_category_id: Optional[str] = None) -> bool:
    stmt = select(CategoryORM.id).where(CategoryORM.name == name.strip())
    if exclude_category_id:
        stmt = stmt.where(CategoryORM.id != exclude_category_id)
    return db.execute(stmt).first() is not None


def create_category(db: Session, *, name: str, commit: bool = True) -> Optional[Category]:
    name = (name or "").strip()
    if not name or category_name_exists(db, name):
        return None

    now = utcnow()
    c = CategoryORM(id=str(uuid4()), name=name, created_at=now, updated_at=now)
    db.add(c)
    persist(db, commit=commit, touched=("categories",))
    return Category(id=c.id, name=c.name)


def rename_category(
    db: Session,
    *,
    category_id: str,
    new_name: str,
    cascade_components: bool = True,
    commit: bool = True,
) -> bool:
    new_name = (new_name or "").strip()
    if not new_name:
        return False

    c = db.get(CategoryORM, category_id)
    if not c:
        return False

    if category_name_exists(db, new_name, exclude_category_id=category_id):
        return False

    old_name = c.name
    now = utcnow()
    c.name = new_name
    c.updated_at = now

    touched: tuple[str, ...] = ("categories",)
    if cascade_components and old_name != new_name:
        rows = db.execute(
            select(ComponentORM).where(ComponentORM.category == old_name)
        ).scalars().all()
        for comp in rows:
            comp.category = new_name
            comp.ai_hint = derive_ai_hint(comp.name, new_name)
            comp.updated_at = now
        touched += ("components",)

    persist(db, commit=commit, touched=touched)
    return True


def delete_category(db: Session, *, category_id: str, commit: bool = True) -> bool:
    c = db.get(CategoryORM, category_id)
    if not c:
        return False

    # components reference the category by name
    used = db.execute(
        select(func.count()).select_from(ComponentORM).where(ComponentORM.category == c.name)
    ).scalar_one()
    if int(used) > 0:
        return False

    db.execute(delete(CategoryORM).where(CategoryORM.id == category_id))
    persist(db, commit=commit, touched=("categories",))
    return True


# ---------- Log ----------
def get_log(db: Session, log_id: str) -> Optional[TransactionLog]:
    row = db.get(TransactionLogORM, log_id)
    return log_to_schema(row) if row else None


def list_logs(
    db: Session,
    *,
    q: str | None = None,
    status: str | None = None,
    limit: int = DEFAULT_LOG_LIMIT,
    offset: int = 0,
) -> list[TransactionLog]:
    stmt = select(TransactionLogORM)
    if q:
        like = f"%{q}%"
        stmt = stmt.where(
            or_(
                TransactionLogORM.component_name.ilike(like),
                TransactionLogORM.user_name.ilike(like),
            )
        )
    if status:
        stmt = stmt.where(TransactionLogORM.status == status)

    # a Returned row keeps its borrow's issue_date; order it by when it happened
    happened = func.coalesce(TransactionLogORM.return_date, TransactionLogORM.issue_date)
    stmt = stmt.order_by(happened.desc(), TransactionLogORM.id.asc()).limit(limit).offset(offset)
    rows = db.execute(stmt).scalars().all()
    return [log_to_schema(l) for l in rows]


def recent_logs(db: Session, limit: int = 5) -> list[TransactionLog]:
    return list_logs(db, limit=limit)


def open_borrows_query(*, component_id: str | None = None, user_name: str | None = None):
    closing = aliased(TransactionLogORM)
    stmt = select(TransactionLogORM).where(
        TransactionLogORM.status == "Borrowed",
        ~select(closing.id).where(closing.borrow_id == TransactionLogORM.id).exists(),
    )
    if component_id:
        stmt = stmt.where(TransactionLogORM.component_id == component_id)
    if user_name:
        stmt = stmt.where(TransactionLogORM.user_name == user_name)
    return stmt


def count_open_borrows(db: Session, *, component_id: str | None = None) -> int:
    stmt = open_borrows_query(component_id=component_id)
    return int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())


def update_log(db: Session, log_id: str, body: LogUpdate, *, commit: bool = True) -> Optional[TransactionLog]:
    l = db.get(TransactionLogORM, log_id)
    if not l:
        return None

    data = body.model_dump(exclude_unset=True)
    if "user_name" in data and data["user_name"] is None:
        data.pop("user_name")
    for k, v in data.items():
        setattr(l, k, v.strip() if isinstance(v, str) else v)

    persist(db, commit=commit, touched=("logs",))
    if commit:
        db.refresh(l)
    return log_to_schema(l)


# ---------- Summary ----------
def summarize(components: list[Component], open_borrows: int) -> InventorySummary:
    total = sum(c.total_quantity for c in components)
    available = sum(c.available_quantity for c in components)
    return InventorySummary(
        total=total,
        available=available,
        borrowed=total - available,
        components=len(components),
        open_borrows=open_borrows,
    )


def inventory_summary(db: Session) -> InventorySummary:
    return summarize(list_components(db), count_open_borrows(db))
