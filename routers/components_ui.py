from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

import crud
from cache import snapshots
from dependencies import get_db
from filter_helpers import (
    VALID_CONDITIONS,
    blank_to_none,
    form_errors,
    normalize_availability,
    normalize_condition,
    normalize_order,
    normalize_sort,
)
from models import ComponentIn, ComponentUpdate

router = APIRouter()
PAGE_SIZE = 50
CONDITIONS = ("New", "Good", "Fair", "Poor")


def _back(url: str, error: Optional[str] = None) -> RedirectResponse:
    if error:
        url = f"{url}?error={quote(error)}"
    return RedirectResponse(url=url, status_code=303)


@router.get("/ui/components", response_class=HTMLResponse)
def components_ui(
    request: Request,
    q: Optional[str] = None,
    category: Optional[str] = None,
    condition: Optional[str] = None,
    availability: Optional[str] = None,
    sort: str = "name",
    order: str = "asc",
    page: int = 1,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    if page < 1:
        page = 1

    q = blank_to_none(q)
    category = blank_to_none(category)
    condition = normalize_condition(condition)
    availability = normalize_availability(availability)
    sort = normalize_sort(sort)
    order = normalize_order(order)

    meta = crud.components_meta(
        db,
        q=q,
        category=category,
        condition=condition,
        availability=availability,
        limit=PAGE_SIZE,
        offset=(page - 1) * PAGE_SIZE,
    )
    total_pages = meta["total_pages"]
    if page > total_pages:
        page = total_pages

    components = crud.list_components_filtered(
        db,
        q=q,
        category=category,
        condition=condition,
        availability=availability,
        sort=sort,
        order=order,
        limit=PAGE_SIZE,
        offset=(page - 1) * PAGE_SIZE,
    )
    categories = snapshots.get("categories", lambda: crud.list_categories(db))

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "components.html",
        {
            "components": components,
            "categories": categories,
            "conditions": CONDITIONS,
            "q": q or "",
            "category": category or "",
            "condition": condition or "",
            "availability": availability or "",
            "sort": sort,
            "order": order,
            "page": page,
            "total_pages": total_pages,
            "total": meta["total"],
            "error": error,
        },
    )


@router.post("/ui/components")
def create_component_ui(
    name: str = Form(...),
    category: str = Form(...),
    quantity: int = Form(1),
    condition: str = Form("Good"),
    description: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        body = ComponentIn(
            name=name,
            category=category,
            quantity=quantity,
            condition=condition if condition in VALID_CONDITIONS else "Good",  # type: ignore[arg-type]
            description=description,
        )
    except ValidationError as e:
        return _back("/ui/components", "; ".join(form_errors(e)))

    crud.create_component(db, body)
    return _back("/ui/components")


@router.get("/ui/components/{component_id}/edit", response_class=HTMLResponse)
def edit_component_ui(
    request: Request,
    component_id: str,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    component = crud.get_component(db, component_id)
    if not component:
        raise HTTPException(status_code=404, detail="component not found")

    categories = snapshots.get("categories", lambda: crud.list_categories(db))

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "component_edit.html",
        {
            "component": component,
            "categories": categories,
            "conditions": CONDITIONS,
            "error": error,
        },
    )


@router.post("/ui/components/{component_id}/edit")
def update_component_ui(
    component_id: str,
    name: str = Form(...),
    category: str = Form(...),
    total_quantity: int = Form(...),
    condition: str = Form("Good"),
    description: str = Form(""),
    db: Session = Depends(get_db),
):
    edit_url = f"/ui/components/{component_id}/edit"
    try:
        body = ComponentUpdate(
            name=name,
            category=category,
            total_quantity=total_quantity,
            condition=condition if condition in VALID_CONDITIONS else None,  # type: ignore[arg-type]
            description=description,
        )
    except ValidationError as e:
        return _back(edit_url, "; ".join(form_errors(e)))

    if not crud.update_component(db, component_id, body):
        raise HTTPException(status_code=404, detail="component not found")
    return _back("/ui/components")


@router.post("/ui/components/{component_id}/delete")
def delete_component_ui(
    component_id: str,
    db: Session = Depends(get_db),
):
    if not crud.delete_component(db, component_id):
        return _back("/ui/components", "Component could not be deleted while items are out on loan.")
    return _back("/ui/components")
