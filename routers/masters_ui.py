from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

import crud
from cache import snapshots
from dependencies import get_db

router = APIRouter()


@router.get("/ui/categories", response_class=HTMLResponse)
def categories_ui(
    request: Request,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
):
    categories = snapshots.get("categories", lambda: crud.list_categories(db))
    if q:
        categories = [c for c in categories if q.strip().lower() in c.name.lower()]

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "categories.html",
        {"categories": categories, "q": q or ""},
    )


@router.post("/ui/categories")
def create_category_ui(
    name: str = Form(...),
    db: Session = Depends(get_db),
):
    crud.create_category(db, name=name)
    return RedirectResponse(url="/ui/categories", status_code=303)


@router.post("/ui/categories/{category_id}/rename")
def rename_category_ui(
    category_id: str,
    new_name: str = Form(...),
    cascade_components: str = Form(""),
    db: Session = Depends(get_db),
):
    cascade = cascade_components == "on"
    crud.rename_category(db, category_id=category_id, new_name=new_name, cascade_components=cascade)
    return RedirectResponse(url="/ui/categories", status_code=303)


@router.post("/ui/categories/{category_id}/delete")
def delete_category_ui(
    category_id: str,
    db: Session = Depends(get_db),
):
    crud.delete_category(db, category_id=category_id)
    return RedirectResponse(url="/ui/categories", status_code=303)
