from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_db
from filter_helpers import (
    blank_to_none,
    normalize_availability,
    normalize_condition,
    normalize_limit,
    normalize_offset,
    normalize_order,
    normalize_sort,
)
from models import (
    Category,
    CategoryIn,
    Component,
    ComponentIn,
    ComponentsMeta,
    ComponentUpdate,
    InventorySummary,
)

router = APIRouter()


@router.get("/components", response_model=list[Component])
def list_components_api(
    q: Optional[str] = None,
    category: Optional[str] = None,
    condition: Optional[str] = None,
    availability: Optional[str] = None,
    sort: str = "name",
    order: str = "asc",
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return crud.list_components_filtered(
        db,
        q=blank_to_none(q),
        category=blank_to_none(category),
        condition=normalize_condition(condition),
        availability=normalize_availability(availability),
        sort=normalize_sort(sort),
        order=normalize_order(order),
        limit=normalize_limit(limit),
        offset=normalize_offset(offset),
    )


@router.get("/components/meta", response_model=ComponentsMeta)
def components_meta_api(
    q: Optional[str] = None,
    category: Optional[str] = None,
    condition: Optional[str] = None,
    availability: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    meta = crud.components_meta(
        db,
        q=blank_to_none(q),
        category=blank_to_none(category),
        condition=normalize_condition(condition),
        availability=normalize_availability(availability),
        limit=normalize_limit(limit),
        offset=normalize_offset(offset),
    )
    return ComponentsMeta(**meta)


@router.post("/components", response_model=Component, status_code=201)
def create_component_api(
    body: ComponentIn,
    db: Session = Depends(get_db),
):
    return crud.create_component(db, body)


@router.get("/components/{component_id}", response_model=Component)
def get_component_api(
    component_id: str,
    db: Session = Depends(get_db),
):
    component = crud.get_component(db, component_id)
    if not component:
        raise HTTPException(status_code=404, detail="component not found")
    return component


@router.patch("/components/{component_id}", response_model=Component)
def update_component_api(
    component_id: str,
    body: ComponentUpdate,
    db: Session = Depends(get_db),
):
    updated = crud.update_component(db, component_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="component not found")
    return updated


@router.delete("/components/{component_id}", status_code=204)
def delete_component_api(
    component_id: str,
    db: Session = Depends(get_db),
):
    if not crud.get_component(db, component_id):
        raise HTTPException(status_code=404, detail="component not found")
    if not crud.delete_component(db, component_id):
        raise HTTPException(status_code=409, detail="component has items out on loan")
    return None


@router.get("/categories", response_model=list[Category])
def list_categories_api(db: Session = Depends(get_db)):
    return crud.list_categories(db)


@router.post("/categories", response_model=Category, status_code=201)
def create_category_api(
    body: CategoryIn,
    db: Session = Depends(get_db),
):
    created = crud.create_category(db, name=body.name)
    if not created:
        raise HTTPException(status_code=409, detail="category already exists")
    return created


@router.patch("/categories/{category_id}", response_model=Category)
def rename_category_api(
    category_id: str,
    body: CategoryIn,
    db: Session = Depends(get_db),
):
    if not crud.rename_category(db, category_id=category_id, new_name=body.name):
        if not crud.get_category(db, category_id):
            raise HTTPException(status_code=404, detail="category not found")
        raise HTTPException(status_code=409, detail="category already exists")
    return Category(id=category_id, name=body.name.strip())


@router.delete("/categories/{category_id}", status_code=204)
def delete_category_api(
    category_id: str,
    db: Session = Depends(get_db),
):
    if not crud.get_category(db, category_id):
        raise HTTPException(status_code=404, detail="category not found")
    if not crud.delete_category(db, category_id=category_id):
        raise HTTPException(status_code=409, detail="category is in use")
    return None


@router.get("/summary", response_model=InventorySummary)
def summary_api(db: Session = Depends(get_db)):
    return crud.inventory_summary(db)
