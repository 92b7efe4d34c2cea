from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

import crud
import lending
from cache import snapshots
from dependencies import get_db

router = APIRouter()
RECENT_ACTIVITY = 5


@router.get("/ui", response_class=HTMLResponse)
def dashboard_ui(request: Request, q: str = "", db: Session = Depends(get_db)):
    components = snapshots.get("components", lambda: crud.list_components(db))
    open_borrows = snapshots.get("logs:open", lambda: lending.list_open_borrows(db))
    recent = snapshots.get("logs:recent", lambda: crud.recent_logs(db, limit=RECENT_ACTIVITY))

    summary = crud.summarize(components, len(open_borrows))

    needle = q.strip().lower()
    if needle:
        components = [
            c for c in components
            if needle in c.name.lower() or needle in c.category.lower() or needle in c.ai_hint
        ]

    templates = request.app.state.templates
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "summary": summary,
            "components": components,
            "recent": recent,
            "q": q,
        },
    )
