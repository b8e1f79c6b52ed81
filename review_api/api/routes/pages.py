from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["Pages"])


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def landing(request: Request) -> HTMLResponse:
    """Render the landing page."""
    templates = request.state.templates
    return templates.TemplateResponse(
        request,
        "landing.html",
        {
            "last_visit": request.state.last_visit,
            "user": request.state.session.get("user"),
        },
        status_code=200,
    )
