from __future__ import annotations

from review_api.api.routes.auth import router as auth_router
from review_api.api.routes.employee import router as employee_router
from review_api.api.routes.health import router as health_router
from review_api.api.routes.pages import router as pages_router
from review_api.api.routes.review import router as review_router

__all__ = ["auth_router", "employee_router", "health_router", "pages_router", "review_router"]
