"""Jinja2 template environment for HTML responses.

Pages extend ``layout.html``, which holds the shared document skeleton.
"""

from __future__ import annotations

from pathlib import Path

from fastapi.templating import Jinja2Templates


def build_templates(directory: Path) -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(directory))
    templates.env.globals["app_name"] = "Employee Review"
    return templates
