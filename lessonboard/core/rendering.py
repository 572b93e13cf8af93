"""Server-side page rendering with Jinja2.

Holds the template environment and the sidebar navigation shared by every
page.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@dataclass(frozen=True)
class NavItem:
    """Sidebar navigation entry."""

    title: str
    url: str
    icon: Optional[str] = None
    items: List["NavItem"] = field(default_factory=list)

    def is_active(self, path: str) -> bool:
        if self.url != "#" and (path == self.url or path.startswith(self.url + "/")):
            return True
        return any(item.is_active(path) for item in self.items)


SIDEBAR_NAV: List[NavItem] = [
    NavItem(
        "Dashboard",
        "/dashboard",
        icon="layout",
        items=[NavItem("Overview", "/dashboard")],
    ),
    NavItem(
        "Chat",
        "/chat",
        icon="message",
        items=[NavItem("问答", "/chat/qa")],
    ),
    NavItem(
        "视频观看",
        "/videos",
        icon="video",
        items=[NavItem("电力电子技术", "/videos/power-electronics")],
    ),
]


def render(
    request: Request,
    template_name: str,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
) -> Response:
    """
    Render a page template with the shared layout context.

    Args:
        request: Current request
        template_name: Template file under templates/
        context: Page-specific variables
        status_code: HTTP status of the response

    Returns:
        TemplateResponse
    """
    page_context: Dict[str, Any] = {
        "nav": SIDEBAR_NAV,
        "current_path": request.url.path,
        "user": getattr(request.state, "principal", None),
        "sidebar_open": request.query_params.get("sidebar") == "open",
    }
    if context:
        page_context.update(context)
    return templates.TemplateResponse(request, template_name, page_context, status_code=status_code)
