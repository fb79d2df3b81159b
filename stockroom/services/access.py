"""Role to section permissions, checked by callers before mutating calls."""

from __future__ import annotations

from ..core.errors import NotAuthorized, reports_failures
from ..schemas.settings import CurrentUser

ALL_SECTIONS = (
    "dashboard",
    "items",
    "categories",
    "suppliers",
    "borrows",
    "reports",
    "history",
    "settings",
)

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "admin": ALL_SECTIONS,
    "staff": ("dashboard", "items", "categories", "suppliers", "borrows"),
    "coach": ("dashboard", "items", "categories", "suppliers", "borrows"),
}

# Unknown roles and anonymous callers only see the dashboard.
DEFAULT_SECTIONS = ("dashboard",)


def allowed_sections(role: str | None) -> tuple[str, ...]:
    return ROLE_PERMISSIONS.get(role or "", DEFAULT_SECTIONS)


def can_access(user: CurrentUser | None, section: str) -> bool:
    return section in allowed_sections(user.role if user else None)


@reports_failures
def check_access(user: CurrentUser | None, section: str) -> str:
    """Succeed with ``section`` or fail with ``not_authorized``."""

    if not can_access(user, section):
        raise NotAuthorized(
            "Your role cannot access this section.",
            details={"section": section, "role": user.role if user else None},
        )
    return section
