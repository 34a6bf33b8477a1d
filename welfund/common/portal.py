"""Role lookup table deciding which staff portals a user may open."""

from welfund.common.config import settings


PORTAL_ROLES: dict[str, tuple[str, ...]] = {
    "admin": ("Admin", "Treasurer"),
    "secretary": ("Secretary",),
    "coordinator": ("Area Coordinator", "General Coordinator"),
    "auditor": ("Auditor",),
}

STAFF_ROLES: tuple[str, ...] = tuple(role for roles in PORTAL_ROLES.values() for role in roles)

_PORTAL_PATHS = {
    "Admin": "/admin",
    "Treasurer": "/admin",
    "Secretary": "/secretary",
    "Area Coordinator": "/coordinator",
    "General Coordinator": "/coordinator",
    "Auditor": "/auditor",
}


def is_super_admin(email: str | None) -> bool:
    # An empty setting must never match an empty email.
    return bool(settings.super_admin_email) and email == settings.super_admin_email


def has_portal_access(role: str | None, email: str | None, portal: str) -> bool:
    """Return True when `role` is allowed on `portal` or `email` is the super admin."""

    if portal not in PORTAL_ROLES:
        raise ValueError(f"unknown portal: {portal}")
    return is_super_admin(email) or role in PORTAL_ROLES[portal]


def accessible_portals(role: str | None, email: str | None) -> list[str]:
    if is_super_admin(email):
        return list(PORTAL_ROLES)
    return [portal for portal, roles in PORTAL_ROLES.items() if role in roles]


def authorized_portal_path(role: str | None, email: str | None = None) -> str:
    """Landing path for a user, used to redirect after a denied portal visit."""

    if is_super_admin(email):
        return "/admin"
    return _PORTAL_PATHS.get(role or "", "/portal-login")
