"""FastAPI dependency enforcing the staff portal role table on HTTP routes."""

from fastapi import Header, HTTPException

from welfund.common.config import settings
from welfund.common.logging import logger
from welfund.common.portal import PORTAL_ROLES, authorized_portal_path, has_portal_access


def require_portal(ledger, *portals: str):
    """Build a dependency admitting active staff allowed on any of `portals`.

    The dependency returns the resolved `StaffUser`. Missing or unknown
    credentials are 401; a known user with the wrong role is 403 and the detail
    names the roles the route needs and where the user belongs instead.
    """

    for portal in portals:
        if portal not in PORTAL_ROLES:
            raise ValueError(f"unknown portal: {portal}")
    required = sorted({role for portal in portals for role in PORTAL_ROLES[portal]})

    def dependency(
        x_api_key: str | None = Header(default=None),
        x_staff_email: str | None = Header(default=None),
    ):
        if x_api_key != settings.api_key:
            raise HTTPException(status_code=401, detail="invalid API key")
        if not x_staff_email:
            raise HTTPException(status_code=401, detail="missing staff email")
        staff = ledger.get_staff_by_email(x_staff_email)
        if staff is None or not staff.is_active:
            raise HTTPException(status_code=401, detail="unknown staff user")
        if not any(has_portal_access(staff.staff_role, staff.email, portal) for portal in portals):
            logger.warning("portal_access_denied email=%s role=%s portals=%s", staff.email, staff.staff_role, portals)
            raise HTTPException(
                status_code=403,
                detail={
                    "message": f"Access denied. This portal requires {' or '.join(required)} role.",
                    "current_role": staff.staff_role,
                    "redirect_to": authorized_portal_path(staff.staff_role, staff.email),
                },
            )
        return staff

    return dependency
