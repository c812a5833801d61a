"""
Request-scoped collaborators: the tenant the caller belongs to and the admin
gate. Both are read from headers set by the auth gateway in front of us.
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header

from app.core.config import ADMIN_ROLE
from app.core.errors import AuthorizationError


async def get_tenant_id(x_tenant_id: UUID = Header(..., description="Tenant of the authenticated session.")) -> UUID:
    return x_tenant_id


async def require_admin(
    x_user_role: Optional[str] = Header(None, description="Role of the authenticated user."),
    tenant_id: UUID = Depends(get_tenant_id),
) -> UUID:
    """Gates mutations. Runs before the route body, so a refusal has no side effects."""
    if (x_user_role or "").strip().lower() != ADMIN_ROLE:
        raise AuthorizationError("Admin access required.")
    return tenant_id
