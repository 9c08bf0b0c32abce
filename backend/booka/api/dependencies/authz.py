# backend/booka/api/dependencies/authz.py
"""
Authorization helpers for the booking API.

Identity is established upstream by the auth gateway, which forwards the
tenant, user and role as headers. Each route declares an
``OperationPolicy`` and ``require_policy`` enforces it, denying by default.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, FrozenSet, Optional

from fastapi import Header

from ...core.enums import RoleName
from ...core.exceptions import ForbiddenException, UnauthorizedException

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"
USER_HEADER = "X-User-ID"
ROLE_HEADER = "X-User-Role"


@dataclass(frozen=True)
class TenantContext:
    """Caller identity forwarded by the gateway."""

    tenant_id: Optional[str]
    user_id: str
    role: RoleName


@dataclass(frozen=True)
class OperationPolicy:
    """Roles allowed to run an operation, and whether it needs a tenant."""

    roles: FrozenSet[RoleName]
    tenant_scoped: bool = True

    def allows(self, role: RoleName) -> bool:
        return role in self.roles


STAFF_ROLES = frozenset({RoleName.OWNER, RoleName.ADMIN, RoleName.STAFF})

MANAGE_RESERVATIONS = OperationPolicy(roles=STAFF_ROLES)
VIEW_RESERVATIONS = OperationPolicy(roles=STAFF_ROLES)
INITIATE_DEPOSIT = OperationPolicy(roles=STAFF_ROLES | {RoleName.SYSTEM})


def _norm(value: Optional[str]) -> str:
    return (value or "").strip()


def require_policy(policy: OperationPolicy) -> Callable[..., TenantContext]:
    """Build a dependency that resolves the caller and enforces ``policy``."""

    def checker(
        x_tenant_id: Optional[str] = Header(default=None, alias=TENANT_HEADER),
        x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER),
        x_user_role: Optional[str] = Header(default=None, alias=ROLE_HEADER),
    ) -> TenantContext:
        user_id = _norm(x_user_id)
        role_value = _norm(x_user_role).lower()
        tenant_id = _norm(x_tenant_id) or None

        if not user_id or not role_value:
            raise UnauthorizedException(
                "Authentication required", code="AUTHENTICATION_REQUIRED"
            ).to_http_exception()
        try:
            role = RoleName(role_value)
        except ValueError:
            logger.warning(
                "Rejected request with unknown role",
                extra={"user_id": user_id, "role": role_value},
            )
            raise ForbiddenException("Forbidden", code="UNKNOWN_ROLE").to_http_exception()

        if policy.tenant_scoped and tenant_id is None:
            raise UnauthorizedException(
                "Tenant context required", code="TENANT_REQUIRED"
            ).to_http_exception()
        if not policy.allows(role):
            logger.warning(
                "Role not permitted for operation",
                extra={"user_id": user_id, "role": role.value, "tenant_id": tenant_id},
            )
            raise ForbiddenException(
                "Forbidden", code="ROLE_NOT_PERMITTED", details={"role": role.value}
            ).to_http_exception()
        return TenantContext(tenant_id=tenant_id, user_id=user_id, role=role)

    return checker
