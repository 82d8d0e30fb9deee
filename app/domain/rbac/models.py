"""RBAC models.

Normative types: Role, OperationPolicy, RoleDecision.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class Role(str, Enum):
    """Roles attached to an authenticated principal. No hierarchy is implied."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    CONTRACTOR = "CONTRACTOR"
    SUBCONTRACTOR = "SUBCONTRACTOR"
    BROKER = "BROKER"
    USER = "USER"


class AuthzReasonCode(str, Enum):
    """Stable RBAC reason codes."""
    NO_RESTRICTION = "RBAC_NO_RESTRICTION"
    ROLE_ALLOWED = "RBAC_ROLE_ALLOWED"
    ROLE_DENIED = "RBAC_ROLE_DENIED"
    EMPTY_ROLE_SET = "RBAC_EMPTY_ROLE_SET_DENIED"
    PRINCIPAL_MISSING = "RBAC_PRINCIPAL_MISSING"


@dataclass(frozen=True)
class OperationPolicy:
    """Access metadata declared for one protected operation.

    ``required_roles`` of None means no role restriction; an empty set means
    nobody may call the operation.
    """
    required_roles: Optional[FrozenSet[Role]] = None
    is_public: bool = False

    @classmethod
    def public(cls) -> "OperationPolicy":
        return cls(required_roles=None, is_public=True)

    @classmethod
    def authenticated(cls) -> "OperationPolicy":
        return cls(required_roles=None, is_public=False)

    @classmethod
    def roles(cls, *roles: Role) -> "OperationPolicy":
        return cls(required_roles=frozenset(Role(r) for r in roles), is_public=False)


@dataclass(frozen=True)
class RoleDecision:
    """Outcome of a role check."""
    allowed: bool
    reason_code: AuthzReasonCode
    principal_role: Optional[str] = None

    def to_audit_dict(self) -> Dict[str, Any]:
        """Convert to normalized audit fields."""
        return {
            "authz_decision": "ALLOW" if self.allowed else "DENY",
            "authz_reason_code": self.reason_code.value,
            "principal_role": self.principal_role,
        }
