"""Role guard: a pure decision from (principal role, declared roles)."""
from typing import Iterable, Optional, Union

from app.domain.rbac.models import AuthzReasonCode, Role, RoleDecision


def evaluate_roles(
    principal_role: Optional[Union[Role, str]],
    required_roles: Optional[Iterable[Role]],
) -> RoleDecision:
    """Decide whether a principal with ``principal_role`` may proceed.

    - no declared roles (None): allow
    - declared but empty: deny everyone
    - otherwise: allow iff the principal's role is in the declared set
    """
    role_value = principal_role.value if isinstance(principal_role, Role) else principal_role

    if required_roles is None:
        return RoleDecision(True, AuthzReasonCode.NO_RESTRICTION, role_value)

    allowed_values = {r.value if isinstance(r, Role) else r for r in required_roles}
    if not allowed_values:
        return RoleDecision(False, AuthzReasonCode.EMPTY_ROLE_SET, role_value)

    if not role_value:
        return RoleDecision(False, AuthzReasonCode.PRINCIPAL_MISSING, role_value)

    if role_value in allowed_values:
        return RoleDecision(True, AuthzReasonCode.ROLE_ALLOWED, role_value)
    return RoleDecision(False, AuthzReasonCode.ROLE_DENIED, role_value)


def has_required_role(
    principal_role: Optional[Union[Role, str]],
    required_roles: Optional[Iterable[Role]],
) -> bool:
    return evaluate_roles(principal_role, required_roles).allowed
