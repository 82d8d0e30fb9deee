"""Access control dependencies: authentication gate, then role guard."""
import logging
from typing import Optional

from fastapi import Depends, Request

from app.dependencies import get_auth_gate, get_settings
from app.domain.auth import AuthGate, AuthenticationError, Principal
from app.domain.rbac.models import OperationPolicy
from app.domain.rbac.role_guard import evaluate_roles
from app.errors import RBAC_DENIED, raise_api_error
from app.settings import Settings

logger = logging.getLogger(__name__)


def extract_token(request: Request, cookie_name: str = "access_token") -> Optional[str]:
    """Read the token from the auth cookie, falling back to the Authorization header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token

    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


def require_access(policy: OperationPolicy):
    """Dependency that enforces ``policy`` for one operation."""
    async def checker(
        request: Request,
        gate: AuthGate = Depends(get_auth_gate),
        config: Settings = Depends(get_settings),
    ) -> Optional[Principal]:
        session_principal = getattr(request.state, "principal", None)
        token = extract_token(request, config.JWT_COOKIE_NAME)

        try:
            principal = gate.authenticate(policy, token, session_principal)
        except AuthenticationError as e:
            request.state.authz_decision = {
                "authz_decision": "DENY",
                "authz_reason_code": e.code,
                "principal_role": None,
            }
            raise_api_error(e.code, 401, e.message)

        if policy.is_public:
            return principal

        decision = evaluate_roles(principal.role if principal else None, policy.required_roles)
        request.state.authz_decision = decision.to_audit_dict()

        if not decision.allowed:
            logger.info(
                f"Access denied: {request.method} {request.url.path} "
                f"principal={principal.id if principal else None} reason={decision.reason_code.value}"
            )
            raise_api_error(RBAC_DENIED, 403, "Insufficient role for this operation",
                            details={"reason": decision.reason_code.value})

        request.state.principal = principal
        return principal
    return checker
