"""Auth Domain Logic.

The gate runs in one of two modes chosen once at startup:

* simple: identity was established at login and is trusted for the session,
  so non-public operations pass without token verification. Used by the
  reduced deployment that has no credential store.
* full: every non-public operation must present a signed, unexpired token.
"""
import jwt
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from app.domain.rbac.models import OperationPolicy
from app.errors import AUTH_EXPIRED, AUTH_INVALID

logger = logging.getLogger(__name__)


class AuthConfigurationError(RuntimeError):
    """Raised at startup when token verification cannot be set up."""


class AuthenticationError(Exception):
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class Principal:
    """Already-authenticated caller identity."""
    id: Optional[str]
    email: Optional[str] = None
    role: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Principal":
        subject = claims.get("sub")
        if not subject:
            raise AuthenticationError(AUTH_INVALID, "Token has no subject")
        return cls(id=str(subject), email=claims.get("email"), role=claims.get("role"))


class JwtValidator:
    def __init__(self, secret: Optional[str], issuer: Optional[str] = None, audience: Optional[str] = None,
                 algorithm: str = "HS256"):
        if not secret:
            raise AuthConfigurationError("JWT_SECRET must be set when simple auth is disabled")
        self.secret = secret
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm

    def validate_token(self, token: str) -> Dict[str, Any]:
        """Validate JWT signature and expiry and return claims."""
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError(AUTH_EXPIRED, "Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            raise AuthenticationError(AUTH_INVALID, "Invalid token")
        except Exception as e:
            logger.error(f"Unexpected error during token validation: {e}")
            raise AuthenticationError(AUTH_INVALID, "Authentication failed")


@dataclass(frozen=True)
class SimpleAuthMode:
    default_role: Optional[str] = None
    name: str = "simple"


@dataclass(frozen=True)
class FullAuthMode:
    validator: JwtValidator
    name: str = "full"


AuthMode = Union[SimpleAuthMode, FullAuthMode]


def build_auth_mode(settings) -> AuthMode:
    """Select the auth mode from settings.

    Simple mode never constructs a validator, so a deployment without
    verification secrets still boots. In full mode a misconfigured validator
    is a startup error rather than a per-request rejection.
    """
    if settings.simple_auth_enabled:
        logger.info("Authentication mode: simple (tokens are not verified per request)")
        return SimpleAuthMode(default_role=settings.SIMPLE_AUTH_DEFAULT_ROLE)

    validator = JwtValidator(
        secret=settings.JWT_SECRET,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
        algorithm=settings.JWT_ALGORITHM,
    )
    logger.info("Authentication mode: full (signed tokens required)")
    return FullAuthMode(validator=validator)


class AuthGate:
    """Decides whether a call must carry a verified identity."""

    def __init__(self, mode: AuthMode):
        self.mode = mode

    def authenticate(
        self,
        policy: OperationPolicy,
        token: Optional[str] = None,
        session_principal: Optional[Principal] = None,
    ) -> Optional[Principal]:
        """Return the caller's principal or raise AuthenticationError.

        Public operations bypass the gate in both modes.
        """
        if policy.is_public:
            return session_principal

        if isinstance(self.mode, SimpleAuthMode):
            if session_principal is not None:
                return session_principal
            return Principal(id=None, role=self.mode.default_role)

        if not token:
            raise AuthenticationError(AUTH_INVALID, "Missing authentication token")

        claims = self.mode.validator.validate_token(token)
        return Principal.from_claims(claims)
