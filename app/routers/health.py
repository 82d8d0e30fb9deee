from fastapi import APIRouter, Depends
import logging

from app.dependencies import get_auth_gate, get_field_cipher
from app.domain.auth import AuthGate
from app.domain.encryption.field_cipher import FieldCipher
from app.domain.rbac.models import OperationPolicy
from app.middleware.access import require_access

router = APIRouter()
logger = logging.getLogger(__name__)

public = require_access(OperationPolicy.public())


@router.get("/health/live", dependencies=[Depends(public)])
async def liveness():
    """Liveness probe: Service is running."""
    return {"status": "ok", "checks": {"api": "ok"}}


@router.get("/health/ready", dependencies=[Depends(public)])
async def readiness(
    cipher: FieldCipher = Depends(get_field_cipher),
    gate: AuthGate = Depends(get_auth_gate),
):
    """Readiness probe: security components configured."""
    health = {"status": "ok", "checks": {}}

    # Encryption is optional; a disabled cipher is reported, not failed
    health["checks"]["encryption"] = "ok" if cipher.available else "disabled"
    health["checks"]["auth_mode"] = gate.mode.name

    return health
