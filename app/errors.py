from fastapi import HTTPException
from typing import Optional, Dict, Any

AUTH_INVALID = "AUTH_INVALID"
AUTH_EXPIRED = "AUTH_EXPIRED"
RBAC_DENIED = "RBAC_DENIED"


def raise_api_error(
    code: str,
    status_code: int,
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Raise a standardized HTTPException.

    Args:
        code: Error code (AUTH_INVALID, RBAC_DENIED, etc.)
        status_code: HTTP Status Code (401, 403, etc.)
        message: Human readable message
        details: Optional extra details
    """
    error_body: Dict[str, Any] = {
        "code": code,
        "message": message
    }
    if details:
        error_body["details"] = details

    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    raise HTTPException(status_code=status_code, detail={"error": error_body}, headers=headers)
