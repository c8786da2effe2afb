import hmac
import os
from typing import Optional

from fastapi import HTTPException


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_api_key(authorization: Optional[str], request_path: str) -> dict:
    """Bearer check against API_KEY. Open access when API_KEY is unset (local installs)."""
    expected = os.getenv("API_KEY")
    if not expected:
        return {"authenticated": False, "path": request_path}

    token = _bearer_token(authorization)
    if token is None or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Thiếu hoặc sai API key (Authorization: Bearer ...).")

    return {"authenticated": True, "path": request_path}


def require_admin_key(x_admin_key: Optional[str]) -> None:
    expected = os.getenv("ADMIN_API_KEY")
    if not expected:
        raise HTTPException(status_code=503, detail="ADMIN_API_KEY chưa được cấu hình trên máy chủ.")
    if not x_admin_key or not hmac.compare_digest(x_admin_key.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=403, detail="Chỉ quản trị viên mới được kích hoạt Premium.")
