import uuid

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.config import settings
from app.core.security import decode_jwt

bearer = HTTPBearer(auto_error=False)

def get_current_user(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    if not creds:
        raise HTTPException(status_code=401, detail="Missing authorization token")
    try:
        return decode_jwt(creds.credentials, settings.JWT_SECRET)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")

def get_current_tenant(user: dict = Depends(get_current_user)) -> uuid.UUID:
    raw = str(user.get("tenant_id") or "").strip()
    if not raw:
        raise HTTPException(status_code=403, detail="Tenant is not resolved for this token")
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise HTTPException(status_code=403, detail="Tenant is not resolved for this token")
