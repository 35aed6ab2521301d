from fastapi import Request, HTTPException, Depends
from typing import Any, Dict, Optional
from storefront import config

COOKIE_NAME = "sb_access"

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    return token or request.cookies.get(COOKIE_NAME)

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Résout l'utilisateur Supabase (auth.get_user) -> {id, email, token}."""
    from storefront.infra.supabase_client import get_supabase
    res = get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None)
    if user is None:
        return {}
    return {"id": getattr(user, "id", None), "email": getattr(user, "email", None), "token": access_token}

def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        user = get_user_from_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")
    return user

def is_admin_email(email: Optional[str]) -> bool:
    """Allowlist vide: tout utilisateur authentifié est admin."""
    allowlist = config.ADMIN_EMAIL_ALLOWLIST
    if not allowlist:
        return True
    return bool(email) and email.lower() in allowlist

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_admin_email(user.get("email")):
        raise HTTPException(status_code=403, detail="Forbidden")
    return {**user, "role": "admin"}
