from typing import Dict, Any, Optional
from fastapi import Request, Response, HTTPException
from fastapi_limiter.depends import RateLimiter
from pyrate_limiter import BucketFullException, Duration, Limiter, Rate
import os
import time
import hashlib
from storefront.utils.security import COOKIE_NAME

def _client_key(req: Request) -> str:
    # Priorité: session cookie (hashé) puis IP, par chemin
    token = req.cookies.get(COOKIE_NAME)
    path = req.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"

async def _identifier(req: Request) -> str:
    return _client_key(req)

async def _too_many_requests(request: Request, response: Response):
    raise HTTPException(status_code=429, detail="Too Many Requests")

def _memory_hit(request: Request, times: int, seconds: int) -> None:
    """Fenêtre glissante en mémoire (app.state._rl_store), clés vides purgées."""
    now = time.time()
    key = _client_key(request)
    store = getattr(request.app.state, "_rl_store", {})
    for k in [k for k, ts in store.items() if not ts or now - ts[-1] >= seconds]:
        del store[k]
    hits = [t for t in store.get(key, []) if now - t < seconds]
    if len(hits) >= times:
        store[key] = hits
        request.app.state._rl_store = store
        raise HTTPException(status_code=429, detail="Too Many Requests")
    hits.append(now)
    store[key] = hits
    request.app.state._rl_store = store

def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance FastAPI de limitation de débit.
    - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire
    - sinon fastapi-limiter (pyrate-limiter) si le lifespan l'a activé
    - 429 "Too Many Requests" au-delà de `times` requêtes sur `seconds`
    """
    limiter: Optional[RateLimiter] = None

    async def _dep(request: Request, response: Response):
        nonlocal limiter
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _memory_hit(request, times, seconds)
            return

        # Respecter le flag global posé par le lifespan
        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        if limiter is None:
            limiter = RateLimiter(
                limiter=Limiter(Rate(times, Duration.SECOND * seconds)),
                identifier=_identifier,
                callback=_too_many_requests,
            )
        try:
            await limiter(request, response)
        except BucketFullException:
            await _too_many_requests(request, response)
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    backend = None
    if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
        backend = "memory"
    elif enabled is True:
        backend = "pyrate-limiter"

    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": backend is not None,
        "backend": backend,
    }
