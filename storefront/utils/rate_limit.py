"""
Limitation de débit du checkout (chaque appel crée un paiement pending et une préférence).
"""
import hashlib
import os
import time
from typing import Any, Dict, List

from fastapi import HTTPException, Request, Response

from storefront.utils.security import request_token

def _client_key(req: Request) -> str:
    """
    Jeton hashé (jamais stocké en clair), sinon IP; toujours suffixé par le chemin.
    """
    token = request_token(req)
    if token:
        return f"user:{hashlib.sha256(token.encode('utf-8')).hexdigest()[:16]}:{req.url.path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{req.url.path}"

def _local_window_hit(request: Request, times: int, seconds: int) -> None:
    """Fenêtre glissante en mémoire (app.state), par processus: dev et tests uniquement."""
    now = time.monotonic()
    store: Dict[str, List[float]] = getattr(request.app.state, "_rl_store", None) or {}
    key = _client_key(request)
    hits = [t for t in store.get(key, []) if now - t < seconds]
    if len(hits) >= times:
        raise HTTPException(status_code=429, detail="Trop de requêtes, réessayez plus tard")
    store[key] = hits + [now]
    request.app.state._rl_store = store

def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance FastAPI:
    - LOCAL_RATE_LIMIT_FALLBACK=1: compteur en mémoire
    - sinon fastapi-limiter (Redis) si le lifespan l’a initialisé; aucune limite s’il ne l’est pas
    """
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_window_hit(request, times, seconds)
            return
        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return
        try:
            from fastapi_limiter.depends import RateLimiter

            async def _identifier(req: Request) -> str:
                return _client_key(req)

            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            # Redis indisponible: le checkout reste accessible
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    try:
        from fastapi_limiter import FastAPILimiter
        ready = getattr(FastAPILimiter, "redis", None) is not None
    except Exception:
        ready = False
    return {
        "enabled": None if enabled is None else bool(enabled),
        "local_fallback": os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1",
        "ready": ready,
        "backend": "redis" if ready else None,
    }
