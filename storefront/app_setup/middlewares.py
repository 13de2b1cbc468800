"""
Middlewares transverses de l’application.
- register_basic_middlewares: session, CORS, TrustedHost et confiance en X-Forwarded-*.
- register_security_middleware: en-têtes de sécurité et CSP (Supabase + Mercado Pago autorisés).
- register_no_cache_middleware: aucune mise en cache des réponses paiements et droits d’achat.
"""
from typing import Dict, List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from storefront import config

# Swagger UI (/docs) charge ses assets depuis ces CDN
DOCS_CDNS = ["https://cdn.jsdelivr.net", "https://unpkg.com"]

NO_CACHE_PREFIXES = ("/api/v1/payments", "/api/v1/photos/purchases")

def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(SessionMiddleware, secret_key=config.SESSION_SECRET_KEY, https_only=config.COOKIE_SECURE)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    # CORS ouvert (dev): tout hôte accepté
    hosts = ["*"] if "*" in config.CORS_ORIGINS else config.ALLOWED_HOSTS
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=hosts)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

def content_security_policy() -> str:
    supabase = [config.SUPABASE_URL] if config.SUPABASE_URL else []
    directives: Dict[str, List[str]] = {
        "default-src": ["'self'"],
        "base-uri": ["'self'"],
        "object-src": ["'none'"],
        "frame-ancestors": ["'none'"],
        "img-src": ["'self'", "data:", "blob:", "https://fastapi.tiangolo.com", *supabase],
        "style-src": ["'self'", "'unsafe-inline'", *DOCS_CDNS],
        "script-src": ["'self'", "'unsafe-inline'", *DOCS_CDNS],
        "connect-src": ["'self'", *supabase, config.MERCADO_PAGO_API_URL, *DOCS_CDNS],
    }
    return "; ".join(f"{name} {' '.join(values)}" for name, values in directives.items())

def register_security_middleware(app: FastAPI) -> None:
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "no-referrer",
        "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    }
    if config.COOKIE_SECURE:
        headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains; preload"
    csp = content_security_policy()

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        response.headers["Content-Security-Policy"] = csp
        return response

def register_no_cache_middleware(app: FastAPI) -> None:
    # Statut de paiement et droits changent dès qu’un webhook arrive
    @app.middleware("http")
    async def no_cache_for_payments(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.rstrip("/").startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response
