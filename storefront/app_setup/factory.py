"""
Assemblage de l’application storefront (utilisé par storefront.app et les tests).
"""
from fastapi import FastAPI

from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware, register_security_middleware
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Middlewares (session, CORS, hôtes, proxy, en-têtes de sécurité, no-cache paiements),
    rendu JSON des HTTPException, puis routers photos / payments / health.
    """
    app = FastAPI(
        title="Storefront photos",
        description="Panier de photos d'événements, paiement Mercado Pago et droits de téléchargement",
        version="0.1.0",
        lifespan=lifespan,
    )
    for register in (
        register_basic_middlewares,
        register_security_middleware,
        register_no_cache_middleware,
        register_exception_handlers,
        register_routers,
    ):
        register(app)
    return app
