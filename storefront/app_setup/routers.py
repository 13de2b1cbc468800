"""
Registre central des routers (API v1, health).
- API v1: photos (résolution du panier, droits d’achat), payments (préférence, webhook, purge admin)
- Health: health_router
"""
from fastapi import FastAPI
from storefront.photos import views as photos_views
from storefront.payments import views as payments_views
from storefront.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l’application.
    - L’ordre n’a pas d’impact sauf conflits de chemins (évités par préfixes).
    """
    app.include_router(photos_views.router)
    app.include_router(payments_views.router)
    app.include_router(health_router)
