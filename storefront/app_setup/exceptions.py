"""
Gestionnaire d’exceptions.
- HTTPException -> JSON {"detail": ...} pour les clients API.
- Les endpoints paiements rendent eux-mêmes leurs erreurs ({"error"} ou texte pour le webhook).
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_as_json(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
