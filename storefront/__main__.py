"""
python -m storefront

Variables d'environnement:
- HOST / PORT: adresse d'écoute (0.0.0.0:8000 par défaut)
- UVICORN_RELOAD: "1"/"true"/"yes" pour le rechargement auto en dev
- LOG_LEVEL: niveau de logs uvicorn
"""
import os

import uvicorn

def main() -> None:
    uvicorn.run(
        "storefront.app:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level=os.environ.get("LOG_LEVEL", "info"),
        proxy_headers=True,
    )

if __name__ == "__main__":
    main()
