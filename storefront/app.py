"""
Application ASGI: `uvicorn storefront.app:app` (ou `python -m storefront`).
"""
from storefront.app_setup.factory import create_app

app = create_app()
