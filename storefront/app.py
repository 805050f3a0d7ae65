"""
Application FastAPI du backend de la boutique.
- Construite par storefront.app_setup.factory.create_app (middlewares, handlers, routers).
- Importée par storefront.asgi et par les tests d'intégration.
"""
import logging
import os

from storefront.app_setup.factory import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "info").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()
