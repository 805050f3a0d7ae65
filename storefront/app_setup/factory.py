"""
Factory d'application pour les entrypoints (storefront.asgi, storefront.__main__).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Optional

from fastapi import FastAPI

from storefront import __version__
from storefront.config import Settings, get_settings

from .exception_handlers import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware
from .routers import register_routers


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares (CORS, TrustedHost, en-têtes de sécurité)
      - gestionnaires d'exceptions
      - routers checkout, webhooks, orders, health
    """
    settings = settings or get_settings()
    app = FastAPI(title="Dreher's Cheesecake Storefront", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    register_basic_middlewares(app, settings)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
