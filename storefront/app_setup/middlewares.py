"""
Middlewares transverses de l'application.
- register_basic_middlewares: CORS et TrustedHost à partir de Settings.
- register_security_middleware: en-têtes de sécurité sur toutes les réponses.
Le webhook Stripe n'utilise ni cookie ni CSRF: il est authentifié par sa signature.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from storefront.config import Settings

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def register_basic_middlewares(app: FastAPI, settings: Settings) -> None:
    """
    - CORSMiddleware: origines du front (Astro) autorisées.
    - TrustedHostMiddleware: limite les hôtes acceptés; ouvert si CORS_ORIGINS contient "*".
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    allowed_hosts = list(settings.allowed_hosts)
    if "*" in settings.cors_origins:
        allowed_hosts.append("*")
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)


def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            if name not in response.headers:
                response.headers[name] = value
        return response
