"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Timeout borné du transport HTTP du SDK Stripe (HTTP_TIMEOUT_SECONDS).
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Variables d'environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: active un fallback local si l'init échoue
- RATE_LIMIT_REDIS_URL est lu depuis Settings (app.state.settings, posé par create_app).
"""
import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from storefront.checkout.stripe_client import configure_http_client
from storefront.config import Settings, get_settings


async def _init_rate_limiter(app: FastAPI, settings: Settings, logger: logging.Logger) -> None:
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        return
    try:
        if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
            from fakeredis.aioredis import FakeRedis  # tests only

            r = FakeRedis(decode_responses=True)
        else:
            r = aioredis.from_url(settings.rate_limit_redis_url, encoding="utf-8", decode_responses=True)

        await FastAPILimiter.init(r)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
    except Exception as e:
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            app.state.rate_limit_enabled = True
            logger.warning("Rate limiting falling back to local in-memory due to init error: %s", e)
        else:
            app.state.rate_limit_enabled = False
            logger.warning("Rate limiting disabled due to init error: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Configure le client HTTP Stripe et le rate limiting.
    - En cas d'échec de Redis et sans fallback, le rate limiting est désactivé proprement.
    """
    logger = logging.getLogger("uvicorn.error")
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    configure_http_client(settings.http_timeout)
    if not settings.stripe.is_configured:
        logger.error("STRIPE_SECRET_KEY absente: la création de session échouera (500)")
    if not settings.stripe.webhook_secret:
        logger.error("STRIPE_WEBHOOK_SECRET absent: le webhook répondra 500")

    await _init_rate_limiter(app, settings, logger)
    yield
    if getattr(app.state, "rate_limit_enabled", False) and FastAPILimiter.redis is not None:
        await FastAPILimiter.close()
