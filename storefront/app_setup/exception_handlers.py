"""
Gestionnaires d'exceptions.
- StorefrontError -> JSON {"error": message, "code": code} avec le statut de l'exception.
- RequestValidationError (JSON mal formé) reste géré par FastAPI (422).
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.errors import StorefrontError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s %s: %s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})
