from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from storefront.config import Settings, get_settings
from storefront.health import service as health_service
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_root():
    return {"ok": True}


@router.get("/supabase")
def health_supabase(settings: Settings = Depends(get_settings)):
    return JSONResponse(health_service.health_supabase_info(settings))


@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return rate_limit_health_info(request)
