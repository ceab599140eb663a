from fastapi import APIRouter
from tpv_api.api.v1.endpoints import tpv, webhooks, sync

api_router = APIRouter()
api_router.include_router(tpv.router, prefix="/tpv", tags=["tpv"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
