import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tpv_api.api.v1.router import api_router
from tpv_api.core.config import settings
from tpv_api.core.database import engine
from tpv_api.core.errors import TPVError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    yield
    await engine.dispose()


app = FastAPI(
    title="TPV Call API",
    description="Third-party verification calls via Vapi, Twilio and Google Sheets",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(TPVError)
async def tpv_error_handler(request: Request, exc: TPVError) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(httpx.HTTPError)
async def upstream_unreachable_handler(request: Request, exc: httpx.HTTPError) -> JSONResponse:
    logger.error("%s %s upstream request failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"success": False, "error": f"Upstream request failed: {exc}"})


@app.get("/health")
async def health():
    return {"status": "ok", "service": "tpv-call-api", "version": "0.1.0"}
