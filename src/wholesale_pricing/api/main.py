"""
FastAPI application for the wholesale pricing engine.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config.logging_config import setup_logging
from ..config.settings import get_settings
from ..errors import (
    CollaboratorUnavailable,
    ConfigurationConflict,
    EvaluationFailed,
    InvalidInput,
    NotFound,
    PricingError,
)
from .channels_api import router as channels_router
from .pricing_api import router as pricing_router
from .tiers_api import router as tiers_router

logger = logging.getLogger(__name__)

settings = get_settings()
if not logging.getLogger().handlers:
    setup_logging(settings.log_level, settings.log_json)

app = FastAPI(
    title="Wholesale Pricing API",
    description="Tiered wholesale pricing and release channel advancement",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pricing_router)
app.include_router(tiers_router)
app.include_router(channels_router)


STATUS_CODES = (
    (InvalidInput, 422),
    (EvaluationFailed, 422),
    (ConfigurationConflict, 409),
    (NotFound, 404),
    (CollaboratorUnavailable, 503),
)


@app.exception_handler(PricingError)
async def pricing_error_handler(request: Request, exc: PricingError):
    status = next((code for cls, code in STATUS_CODES if isinstance(exc, cls)), 500)
    body = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, ConfigurationConflict):
        body["conflicting_ids"] = exc.conflicting_ids
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content=body)


@app.get("/")
async def root():
    return {"status": "online", "message": "Wholesale Pricing API Active"}


@app.get("/system/status")
async def get_status():
    return {
        "version": __version__,
        "data_dir": str(settings.data_dir),
        "tiers_file": settings.tiers_csv.exists(),
        "default_territory": settings.default_territory,
        "default_currency": settings.default_currency,
    }
