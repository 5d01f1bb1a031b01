"""
Spin Signal API - FastAPI entry point

Run locally:
    uvicorn main:app --reload
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.error_responses import ErrorCode, make_error, make_errors, validation_errors
from core.structured_logging import (
    RequestCorrelationMiddleware,
    configure_structured_logging,
    get_correlation_id,
)
from env_config import Config
from routers.signals import router as signals_router

configure_structured_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Spin Signal API", version=Config.ENGINE_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestCorrelationMiddleware)

app.include_router(signals_router)

Config.log_status()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = validation_errors(exc.errors())
    return JSONResponse(status_code=400, content=make_errors(errors, request_id=get_correlation_id()))


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=make_error(ErrorCode.INTERNAL_ERROR, "Internal server error", request_id=get_correlation_id()),
    )


@app.get("/")
def root():
    return {
        "status": "online",
        "message": "Spin Signal API",
        "version": Config.ENGINE_VERSION,
    }


@app.get("/health")
def health():
    return {
        "status": "healthy",
        "engine_version": Config.ENGINE_VERSION,
        "api_version": Config.API_VERSION,
        "ai_predictor_configured": bool(Config.AI_PREDICTOR_URL),
        "context_provider_enabled": Config.CONTEXT_PROVIDER_ENABLED,
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
