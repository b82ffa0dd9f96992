"""
FastAPI app assembly: logging, error mapping and router wiring.
"""
import logging
import os

from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import JSONResponse

from registry.api.reconciliation import router as reconciliation_router
from registry.api.recompute import router as recompute_router
from registry.derivation.errors import (
    ConcurrencyTimeout,
    NotFound,
    PersistenceFailure,
    RecomputationError,
    ValidationError,
)

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="Resident Registry Derived State Service",
    description="Recomputes sectoral profiles and household aggregates from registry facts.",
    version="1.0.0",
)

RETRY_AFTER_SECONDS = "1"


def _status_for(exc: RecomputationError) -> int:
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, ConcurrencyTimeout):
        return 503
    if isinstance(exc, PersistenceFailure) and exc.transient:
        return 503
    return 500


@app.exception_handler(RecomputationError)
async def recomputation_error_handler(request: Request, exc: RecomputationError):
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("Recompute failed on %s %s: %s", request.method, request.url.path, exc)
    headers = {"Retry-After": RETRY_AFTER_SECONDS} if status_code == 503 else None
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()}, headers=headers)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "registry-derived-state"}


app.include_router(recompute_router)
app.include_router(reconciliation_router)
