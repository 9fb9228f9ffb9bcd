"""
Greenpia Portal API

FastAPI application behind the residents' portal.
Provides REST API endpoints for rotation, inquiries, forms and shared records.
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from greenpia import __version__
from greenpia.config import load_config
from greenpia.database import DataStoreUnavailable, init_db
from greenpia.forms import FormNotFound
from greenpia.rotation import (
    InsufficientCandidates, InvalidScheduleTransition, RotationLogicMissing, ScheduleNotFound
)
from greenpia.utils import get_logger, setup_logging_from_config

# Initialize logging with rotation
_config = load_config()
setup_logging_from_config(_config, log_file='logs/api.log')
logger = get_logger(__name__)

# Track startup time for uptime calculation
START_TIME = time.time()


def get_uptime_seconds() -> int:
    """Get API uptime in seconds"""
    return int(time.time() - START_TIME)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Greenpia API starting...")

    if _config.get('database.auto_create', False):
        init_db()

    yield

    logger.info("Greenpia API shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Greenpia Portal",
    description="API for the Greenpia residents' association portal",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS (Vite dev server and configured origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_config.get('api.cors_origins', ["http://localhost:5173"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR MAPPING
# =============================================================================

@app.exception_handler(DataStoreUnavailable)
@app.exception_handler(OperationalError)
async def datastore_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"Database unavailable during {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Database not available"})


@app.exception_handler(InsufficientCandidates)
@app.exception_handler(RotationLogicMissing)
@app.exception_handler(InvalidScheduleTransition)
async def rotation_conflict_handler(request: Request, exc: Exception):
    logger.warning(f"{request.url.path}: {exc}")
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ScheduleNotFound)
@app.exception_handler(FormNotFound)
async def not_found_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# =============================================================================
# IMPORT AND REGISTER ROUTES
# =============================================================================

from greenpia.api.routes import (
    attendance_router,
    auth_router,
    changelog_router,
    content_router,
    exemptions_router,
    forms_router,
    households_router,
    inquiries_router,
    inventory_router,
    rotation_router,
    vault_router,
)

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(rotation_router, prefix="/api", tags=["Rotation"])
app.include_router(households_router, prefix="/api", tags=["Households"])
app.include_router(exemptions_router, prefix="/api", tags=["Exemptions"])
app.include_router(inquiries_router, prefix="/api", tags=["Inquiries"])
app.include_router(forms_router, prefix="/api", tags=["Forms"])
app.include_router(attendance_router, prefix="/api", tags=["Attendance"])
app.include_router(content_router, prefix="/api", tags=["Content"])
app.include_router(inventory_router, prefix="/api", tags=["Inventory"])
app.include_router(vault_router, prefix="/api", tags=["Vault"])
app.include_router(changelog_router, prefix="/api", tags=["Changelog"])


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

@app.get("/")
async def root():
    """API root - health check"""
    return {
        "name": "Greenpia Portal API",
        "version": __version__,
        "status": "running",
        "uptime_seconds": get_uptime_seconds(),
    }


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def run():
    """Run the API server"""
    import uvicorn

    host = _config.get('api.host', '0.0.0.0')
    port = int(_config.get('api.port', 8080))

    logger.info(f"Starting API server on {host}:{port}")

    uvicorn.run(
        "greenpia.api.main:app",
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    run()
