"""
FastAPI WebServer - Main Application
Fingerprint gallery server: enrollment, 1:N verification, audit log and import/export
on top of a local SecuGen-style device service.
"""

import os
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from fpgallery.audit import AuditLog
from fpgallery.capture import CaptureGateway
from fpgallery.config import DEVICE_BASE_URL
from fpgallery.controller import GalleryController
from fpgallery.template_store import TemplateStore

from .config import HOST, PORT, CORS_ORIGINS, CORS_ALLOW_CREDENTIALS, VERBOSE, ensure_directories
from .database import BlobDatabase
from .logger import log_startup, log_shutdown, log_access, log_error, get_logger, configure_core_logging

# Import routes
from .routes import user_router, biometric_router, admin_router
from .routes import user_routes, biometric_routes, admin_routes


# Create FastAPI app
app = FastAPI(
    title="Fingerprint Gallery WebServer",
    version="1.0.0",
    description="Fingerprint enrollment and 1:N verification against a local gallery"
)


# Global resources
controller = None
db = None

logger = get_logger("server")


def install_controller(ctrl, database=None):
    """Set the controller (and optional database) used by every route module."""
    global controller, db
    controller = ctrl
    db = database
    user_routes.set_controller(ctrl)
    biometric_routes.set_controller(ctrl)
    admin_routes.set_globals(ctrl, database)


def build_controller(database, device_url: str = None) -> GalleryController:
    """Wire gateway, stores and engine on top of a blob store and load persisted state."""
    gateway = CaptureGateway(base_url=device_url or DEVICE_BASE_URL)
    ctrl = GalleryController(gateway, TemplateStore(database), AuditLog(database))

    for warning in ctrl.load():
        logger.warning(f"⚠ {warning} (starting with empty state)")

    return ctrl


@app.on_event("startup")
async def startup():
    """Initialize server resources on startup."""
    logger.info("Starting fingerprint gallery webserver...")
    configure_core_logging()

    # Already provided (embedding or tests)
    if controller is not None:
        logger.info("✓ Using pre-installed controller")
        return

    ensure_directories()

    database = BlobDatabase()
    logger.info("✓ Database initialized")

    device_url = os.environ.get("FPGALLERY_DEVICE_URL", DEVICE_BASE_URL)
    ctrl = build_controller(database, device_url)
    install_controller(ctrl, database)

    log_startup({
        'host': HOST,
        'port': PORT,
        'device_url': device_url,
        'identities_loaded': len(ctrl.store),
        'audit_entries_loaded': len(ctrl.audit),
        'encrypted_db': database.encrypted
    })

    logger.info("="*70)
    logger.info("FINGERPRINT GALLERY WEBSERVER READY")
    logger.info("="*70)


@app.on_event("shutdown")
async def shutdown():
    """Cleanup resources on shutdown."""
    logger.info("Shutting down fingerprint gallery webserver...")

    log_shutdown()

    # Close database
    if db:
        db.close()
        logger.info("✓ Database closed")

    logger.info("Shutdown complete")


# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    start = time.time()

    ip = request.client.host if request.client else "unknown"

    response = await call_next(request)

    duration = (time.time() - start) * 1000

    log_access(
        ip=ip,
        method=request.method,
        endpoint=request.url.path,
        status_code=response.status_code,
        duration_ms=duration
    )

    return response


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    """Log unexpected errors and answer 500."""
    log_error(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(user_router, prefix="/api/users", tags=["Users"])
app.include_router(biometric_router, prefix="/api", tags=["Biometric"])
app.include_router(admin_router, prefix="/api/admin", tags=["Admin"])


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "identities": len(controller.store) if controller else 0,
        "busy": controller.busy if controller else False
    }


# Export app
__all__ = ['app', 'install_controller', 'build_controller']


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fpgallery.webserver.server:app",
        host=HOST,
        port=PORT,
        reload=False,
        log_level="info" if VERBOSE else "warning"
    )
