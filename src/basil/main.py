# src/basil/main.py
"""
MAIN FASTAPI APPLICATION
"""

from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from basil import __version__
from basil.core.api_client import ApiError
from basil.core.config import Settings, get_settings
from basil.core.logger import setup_logging
from basil.core.security import build_middleware
from basil.api.pricing import router as pricing_router
from basil.api.inventory import router as inventory_router
from basil.api.tax import router as tax_router
from basil.api.region import router as region_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None) -> FastAPI:
    """Build the application."""
    settings = settings or get_settings()
    setup_logging(settings.log_dir, settings.log_level)

    app = FastAPI(
        title="Basil Pricing Service",
        description="Pricing recalculation, tax identifiers and API routing for Basil shops",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.is_development else None,
        middleware=build_middleware(settings)
    )

    app.include_router(pricing_router)
    app.include_router(inventory_router)
    app.include_router(tax_router)
    app.include_router(region_router)

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        status = exc.status or 502
        logger.warning(f"Upstream error on {request.url.path}: {status} {exc.message}")
        return JSONResponse(
            status_code=status,
            content={
                "success": False,
                "detail": exc.user_message(),
                "code": exc.code,
                "isAuthError": exc.is_auth_error
            }
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "basil_pricing",
            "version": __version__,
            "timestamp": datetime.now().isoformat()
        }

    logger.info(f"Basil pricing service ready (env: {settings.env})")
    return app


app = create_app()


# For running directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "basil.main:app",
        host="127.0.0.1",
        port=8000,
        reload=get_settings().is_development,
        log_level="info"
    )
