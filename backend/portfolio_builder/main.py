# main.py
# Entry point for the portfolio builder web app.
# - Builds the FastAPI app around one set of local services
# - Maps domain errors to JSON responses
# - Run with: uvicorn portfolio_builder.main:app --reload
import logging
import sys
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from . import __version__
from .api.dependencies import AppServices, build_services
from .api.enhance_routes import router as enhance_router
from .api.pages_routes import router as pages_router
from .api.portfolio_routes import router as portfolio_router
from .config.settings import get_settings
from .models.errors import (
    ExportError,
    PersistenceError,
    PortfolioError,
    ServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error_body(exc: PortfolioError) -> dict:
    return {"detail": str(exc), "error_code": exc.code}


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    app = FastAPI(
        title="Portfolio Builder API",
        description="Build, enhance, and export a personal portfolio",
        version=__version__,
    )
    app.state.services = services or build_services(get_settings())

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        body = _error_body(exc)
        body["missing_fields"] = exc.missing_fields
        body["invalid_fields"] = exc.invalid_fields
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.code == "AI_NOT_CONFIGURED":
            code = status.HTTP_503_SERVICE_UNAVAILABLE
        else:
            code = status.HTTP_502_BAD_GATEWAY
        return JSONResponse(status_code=code, content=_error_body(exc))

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_body(exc))

    @app.exception_handler(ExportError)
    async def export_error_handler(request: Request, exc: ExportError):
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_body(exc))

    @app.get("/health")
    def health_check():
        return {
            "status": "ok",
            "ai_enabled": app.state.services.enhancement.is_available(),
        }

    app.include_router(pages_router)
    app.include_router(portfolio_router)
    app.include_router(enhance_router)
    return app


app = create_app()


if __name__ == "__main__":
    from .cli.app import main as cli_main

    sys.exit(cli_main())
