"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docstore.config import Settings, get_settings
from docstore.domain.exceptions import RequestError, ServiceError
from docstore.infrastructure.dependencies import ServiceContainer, build_container
from docstore.infrastructure.logging.log_config import setup_logging
from docstore.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


def _error_body(error: ServiceError) -> dict:
    return {"code": error.code, "message": error.message}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.info("%s %s failed: %s %s", request.method, request.url.path, exc.status, exc.message)
    return JSONResponse(status_code=exc.status, content=_error_body(exc))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    error = RequestError(details or None)
    return JSONResponse(status_code=error.status, content=_error_body(error))


async def log_and_guard_requests(request: Request, call_next):
    """Log each request and turn unexpected faults into a bare 500."""
    logger.info("<< %s %s", request.method, request.url.path)
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"code": 500, "message": "Server Error"})


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Factory function that builds and configures the FastAPI application.

    Seed data and rules are loaded eagerly. Pass ``container`` to reuse
    already-built stores and engines.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
    )
    app.state.settings = settings
    app.state.container = container or build_container(settings)

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.middleware("http")(log_and_guard_requests)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docstore.main:app",
        host="0.0.0.0",
        port=3030,
        reload=True,
    )
