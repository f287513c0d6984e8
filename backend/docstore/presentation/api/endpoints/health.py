"""Health check endpoint. No auth, always available."""

from fastapi import APIRouter, Depends, Request

from docstore.infrastructure.dependencies import ServiceContainer, get_container

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    request: Request,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """Returns the current application health status."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "collections": len(container.store.list_collections()),
    }
