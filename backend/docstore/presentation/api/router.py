"""Top-level API router — mounts the data, identity and health routers."""

from fastapi import APIRouter

from docstore.presentation.api.endpoints import data, health, users

router = APIRouter()
router.include_router(health.router)
router.include_router(data.router)
router.include_router(users.router)
