"""Identity endpoints — register, login, logout and the current user."""

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from docstore.application.schemas import UserCredentials
from docstore.application.services import AuthService
from docstore.domain.entities import Principal
from docstore.infrastructure.dependencies import get_access_token, get_auth_service, get_principal

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/register")
async def register(
    credentials: UserCredentials,
    service: AuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    """Create a user and open a session; the response carries ``accessToken``."""
    return service.register(credentials.as_body())


@router.post("/login")
async def login(
    credentials: UserCredentials,
    service: AuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    return service.login(credentials.as_body())


@router.get("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    principal: Principal | None = Depends(get_principal),
    access_token: str | None = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service),
) -> Response:
    service.logout(principal, access_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me")
async def me(
    principal: Principal | None = Depends(get_principal),
    service: AuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    """The authenticated user, without the password hash."""
    return service.me(principal)
