"""Routes that sign the session user in and out."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.api.errors import to_http_exception
from src.models.favorite import FavoriteListResponse
from src.services.container import ServiceContainer, get_services
from src.services.errors import StoreError

router = APIRouter(prefix="/session", tags=["session"])

ServicesDependency = Annotated[ServiceContainer, Depends(get_services)]


class SignInRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


@router.post("", response_model=FavoriteListResponse, summary="Sign a user in")
async def sign_in(payload: SignInRequest, services: ServicesDependency) -> FavoriteListResponse:
    services.session.sign_in(payload.user_id)
    try:
        items = await services.favorites.refresh()
    except StoreError as exc:
        raise to_http_exception(exc) from exc
    return FavoriteListResponse(user_id=payload.user_id, count=len(items), items=items)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Sign out")
async def sign_out(services: ServicesDependency) -> None:
    services.session.sign_out()
    await services.favorites.refresh()
