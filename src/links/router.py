from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analytics.service import record_click
from analytics.visitor import collect_visitor_info
from auth.db import User
from auth.users import current_active_user
from config import BASE_URL
from database import get_async_session, get_session_maker
from links import service
from links.schemas import (
    LinkCreate,
    LinkCreated,
    LinkCreatedResponse,
    LinkListResponse,
    LinkRead,
    LinkResponse,
    LinkUpdate,
)

router = APIRouter(prefix="/urls", tags=["links"])

redirect_router = APIRouter(tags=["redirect"])


@router.post(
    "",
    response_model=LinkCreatedResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_short_link(
    data: LinkCreate,
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Create a new short link owned by the current user.
    Supports an optional custom alias and expiration date.
    """
    link = await service.create_short_link(
        session,
        owner_id=user.id,
        original_url=str(data.original_url),
        custom_alias=data.custom_alias,
        expires_at=data.expires_at,
    )
    return LinkCreatedResponse(
        data=LinkCreated(
            short_code=link.short_code,
            original_url=link.original_url,
            short_url=f"{BASE_URL}/{link.short_code}",
            custom_alias=link.custom_alias,
        )
    )


@router.get("", response_model=LinkListResponse)
async def list_links(
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    List the current user's links. Admins get every link.
    """
    links = await service.list_links(session, user)
    return LinkListResponse(data=[LinkRead.model_validate(link) for link in links])


@router.put("/{short_code}", response_model=LinkResponse)
async def update_link(
    short_code: str,
    data: LinkUpdate,
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Update a link's destination, expiration date or active flag (owner or admin).
    """
    link = await service.update_link(
        session, short_code, user, data.model_dump(exclude_unset=True)
    )
    return LinkResponse(data=LinkRead.model_validate(link))


@router.delete("/{short_code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    short_code: str,
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Delete a short link and its click history (owner or admin).
    """
    await service.delete_link(session, short_code, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@redirect_router.get("/{short_code}")
async def redirect_to_url(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_async_session),
    session_maker: async_sessionmaker = Depends(get_session_maker),
):
    """
    Redirect to the original URL for a short code or custom alias.
    The click is recorded after the response has been sent.
    """
    link = await service.get_link_by_code(session, short_code)
    visitor = collect_visitor_info(request)
    background_tasks.add_task(record_click, session_maker, link.id, visitor)
    return RedirectResponse(url=link.original_url, status_code=status.HTTP_302_FOUND)
