import uuid
from datetime import datetime
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi_cache.decorator import cache
from sqlalchemy.ext.asyncio import AsyncSession

from analytics import service
from analytics.schemas import (
    ClickExportResponse,
    ClickRead,
    LinkAnalyticsResponse,
    RealTimeAnalyticsResponse,
    TopLinksResponse,
    UserSummaryResponse,
)
from analytics.summary import summarize_clicks
from auth.db import User
from auth.users import current_active_user
from config import SUMMARY_CACHE_EXPIRE
from database import get_async_session
from errors import ValidationError
from links.schemas import LinkRead
from links.service import to_naive_utc

router = APIRouter(prefix="/analytics", tags=["analytics"])


def user_key_builder(
    func: Callable[..., Any],
    namespace: str = "",
    *,
    request: Optional[Request] = None,
    response: Optional[Response] = None,
    args: tuple = (),
    kwargs: Optional[dict] = None,
) -> str:
    user = (kwargs or {}).get("user")
    path = request.url.path if request is not None else ""
    return f"{namespace}:{func.__module__}:{func.__name__}:{path}:{getattr(user, 'id', '')}"


@router.get("/url/{url_id}", response_model=LinkAnalyticsResponse)
async def get_url_analytics(
    url_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Click summary and individual clicks for one link (owner or admin).
    """
    await service.get_managed_link(session, url_id, user)
    rows = await service.get_link_clicks(session, url_id)
    return {"success": True, "data": _analytics_payload(rows)}


@router.get("/url/{url_id}/timerange", response_model=LinkAnalyticsResponse)
async def get_analytics_by_time_range(
    url_id: uuid.UUID,
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Same as the per-link analytics, restricted to clicks between the two dates.
    """
    start, end = to_naive_utc(start_date), to_naive_utc(end_date)
    if start > end:
        raise ValidationError("startDate must not be after endDate.")
    await service.get_managed_link(session, url_id, user)
    rows = await service.get_link_clicks(session, url_id, start=start, end=end)
    return {"success": True, "data": _analytics_payload(rows)}


@router.get("/url/{url_id}/realtime", response_model=RealTimeAnalyticsResponse)
async def get_realtime_analytics(
    url_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    await service.get_managed_link(session, url_id, user)
    rows = await service.get_realtime_clicks(session, url_id)
    payload = _analytics_payload(rows)
    payload["window_minutes"] = service.REALTIME_WINDOW_MINUTES
    return {"success": True, "data": payload}


@router.get("/url/{url_id}/export", response_model=ClickExportResponse)
async def export_analytics(
    url_id: uuid.UUID,
    export_format: str = Query("json", alias="format", pattern="^(json|csv)$"),
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Export a link's clicks as JSON or as a CSV attachment.
    """
    link = await service.get_managed_link(session, url_id, user)
    rows = await service.get_link_clicks(session, url_id)
    if export_format == "csv":
        return Response(
            content=service.clicks_to_csv(rows),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="analytics-{link.short_code}.csv"'
            },
        )
    return {"success": True, "data": [ClickRead.model_validate(row) for row in rows]}


@router.get("/summary", response_model=UserSummaryResponse)
@cache(expire=SUMMARY_CACHE_EXPIRE, namespace="analytics", key_builder=user_key_builder)
async def get_user_analytics_summary(
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Link counts and a click summary across all of the current user's links.

    Cached per user for ``SUMMARY_CACHE_EXPIRE`` seconds (60 by default), so new
    clicks and deleted links can lag by that long. Send ``Cache-Control: no-store``
    to bypass the cache.
    """
    summary = await service.get_user_summary(session, user)
    return {"success": True, "data": summary}


@router.get("/top-urls", response_model=TopLinksResponse)
async def get_top_performing_urls(
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    links = await service.get_top_links(session, user, limit)
    return {"success": True, "data": [LinkRead.model_validate(link) for link in links]}


def _analytics_payload(rows) -> dict:
    return {
        "summary": summarize_clicks(rows),
        "details": [ClickRead.model_validate(row) for row in rows],
    }
