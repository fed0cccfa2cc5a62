import csv
import io
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, insert, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analytics.models import clicks
from analytics.summary import summarize_clicks
from analytics.visitor import VisitorInfo
from auth.db import User
from links.models import links as Link
from links.service import ensure_can_manage, get_link_by_id, increment_clicks, utcnow

logger = logging.getLogger(__name__)

REALTIME_WINDOW_MINUTES = 5

EXPORT_COLUMNS = (
    ("clickedAt", "clicked_at"),
    ("ipAddress", "ip_address"),
    ("device", "device"),
    ("browser", "browser"),
    ("operatingSystem", "operating_system"),
    ("referrer", "referrer"),
    ("location", "location"),
)


async def record_click(
    session_maker: async_sessionmaker, link_id: uuid.UUID, visitor: VisitorInfo
) -> None:
    """
    Store one click row, then bump the link's counter.

    Runs after the redirect has been sent, so failures are logged rather
    than raised. The two writes commit separately; if the increment fails
    the click row stays and ``clicks`` undercounts by one.
    """
    try:
        async with session_maker() as session:
            await session.execute(
                insert(clicks).values(
                    link_id=link_id, clicked_at=utcnow(), **visitor.as_row()
                )
            )
            await session.commit()
            await increment_clicks(session, link_id)
    except SQLAlchemyError:
        logger.exception("Failed to record click for link %s", link_id)
        return
    logger.debug("Click recorded for link %s from %s", link_id, visitor.location)


async def get_managed_link(session: AsyncSession, link_id: uuid.UUID, user: User) -> Row:
    link = await get_link_by_id(session, link_id)
    ensure_can_manage(link, user)
    return link


async def get_link_clicks(
    session: AsyncSession,
    link_id: uuid.UUID,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[Row]:
    statement = select(clicks).where(clicks.c.link_id == link_id)
    if start is not None:
        statement = statement.where(clicks.c.clicked_at >= start)
    if end is not None:
        statement = statement.where(clicks.c.clicked_at <= end)
    result = await session.execute(statement.order_by(clicks.c.clicked_at.desc()))
    return list(result.all())


async def get_realtime_clicks(session: AsyncSession, link_id: uuid.UUID) -> list[Row]:
    since = utcnow() - timedelta(minutes=REALTIME_WINDOW_MINUTES)
    return await get_link_clicks(session, link_id, start=since)


async def get_user_summary(session: AsyncSession, user: User) -> dict:
    counts = await session.execute(
        select(
            func.count(Link.c.id),
            func.count(Link.c.id).filter(Link.c.is_active.is_(True)),
        ).where(Link.c.owner_id == user.id)
    )
    total_links, active_links = counts.one()

    result = await session.execute(
        select(clicks)
        .join(Link, clicks.c.link_id == Link.c.id)
        .where(Link.c.owner_id == user.id)
    )
    return {
        "total_links": total_links,
        "active_links": active_links,
        "summary": summarize_clicks(result.all()),
    }


async def get_top_links(session: AsyncSession, user: User, limit: int) -> list[Row]:
    statement = select(Link).order_by(Link.c.clicks.desc(), Link.c.created_at.desc())
    if not user.is_admin:
        statement = statement.where(Link.c.owner_id == user.id)
    result = await session.execute(statement.limit(limit))
    return list(result.all())


def clicks_to_csv(rows: list[Row]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    for row in rows:
        writer.writerow(
            [
                row.clicked_at.isoformat() if column == "clicked_at" else getattr(row, column)
                for _, column in EXPORT_COLUMNS
            ]
        )
    return buffer.getvalue()
