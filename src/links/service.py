import logging
import re
import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from analytics.models import clicks
from auth.db import User
from config import CODE_LENGTH, CODE_MAX_ATTEMPTS
from errors import (
    AllocationExhausted,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from links.models import links as Link

logger = logging.getLogger(__name__)

# Top-level paths that a short code would shadow.
RESERVED_CODES = {"docs", "redoc", "openapi", "auth", "urls", "analytics", "api", "health"}

ALIAS_PATTERN = re.compile(r"^[a-z0-9]{3,30}$")
ALPHABET = string.ascii_letters + string.digits


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def generate_random_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def normalize_alias(alias: Optional[str]) -> Optional[str]:
    """
    Trim and lowercase a user-supplied alias. Returns None for a blank alias.
    Raises ValidationError when the result is not 3-30 lowercase letters and
    digits or collides with a reserved route name.
    """
    if alias is None:
        return None
    alias = alias.strip().lower()
    if not alias:
        return None
    if not ALIAS_PATTERN.match(alias):
        raise ValidationError("Custom alias must be 3-30 alphanumeric characters.")
    if alias in RESERVED_CODES:
        raise ValidationError("This alias is reserved or not allowed.")
    return alias


def normalize_expiry(expires_at: Optional[datetime]) -> Optional[datetime]:
    expires_at = to_naive_utc(expires_at)
    if expires_at is not None and expires_at <= utcnow():
        raise ValidationError("Expiration date must be in the future.")
    return expires_at


async def code_exists(session: AsyncSession, code: str) -> bool:
    statement = select(Link.c.id).where(
        or_(Link.c.short_code == code, Link.c.custom_alias == code)
    )
    result = await session.execute(statement)
    return result.first() is not None


async def allocate_short_code(
    session: AsyncSession,
    alias: Optional[str] = None,
    *,
    length: int = CODE_LENGTH,
    max_attempts: int = CODE_MAX_ATTEMPTS,
) -> str:
    """
    Return a code that is free at the moment of the check.

    A supplied alias is normalized and used verbatim, or rejected with
    ConflictError if it is taken. Otherwise random codes are drawn until a
    free one turns up, giving up with AllocationExhausted after
    ``max_attempts`` draws. The unique constraints on ``links`` remain the
    real guarantee; this check only produces a friendlier error earlier.
    """
    alias = normalize_alias(alias)
    if alias is not None:
        if await code_exists(session, alias):
            raise ConflictError()
        return alias

    for attempt in range(1, max_attempts + 1):
        candidate = generate_random_code(length)
        if candidate.lower() in RESERVED_CODES:
            continue
        if not await code_exists(session, candidate):
            return candidate
        logger.debug("Short code collision on attempt %d: %s", attempt, candidate)

    raise AllocationExhausted()


async def create_short_link(
    session: AsyncSession,
    owner_id: uuid.UUID,
    original_url: str,
    custom_alias: Optional[str] = None,
    expires_at: Optional[datetime] = None,
) -> Row:
    expires_at = normalize_expiry(expires_at)
    alias = normalize_alias(custom_alias)
    short_code = await allocate_short_code(session, alias)

    new_link = {
        "id": uuid.uuid4(),
        "owner_id": owner_id,
        "original_url": original_url,
        "short_code": short_code,
        "custom_alias": alias,
        "clicks": 0,
        "created_at": utcnow(),
        "expires_at": expires_at,
        "is_active": True,
    }
    try:
        await session.execute(insert(Link).values(**new_link))
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError() from exc

    logger.info("New short URL created: %s for %s", short_code, original_url)
    return await get_link_by_id(session, new_link["id"])


async def find_link(session: AsyncSession, code: str) -> Optional[Row]:
    statement = select(Link).where(
        or_(Link.c.short_code == code, Link.c.custom_alias == code)
    )
    result = await session.execute(statement)
    return result.first()


async def get_link_by_code(session: AsyncSession, code: str) -> Row:
    link = await find_link(session, code)
    if link is None:
        raise NotFoundError()
    return link


async def get_link_by_id(session: AsyncSession, link_id: uuid.UUID) -> Row:
    result = await session.execute(select(Link).where(Link.c.id == link_id))
    link = result.first()
    if link is None:
        raise NotFoundError()
    return link


def ensure_can_manage(link: Row, user: User) -> None:
    if link.owner_id != user.id and not user.is_admin:
        raise ForbiddenError()


async def list_links(session: AsyncSession, user: User) -> list[Row]:
    statement = select(Link).order_by(Link.c.created_at.desc())
    if not user.is_admin:
        statement = statement.where(Link.c.owner_id == user.id)
    result = await session.execute(statement)
    return list(result.all())


async def update_link(session: AsyncSession, code: str, user: User, changes: dict) -> Row:
    link = await get_link_by_code(session, code)
    ensure_can_manage(link, user)

    values = {}
    if changes.get("original_url") is not None:
        values["original_url"] = str(changes["original_url"])
    if "expires_at" in changes:
        values["expires_at"] = normalize_expiry(changes["expires_at"])
    if changes.get("is_active") is not None:
        values["is_active"] = changes["is_active"]

    if values:
        await session.execute(update(Link).where(Link.c.id == link.id).values(**values))
        await session.commit()
        logger.info("Short URL %s updated: %s", link.short_code, sorted(values))
    return await get_link_by_id(session, link.id)


async def delete_link(session: AsyncSession, code: str, user: User) -> None:
    link = await get_link_by_code(session, code)
    ensure_can_manage(link, user)

    await session.execute(delete(clicks).where(clicks.c.link_id == link.id))
    await session.execute(delete(Link).where(Link.c.id == link.id))
    await session.commit()
    logger.info("Short URL %s deleted by %s", link.short_code, user.id)


async def increment_clicks(session: AsyncSession, link_id: uuid.UUID) -> None:
    """Atomic ``clicks = clicks + 1`` in the store, never read-modify-write."""
    statement = (
        update(Link).where(Link.c.id == link_id).values(clicks=Link.c.clicks + 1)
    )
    await session.execute(statement)
    await session.commit()
