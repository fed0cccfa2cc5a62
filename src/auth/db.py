import enum
from typing import Optional

from fastapi import Depends
from fastapi_users.db import SQLAlchemyBaseUserTableUUID, SQLAlchemyUserDatabase
from sqlalchemy import String
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from database import get_async_session
from models import Base


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class Subscription(str, enum.Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"


class User(SQLAlchemyBaseUserTableUUID, Base):
    name: Mapped[Optional[str]] = mapped_column(String(length=255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default=Role.USER.value
    )
    subscription: Mapped[str] = mapped_column(
        String(length=16), nullable=False, default=Subscription.FREE.value
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    yield SQLAlchemyUserDatabase(session, User)
