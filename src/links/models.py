import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, MetaData, String, Table, Uuid

MAX_URL_LENGTH = 2048

metadata = MetaData()

links = Table(
    "links",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("owner_id", Uuid, nullable=False, index=True),
    Column("original_url", String(length=MAX_URL_LENGTH), nullable=False),
    Column("short_code", String(length=100), nullable=False, unique=True, index=True),
    Column("custom_alias", String(length=100), nullable=True, unique=True),
    Column("clicks", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False),
    Column("expires_at", DateTime, nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
)
