from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table

from links.models import metadata

MAX_AGENT_LENGTH = 128
MAX_REFERRER_LENGTH = 2048

clicks = Table(
    "clicks",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("link_id", ForeignKey("links.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("ip_address", String(length=64), nullable=False),
    Column("device", String(length=32), nullable=False),
    Column("browser", String(length=MAX_AGENT_LENGTH), nullable=False),
    Column("operating_system", String(length=MAX_AGENT_LENGTH), nullable=False),
    Column("referrer", String(length=MAX_REFERRER_LENGTH), nullable=False),
    Column("location", String(length=255), nullable=False),
    Column("clicked_at", DateTime, nullable=False, index=True),
)
