import uuid
from datetime import datetime

from links.schemas import CamelModel, LinkRead


class ClickSummary(CamelModel):
    total_clicks: int
    browsers: dict[str, int]
    devices: dict[str, int]
    operating_systems: dict[str, int]
    locations: dict[str, int]
    referrers: dict[str, int]
    clicks_by_hour: list[int]


class ClickRead(CamelModel):
    id: int
    link_id: uuid.UUID
    ip_address: str
    device: str
    browser: str
    operating_system: str
    referrer: str
    location: str
    clicked_at: datetime


class LinkAnalytics(CamelModel):
    summary: ClickSummary
    details: list[ClickRead]


class LinkAnalyticsResponse(CamelModel):
    success: bool = True
    data: LinkAnalytics


class RealTimeAnalytics(LinkAnalytics):
    window_minutes: int


class RealTimeAnalyticsResponse(CamelModel):
    success: bool = True
    data: RealTimeAnalytics


class ClickExportResponse(CamelModel):
    success: bool = True
    data: list[ClickRead]


class UserSummary(CamelModel):
    total_links: int
    active_links: int
    summary: ClickSummary


class UserSummaryResponse(CamelModel):
    success: bool = True
    data: UserSummary


class TopLinksResponse(CamelModel):
    success: bool = True
    data: list[LinkRead]
