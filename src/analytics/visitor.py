import ipaddress
import logging
from dataclasses import asdict, dataclass
from typing import Optional, Union

import geoip2.database
import geoip2.errors
from fastapi import Request
from user_agents import parse as parse_user_agent

from analytics.models import MAX_AGENT_LENGTH, MAX_REFERRER_LENGTH
from config import GEOIP_DB_PATH

logger = logging.getLogger(__name__)

LOCAL_DEVELOPMENT = "Local Development"
UNKNOWN = "unknown"
DIRECT = "direct"

_geo_reader: Optional[geoip2.database.Reader] = None


@dataclass(frozen=True)
class VisitorInfo:
    ip_address: str
    device: str
    browser: str
    operating_system: str
    referrer: str
    location: str

    def as_row(self) -> dict:
        return asdict(self)


def open_geo_reader(path: Optional[str] = None) -> Optional[geoip2.database.Reader]:
    """
    Open the local MaxMind database at startup. A configured path that cannot
    be opened raises here rather than on the redirect path.
    """
    global _geo_reader
    path = path or GEOIP_DB_PATH
    if path and _geo_reader is None:
        _geo_reader = geoip2.database.Reader(path)
        logger.info("GeoIP database loaded from %s", path)
    return _geo_reader


def get_geo_reader() -> Optional[geoip2.database.Reader]:
    return _geo_reader


def close_geo_reader() -> None:
    global _geo_reader
    if _geo_reader is not None:
        _geo_reader.close()
        _geo_reader = None


def lookup_location(ip_address: str) -> Optional[str]:
    reader = get_geo_reader()
    if reader is None:
        return None
    try:
        response = reader.city(ip_address)
    except (geoip2.errors.AddressNotFoundError, ValueError):
        return None
    city = response.city.name or "Unknown City"
    country = response.country.iso_code or "Unknown Country"
    return f"{city}, {country}"


def parse_ip(ip_address: Optional[str]) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    if not ip_address:
        return None
    try:
        return ipaddress.ip_address(ip_address)
    except ValueError:
        return None


def is_loopback(ip_address: Optional[str]) -> bool:
    parsed = parse_ip(ip_address)
    return parsed is not None and parsed.is_loopback


def get_client_ip(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


def _family_and_version(family: str, version: str) -> str:
    if not family or family == "Other":
        family = UNKNOWN
    return f"{family} {version}".strip()


def _device_type(parsed, user_agent: str) -> str:
    if parsed.is_tablet:
        return "tablet"
    if parsed.is_mobile:
        return "mobile"
    lowered = user_agent.lower()
    if "mobile" in lowered:
        return "mobile"
    if "tablet" in lowered:
        return "tablet"
    return "desktop"


def build_visitor_info(
    user_agent: Optional[str],
    ip_address: Optional[str],
    referrer: Optional[str],
) -> VisitorInfo:
    user_agent = user_agent or ""
    parsed = parse_user_agent(user_agent)

    # Header-supplied values that are not an IP address are not stored verbatim.
    address = parse_ip(ip_address)
    if address is not None and address.is_loopback:
        ip_value = LOCAL_DEVELOPMENT
        location = LOCAL_DEVELOPMENT
    elif address is not None:
        ip_value = str(address)
        location = lookup_location(ip_value) or UNKNOWN
    else:
        ip_value = UNKNOWN
        location = UNKNOWN

    return VisitorInfo(
        ip_address=ip_value,
        device=_device_type(parsed, user_agent),
        browser=_family_and_version(parsed.browser.family, parsed.browser.version_string)[
            :MAX_AGENT_LENGTH
        ],
        operating_system=_family_and_version(parsed.os.family, parsed.os.version_string)[
            :MAX_AGENT_LENGTH
        ],
        referrer=(referrer or DIRECT)[:MAX_REFERRER_LENGTH],
        location=location,
    )


def collect_visitor_info(request: Request) -> VisitorInfo:
    return build_visitor_info(
        user_agent=request.headers.get("user-agent"),
        ip_address=get_client_ip(request),
        referrer=request.headers.get("referer"),
    )
