import importlib
from collections import namedtuple
from datetime import datetime
from types import SimpleNamespace

import geoip2.errors
import pytest

import config
from analytics.models import MAX_REFERRER_LENGTH
from analytics.summary import summarize_clicks
from analytics.visitor import (
    DIRECT,
    LOCAL_DEVELOPMENT,
    build_visitor_info,
    get_geo_reader,
    lookup_location,
    open_geo_reader,
)
from errors import NotFoundError, ValidationError
from links.service import generate_random_code, normalize_alias

Click = namedtuple(
    "Click", "browser device operating_system location referrer clicked_at"
)

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
SAFARI_IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)


@pytest.mark.parametrize(
    "length",
    [6, 7, 8, 9],
)
def test_generate_random_code_length(length):
    code = generate_random_code(length)
    assert len(code) == length
    assert all(c.isdigit() or c.isalpha() for c in code)


@pytest.mark.parametrize(
    "alias, expected",
    [("promo", "promo"), ("  Promo2024 ", "promo2024"), ("", None), ("   ", None), (None, None)],
)
def test_normalize_alias(alias, expected):
    assert normalize_alias(alias) == expected


@pytest.mark.parametrize("alias", ["no", "has space", "dash-ed", "x" * 31, "analytics"])
def test_normalize_alias_rejects(alias):
    with pytest.raises(ValidationError):
        normalize_alias(alias)


def test_summarize_empty():
    summary = summarize_clicks([])
    assert summary == {
        "total_clicks": 0,
        "browsers": {},
        "devices": {},
        "operating_systems": {},
        "locations": {},
        "referrers": {},
        "clicks_by_hour": [0] * 24,
    }


def test_summarize_groups_by_exact_value():
    events = [
        Click("Chrome 120", "desktop", "Windows 10", "Berlin, DE", "direct", datetime(2024, 5, 1, 9, 15)),
        Click("chrome 120", "desktop", "Windows 10", "Berlin, DE", "direct", datetime(2024, 5, 1, 9, 45)),
        Click("Safari 17", "mobile", "iOS 17", "unknown", "https://t.co/", datetime(2024, 5, 2, 23, 0)),
    ]
    summary = summarize_clicks(events)
    assert summary["total_clicks"] == 3
    assert summary["browsers"] == {"Chrome 120": 1, "chrome 120": 1, "Safari 17": 1}
    assert summary["devices"] == {"desktop": 2, "mobile": 1}
    assert summary["operating_systems"] == {"Windows 10": 2, "iOS 17": 1}
    assert summary["locations"] == {"Berlin, DE": 2, "unknown": 1}
    assert summary["referrers"] == {"direct": 2, "https://t.co/": 1}
    assert summary["clicks_by_hour"][9] == 2
    assert summary["clicks_by_hour"][23] == 1
    assert sum(summary["clicks_by_hour"]) == 3


def test_visitor_info_desktop_loopback():
    info = build_visitor_info(CHROME_WINDOWS, "127.0.0.1", None)
    assert info.device == "desktop"
    assert info.browser.startswith("Chrome")
    assert info.operating_system.startswith("Windows")
    assert info.ip_address == LOCAL_DEVELOPMENT
    assert info.location == LOCAL_DEVELOPMENT
    assert info.referrer == DIRECT


def test_visitor_info_ipv6_loopback():
    info = build_visitor_info(CHROME_WINDOWS, "::1", "https://example.com/")
    assert info.ip_address == LOCAL_DEVELOPMENT
    assert info.referrer == "https://example.com/"


@pytest.mark.parametrize(
    "user_agent, device",
    [(SAFARI_IPHONE, "mobile"), (SAFARI_IPAD, "tablet"), (CHROME_WINDOWS, "desktop")],
)
def test_visitor_info_device(user_agent, device):
    assert build_visitor_info(user_agent, "127.0.0.1", None).device == device


def test_visitor_info_missing_user_agent():
    info = build_visitor_info(None, None, None)
    assert info.browser == "unknown"
    assert info.operating_system == "unknown"
    assert info.device == "desktop"
    assert info.ip_address == "unknown"
    assert info.location == "unknown"


def test_visitor_info_geolocates_public_ip(monkeypatch):
    monkeypatch.setattr(
        "analytics.visitor.lookup_location",
        lambda ip: "Mountain View, US" if ip == "8.8.8.8" else None,
    )
    info = build_visitor_info(SAFARI_IPHONE, "8.8.8.8", None)
    assert info.ip_address == "8.8.8.8"
    assert info.location == "Mountain View, US"
    assert info.operating_system.startswith("iOS")


def test_visitor_info_without_geo_database():
    info = build_visitor_info(CHROME_WINDOWS, "8.8.8.8", None)
    assert info.location == "unknown"


def test_visitor_info_ignores_forwarded_value_that_is_not_an_ip():
    info = build_visitor_info(CHROME_WINDOWS, "x" * 100, None)
    assert info.ip_address == "unknown"
    assert info.location == "unknown"


def test_visitor_info_truncates_long_referrer():
    referrer = "https://example.com/" + "r" * 5000
    info = build_visitor_info(CHROME_WINDOWS, "127.0.0.1", referrer)
    assert len(info.referrer) == MAX_REFERRER_LENGTH
    assert info.referrer == referrer[:MAX_REFERRER_LENGTH]


def test_open_geo_reader_fails_on_missing_database():
    with pytest.raises(OSError):
        open_geo_reader("/nonexistent/GeoLite2-City.mmdb")
    assert get_geo_reader() is None


class FakeGeoReader:
    def __init__(self, response=None):
        self.response = response

    def city(self, ip_address):
        if self.response is None:
            raise geoip2.errors.AddressNotFoundError(f"{ip_address} is not in the database")
        return self.response


def test_lookup_location_with_reader(monkeypatch):
    response = SimpleNamespace(
        city=SimpleNamespace(name="Mountain View"),
        country=SimpleNamespace(iso_code="US"),
    )
    monkeypatch.setattr("analytics.visitor._geo_reader", FakeGeoReader(response))
    assert lookup_location("8.8.8.8") == "Mountain View, US"


def test_lookup_location_partial_record(monkeypatch):
    response = SimpleNamespace(
        city=SimpleNamespace(name=None),
        country=SimpleNamespace(iso_code="DE"),
    )
    monkeypatch.setattr("analytics.visitor._geo_reader", FakeGeoReader(response))
    assert lookup_location("8.8.8.8") == "Unknown City, DE"


def test_lookup_location_address_not_found(monkeypatch):
    monkeypatch.setattr("analytics.visitor._geo_reader", FakeGeoReader())
    assert lookup_location("10.0.0.1") is None
    assert build_visitor_info(CHROME_WINDOWS, "10.0.0.1", None).location == "unknown"


def test_error_messages():
    assert NotFoundError().message == "URL not found"
    error = ValidationError("Custom alias is reserved")
    assert error.message == "Custom alias is reserved"
    assert str(error) == "Custom alias is reserved"


def test_secret_is_required(monkeypatch):
    monkeypatch.delenv("SECRET", raising=False)
    with pytest.raises(RuntimeError):
        importlib.reload(config)
    monkeypatch.undo()
    importlib.reload(config)
    assert config.SECRET
