from collections import Counter
from collections.abc import Iterable
from typing import Any

HOURS_IN_DAY = 24


def summarize_clicks(events: Iterable[Any]) -> dict:
    """
    Fold click rows into counts per browser, device, operating system,
    location and referrer, plus an hour-of-day histogram and a total.

    Grouping keys are the stored strings as-is. Any object exposing the
    click columns as attributes works (SQLAlchemy rows, dataclasses).
    """
    browsers = Counter()
    devices = Counter()
    operating_systems = Counter()
    locations = Counter()
    referrers = Counter()
    clicks_by_hour = [0] * HOURS_IN_DAY
    total = 0

    for event in events:
        total += 1
        browsers[event.browser] += 1
        devices[event.device] += 1
        operating_systems[event.operating_system] += 1
        locations[event.location] += 1
        referrers[event.referrer] += 1
        clicks_by_hour[event.clicked_at.hour] += 1

    return {
        "total_clicks": total,
        "browsers": dict(browsers),
        "devices": dict(devices),
        "operating_systems": dict(operating_systems),
        "locations": dict(locations),
        "referrers": dict(referrers),
        "clicks_by_hour": clicks_by_hour,
    }
