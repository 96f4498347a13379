"""
Histogram helpers for the dashboard charts under the map.

Timestamps carrying an offset are converted to the map's local zone before
bucketing; naive timestamps are taken as already local.
"""
from datetime import datetime, tzinfo
from typing import Dict, Iterable, List, Optional

from dateutil import tz

from nirapod_map.schemas import CrimeMarker

WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

DHAKA = tz.gettz("Asia/Dhaka")


def local_time(value: datetime, zone: Optional[tzinfo] = None) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(zone or DHAKA)


def count_by_hour(markers: Iterable[CrimeMarker], zone: Optional[tzinfo] = None) -> List[Dict[str, object]]:
    """24 buckets labelled "0:00".."23:00"; markers without a time are skipped."""
    buckets = [{"hour": f"{h}:00", "count": 0} for h in range(24)]
    for marker in markers:
        if marker.time is not None:
            buckets[local_time(marker.time, zone).hour]["count"] += 1
    return buckets


def count_by_weekday(markers: Iterable[CrimeMarker], zone: Optional[tzinfo] = None) -> List[Dict[str, object]]:
    """Seven buckets, Sunday first."""
    buckets = [{"day": name, "count": 0} for name in WEEKDAY_NAMES]
    for marker in markers:
        if marker.time is not None:
            # datetime.weekday() is Monday=0
            buckets[(local_time(marker.time, zone).weekday() + 1) % 7]["count"] += 1
    return buckets


def non_empty(buckets: List[Dict[str, object]]) -> List[Dict[str, object]]:
    """Drop zero-count buckets, as the charts do."""
    return [b for b in buckets if b["count"]]


def summarize(markers: Iterable[CrimeMarker], zone: Optional[tzinfo] = None) -> Dict[str, List[Dict[str, object]]]:
    """Both chart series for the markers currently shown."""
    markers = list(markers)
    return {
        "by_hour": non_empty(count_by_hour(markers, zone)),
        "by_weekday": non_empty(count_by_weekday(markers, zone)),
    }
