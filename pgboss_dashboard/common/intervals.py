# pgboss_dashboard/common/intervals.py
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List


@dataclass(frozen=True)
class StatsInterval:
    """
    A chart window: how wide each bucket is, how many buckets are shown and
    how the bucket start is labelled.
    """

    name: str
    unit: str  # second, minute, hour, day or month
    count: int
    label_format: str

    def truncate(self, moment: datetime) -> datetime:
        if self.unit == "second":
            return moment.replace(microsecond=0)
        if self.unit == "minute":
            return moment.replace(second=0, microsecond=0)
        if self.unit == "hour":
            return moment.replace(minute=0, second=0, microsecond=0)
        if self.unit == "day":
            return moment.replace(hour=0, minute=0, second=0, microsecond=0)
        return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    def window_start(self, now: datetime) -> datetime:
        """Oldest creation time that still falls inside the chart window."""
        if self.unit == "month":
            year, month = now.year, now.month - self.count
            while month < 1:
                month += 12
                year -= 1
            day = min(now.day, 28)
            return now.replace(year=year, month=month, day=day)
        return now - timedelta(**{f"{self.unit}s": self.count})

    def label(self, bucket_start: datetime) -> str:
        return bucket_start.strftime(self.label_format)


INTERVALS: Dict[str, StatsInterval] = {
    "minute": StatsInterval("minute", "second", 60, "%H:%M:%S"),
    "hour": StatsInterval("hour", "minute", 60, "%H:%M"),
    "day": StatsInterval("day", "hour", 24, "%H:00"),
    "week": StatsInterval("week", "day", 7, "%m-%d"),
    "month": StatsInterval("month", "day", 30, "%m-%d"),
    "year": StatsInterval("year", "month", 12, "%b"),
}

DEFAULT_INTERVAL = "hour"


def get_interval(name: str) -> StatsInterval:
    # Unknown names fall back to the hourly chart.
    return INTERVALS.get(name, INTERVALS[DEFAULT_INTERVAL])


def interval_names() -> List[str]:
    return list(INTERVALS)
