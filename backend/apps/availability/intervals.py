"""
Time interval primitives used by availability and conflict checks.

All instants are timezone-aware and compared in UTC. Intervals are half-open:
``[start, end)``, so back-to-back intervals do not overlap.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_SLOT_STEP_MINUTES = 15


@dataclass(frozen=True, order=True)
class TimeInterval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("TimeInterval requires aware datetimes")
        if not self.start < self.end:
            raise ValueError("TimeInterval start must be before end")

    @classmethod
    def from_start(cls, start, duration_minutes):
        return cls(start, start + timedelta(minutes=duration_minutes))

    @property
    def duration(self):
        return self.end - self.start

    def overlaps(self, other):
        return self.start < other.end and other.start < self.end

    def buffered(self, minutes):
        """Expand both ends by ``minutes``."""
        if not minutes:
            return self
        pad = timedelta(minutes=minutes)
        return TimeInterval(self.start - pad, self.end + pad)

    def contains(self, instant):
        return self.start <= instant < self.end

    def to_dict(self, tz=None):
        start, end = self.start, self.end
        if tz is not None:
            zone = get_zone(tz)
            start, end = start.astimezone(zone), end.astimezone(zone)
        return {'start': start.isoformat(), 'end': end.isoformat()}


@dataclass(frozen=True, order=True)
class WallClockInterval:
    """Interval of local wall-clock times within a single day."""
    start: time
    end: time

    def __post_init__(self):
        if not self.start < self.end:
            raise ValueError(f"Interval start {self.start} must be before end {self.end}")

    @classmethod
    def parse(cls, start, end):
        return cls(parse_wall_clock(start), parse_wall_clock(end))

    def to_utc(self, day, tz):
        """Resolve this interval on ``day`` in zone ``tz`` to a UTC TimeInterval."""
        zone = get_zone(tz)
        start = datetime.combine(day, self.start, tzinfo=zone).astimezone(dt_timezone.utc)
        end = datetime.combine(day, self.end, tzinfo=zone).astimezone(dt_timezone.utc)
        return TimeInterval(start, end)

    def overlaps(self, other):
        return self.start < other.end and other.start < self.end

    def to_dict(self):
        return {'start': self.start.strftime('%H:%M'), 'end': self.end.strftime('%H:%M')}


@dataclass(frozen=True)
class DayTemplate:
    enabled: bool = True
    intervals: tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class DateOverride:
    date: date
    available: bool
    intervals: tuple = field(default_factory=tuple)
    reason: str = ''


def parse_wall_clock(value):
    """Accept ``time`` objects or 'HH:MM' / 'HH:MM:SS' strings."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid time value: {value!r}")
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"Invalid time value: {value!r}")


def get_zone(tz):
    if isinstance(tz, str):
        try:
            return ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {tz}")
    return tz


def is_valid_timezone(name):
    try:
        get_zone(name)
    except ValueError:
        return False
    return True


def find_overlaps(intervals):
    """Return pairs of overlapping intervals, checked on sorted neighbours."""
    ordered = sorted(intervals)
    return [
        (first, second)
        for first, second in zip(ordered, ordered[1:])
        if first.overlaps(second)
    ]
