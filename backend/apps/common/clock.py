from datetime import timedelta
from django.utils import timezone


class SystemClock:
    """Wall clock backed by django.utils.timezone (aware, UTC)."""

    def now(self):
        return timezone.now()


class FixedClock:
    """Clock frozen at a given instant; used by tests and replays."""

    def __init__(self, current):
        if timezone.is_naive(current):
            raise ValueError("FixedClock requires an aware datetime")
        self.current = current

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)
        return self.current


default_clock = SystemClock()
