"""
Table-driven retry/backoff policy.

The policy knows nothing about what is being retried: callers persist the
attempt count themselves and ask for the next step.
"""
from collections import namedtuple
from django.conf import settings

RetryStep = namedtuple('RetryStep', ['attempt', 'delay_seconds', 'exhausted'])


class BackoffPolicy:
    def __init__(self, delays):
        delays = tuple(int(d) for d in delays)
        if not delays:
            raise ValueError("BackoffPolicy needs at least one delay")
        if any(d < 0 for d in delays):
            raise ValueError("Backoff delays must be non-negative")
        self.delays = delays

    @classmethod
    def from_setting(cls, name):
        return cls(getattr(settings, name))

    @property
    def max_attempts(self):
        return len(self.delays)

    def next_step(self, attempt):
        """
        Step for the given zero-based attempt number.

        ``exhausted`` is True once ``attempt`` has used up the table; the
        caller then records a terminal failure.
        """
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        if attempt >= len(self.delays):
            return RetryStep(attempt=attempt, delay_seconds=None, exhausted=True)
        return RetryStep(attempt=attempt, delay_seconds=self.delays[attempt], exhausted=False)

    def total_delay(self):
        return sum(self.delays)


def format_delay(seconds):
    """Human readable delay: 45s, 5m, 2h, 1d."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"
