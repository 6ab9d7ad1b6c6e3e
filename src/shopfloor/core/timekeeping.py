"""TimeAccumulator -- elapsed time arithmetic on caller-supplied instants

Pure functions, no clock reads: every instant is injected so tests can pin time.
"""

import math
from datetime import datetime

from .exceptions import InvalidIntervalError


class TimeAccumulator:
    """Elapsed-seconds helpers used by the event log and the state machine"""

    @staticmethod
    def elapsed_since(start: datetime, now: datetime) -> float:
        """Seconds between two instants

        Raises:
            InvalidIntervalError: now precedes start
        """
        if now < start:
            raise InvalidIntervalError(start, now)
        return (now - start).total_seconds()

    @classmethod
    def accumulate(cls, prior_total: float, start: datetime, now: datetime) -> float:
        """prior_total plus the seconds elapsed between start and now"""
        return prior_total + cls.elapsed_since(start, now)


def format_duration(seconds: float) -> str:
    """Render seconds as HH:MM:SS; negative or NaN renders as 00:00:00"""
    if math.isnan(seconds) or seconds < 0:
        return "00:00:00"
    whole = int(seconds)
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
