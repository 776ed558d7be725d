import math
from datetime import datetime
from typing import Optional

def remaining_seconds(time_limit_minutes: Optional[int], started_at: datetime, now: datetime) -> Optional[int]:
    """
    Seconds left before an attempt's deadline, evaluated with the server clock.

    Returns None for untimed attempts. Otherwise the value is a whole number of
    seconds in [0, limit * 60], rounded up so that any time left counts as
    "not expired"; it never increases as `now` moves forward.
    """
    if time_limit_minutes is None:
        return None

    budget = time_limit_minutes * 60
    elapsed = (now - started_at).total_seconds()
    remaining = math.ceil(budget - elapsed)
    return max(0, min(budget, remaining))

def is_expired(time_limit_minutes: Optional[int], started_at: datetime, now: datetime) -> bool:
    remaining = remaining_seconds(time_limit_minutes, started_at, now)
    return remaining is not None and remaining <= 0
