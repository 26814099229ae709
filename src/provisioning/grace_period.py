"""Cooldown gate between consecutive adjustments."""

from datetime import datetime, timedelta
from typing import Optional


def is_after_grace_period(
    last_adjusted_at: Optional[datetime],
    cooldown_minutes: Optional[float],
    now: datetime,
) -> bool:
    """True when no cooldown applies or the cooldown has fully elapsed.

    A missing timestamp (never adjusted) or a missing cooldown passes
    vacuously. The clock is not assumed monotonic: if ``now`` jumps back
    before ``last_adjusted_at`` the gate reports the cooldown as not elapsed.
    """
    if last_adjusted_at is None or cooldown_minutes is None:
        return True
    return now - last_adjusted_at > timedelta(minutes=cooldown_minutes)
