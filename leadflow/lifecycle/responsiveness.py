"""Hot / warm / cold classification by time since the last interaction."""
from datetime import datetime, timezone
from typing import Optional

from leadflow.config import HOT_HOURS, WARM_HOURS
from leadflow.lifecycle.enums import Responsiveness


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def classify(last_interaction_at: Optional[datetime], now: datetime) -> Responsiveness:
    if last_interaction_at is None:
        return Responsiveness.COLD

    hours = (as_utc(now) - as_utc(last_interaction_at)).total_seconds() / 3600
    if hours < HOT_HOURS:
        return Responsiveness.HOT
    if hours < WARM_HOURS:
        return Responsiveness.WARM
    return Responsiveness.COLD
