"""
Follow-up sequencer — the standard 1 → 3 → 5 → 7 day cadence.

Reads interaction history (the one being logged first), never the open task:
the open task is always superseded before the next decision is made.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from leadflow.config import FOLLOW_UP_SEQUENCE

FOLLOW_UP_MARKER = 'Follow up'
DAY_PATTERN = re.compile(r'Day (\d+)')


@dataclass(frozen=True)
class FollowUp:
    day: int
    due_date: datetime


def follow_up_description(lead_name: str, day: int) -> str:
    return f"Follow up with {lead_name} (Day {day})"


def is_terminal_day(day: Optional[int], sequence: Sequence[int] = FOLLOW_UP_SEQUENCE) -> bool:
    return day is not None and day == sequence[-1]


def is_terminal_description(description: Optional[str],
                            sequence: Sequence[int] = FOLLOW_UP_SEQUENCE) -> bool:
    """Legacy check for tasks written before follow_up_day existed."""
    if not description:
        return False
    return f"Day {sequence[-1]}" in description


def marker_day(entry) -> Optional[int]:
    """
    The follow-up day an interaction acknowledges, or None.

    Prefers the structured follow_up_day; falls back to parsing 'Day N' out of
    notes that mention a follow-up.
    """
    day = getattr(entry, 'follow_up_day', None)
    if day is not None:
        return int(day)

    notes = getattr(entry, 'notes', None) or ''
    if FOLLOW_UP_MARKER not in notes:
        return None
    match = DAY_PATTERN.search(notes)
    return int(match.group(1)) if match else None


def next_follow_up(history: Iterable, now: datetime,
                   sequence: Sequence[int] = FOLLOW_UP_SEQUENCE) -> FollowUp:
    """
    Next step in the cadence after the most recent follow-up marker.

    history: the lead's interactions, newest first.
    No marker → first day. Last day, or a day outside the sequence → saturate
    at the last day.
    """
    last_day = None
    for entry in history:
        last_day = marker_day(entry)
        if last_day is not None:
            break

    if last_day is None:
        day = sequence[0]
    elif last_day in sequence and sequence.index(last_day) + 1 < len(sequence):
        day = sequence[sequence.index(last_day) + 1]
    else:
        day = sequence[-1]

    return FollowUp(day=day, due_date=now + timedelta(days=day))
