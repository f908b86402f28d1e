"""
Interaction input contract.

parse_interaction() turns an API payload into a validated InteractionInput or
raises InvalidInteractionShape. It runs before any session is opened, so a
rejected payload can never leave partial state behind.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from leadflow.errors import InvalidInteractionShape
from leadflow.lifecycle.enums import (
    Interest, Intent, Engagement, Outcome, InteractionType,
    DATED_OUTCOMES, DETAIL_REQUIRED_OUTCOMES,
)


@dataclass(frozen=True)
class InteractionInput:
    type: InteractionType
    interest: Optional[Interest] = None
    intent: Optional[Intent] = None
    engagement: Optional[Engagement] = None
    outcome: Optional[Outcome] = None
    outcome_detail: Optional[str] = None
    outcome_date: Optional[datetime] = None
    notes: str = ''
    follow_up_day: Optional[int] = None


def parse_datetime(value: str, field: str = 'outcome_detail') -> datetime:
    """ISO-8601 date or datetime; naive values are taken as UTC."""
    try:
        dt = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
    except ValueError:
        raise InvalidInteractionShape(f"'{value}' is not an ISO-8601 date", field=field)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_enum(enum_cls, value, field, required):
    if value is None or value == '':
        if required:
            raise InvalidInteractionShape(f"'{field}' is required", field=field)
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise InvalidInteractionShape(
            f"'{value}' is not a valid {field} (expected one of: {allowed})", field=field,
        )


def _pick(data, *keys):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def parse_interaction(data: Optional[Dict[str, Any]],
                      interaction_type=InteractionType.ENGAGEMENT) -> InteractionInput:
    """
    Validate a raw payload for the given interaction type.

    Engagement requires interest/intent/engagement and, for outcomes that
    need it, outcome_detail. Touchpoint and Creation carry no signals.
    Both snake_case and camelCase keys are accepted.
    """
    data = data or {}
    interaction_type = _parse_enum(
        InteractionType, getattr(interaction_type, 'value', interaction_type), 'type', True,
    )
    notes = str(_pick(data, 'notes') or '')

    follow_up_day = _pick(data, 'follow_up_day', 'followUpDay')
    if follow_up_day is not None:
        try:
            follow_up_day = int(follow_up_day)
        except (TypeError, ValueError):
            raise InvalidInteractionShape("'follow_up_day' must be an integer", field='follow_up_day')

    if interaction_type is not InteractionType.ENGAGEMENT:
        return InteractionInput(type=interaction_type, notes=notes, follow_up_day=follow_up_day)

    interest = _parse_enum(Interest, _pick(data, 'interest'), 'interest', True)
    intent = _parse_enum(Intent, _pick(data, 'intent'), 'intent', True)
    engagement = _parse_enum(Engagement, _pick(data, 'engagement'), 'engagement', True)
    outcome = _parse_enum(Outcome, _pick(data, 'outcome'), 'outcome', False)

    detail = _pick(data, 'outcome_detail', 'outcomeDetail')
    detail = str(detail).strip() if detail is not None else ''
    outcome_date = None

    if outcome in DETAIL_REQUIRED_OUTCOMES and not detail:
        raise InvalidInteractionShape(
            f"outcome_detail is required when outcome is {outcome.value}", field='outcome_detail',
        )
    if outcome in DATED_OUTCOMES:
        outcome_date = parse_datetime(detail)

    return InteractionInput(
        type=interaction_type,
        interest=interest,
        intent=intent,
        engagement=engagement,
        outcome=outcome,
        outcome_detail=detail or None,
        outcome_date=outcome_date,
        notes=notes,
    )
