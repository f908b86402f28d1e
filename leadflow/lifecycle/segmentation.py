"""
Segmentation & task generation — the ordered decision list.

First matching rule wins:
  1. Demo / Visit      → Awaiting Event,     "<Outcome> with <name>" at the given date
  2. PayLink           → Payment Pending,    payment follow-up tomorrow
  3. FollowLater       → Standard Follow-up, "Follow up with <name>" at the given date
  4. NeedsInfo         → Action Required,    outcome_detail text, due now
  5. lukewarm signals  → Needs Nurturing,    value content in two days
  6. default           → Standard Follow-up, next day in the 1/3/5/7 cadence

Touchpoint and Creation interactions always take rule 6.

evaluate() composes scoring with decide(); both are pure. Persisting the
result (and superseding the previous open task) is the repository's job.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from leadflow.config import NURTURE_DELAY_DAYS, PAYMENT_FOLLOW_UP_DAYS
from leadflow.lifecycle import scoring, sequencer
from leadflow.lifecycle.enums import Interest, Intent, Outcome, InteractionType, Segment
from leadflow.lifecycle.inputs import InteractionInput

NURTURE_INTEREST = (Interest.UNSURE, Interest.HIGH)
NURTURE_INTENT = (Intent.NEUTRAL, Intent.LOW)


@dataclass(frozen=True)
class TaskPlan:
    """The single follow-up task to open for the lead."""
    description: str
    due_date: datetime
    segment: Segment
    follow_up_day: Optional[int] = None


@dataclass(frozen=True)
class Decision:
    segment: Segment
    task: TaskPlan
    rule: str


@dataclass(frozen=True)
class LifecycleResult:
    score: scoring.ScoreResult
    segment: Segment
    task: TaskPlan
    rule: str


def _standard_follow_up(lead_name, history, now) -> Decision:
    follow_up = sequencer.next_follow_up(history, now)
    segment = Segment.STANDARD_FOLLOW_UP
    return Decision(
        segment=segment,
        task=TaskPlan(
            description=sequencer.follow_up_description(lead_name, follow_up.day),
            due_date=follow_up.due_date,
            segment=segment,
            follow_up_day=follow_up.day,
        ),
        rule='cadence',
    )


def decide(lead, interaction: InteractionInput, history: Iterable, now: datetime) -> Decision:
    """
    Pick the lead's next segment and follow-up task.

    lead:        anything with a .name
    history:     the lead's logged interactions, newest first (for the cadence)

    The incoming interaction counts as the newest history entry: a touchpoint
    acknowledging "Day 3" moves the cadence on to Day 5.
    """
    name = lead.name
    outcome = interaction.outcome
    history = [interaction, *history]

    if interaction.type is not InteractionType.ENGAGEMENT:
        return _standard_follow_up(name, history, now)

    if outcome in (Outcome.DEMO, Outcome.VISIT):
        segment = Segment.AWAITING_EVENT
        return Decision(
            segment=segment,
            task=TaskPlan(f"{outcome.value} with {name}", interaction.outcome_date, segment),
            rule='event',
        )

    if outcome is Outcome.PAY_LINK:
        segment = Segment.PAYMENT_PENDING
        return Decision(
            segment=segment,
            task=TaskPlan(
                f"Close {name}: follow up on payment link",
                now + timedelta(days=PAYMENT_FOLLOW_UP_DAYS),
                segment,
            ),
            rule='payment',
        )

    if outcome is Outcome.FOLLOW_LATER:
        segment = Segment.STANDARD_FOLLOW_UP
        return Decision(
            segment=segment,
            task=TaskPlan(f"Follow up with {name}", interaction.outcome_date, segment),
            rule='follow_later',
        )

    if outcome is Outcome.NEEDS_INFO:
        segment = Segment.ACTION_REQUIRED
        return Decision(
            segment=segment,
            task=TaskPlan(interaction.outcome_detail, now, segment),
            rule='needs_info',
        )

    if interaction.interest in NURTURE_INTEREST and interaction.intent in NURTURE_INTENT:
        segment = Segment.NEEDS_NURTURING
        return Decision(
            segment=segment,
            task=TaskPlan(
                f"Nurture {name}: send value content",
                now + timedelta(days=NURTURE_DELAY_DAYS),
                segment,
            ),
            rule='nurture',
        )

    return _standard_follow_up(name, history, now)


def score_interaction(current_score: int, interaction: InteractionInput,
                      tables: Optional[scoring.ScoringTables] = None) -> scoring.ScoreResult:
    if interaction.type is InteractionType.ENGAGEMENT:
        return scoring.score(
            interaction.interest, interaction.intent, interaction.engagement, current_score, tables,
        )
    if interaction.type is InteractionType.TOUCHPOINT:
        return scoring.touchpoint_decay(current_score, tables)
    return scoring.unscored(current_score)


def evaluate(lead, interaction: InteractionInput, history: Iterable, now: datetime,
             tables: Optional[scoring.ScoringTables] = None) -> LifecycleResult:
    """Score the interaction, then decide segment + task. No side effects."""
    result = score_interaction(lead.score, interaction, tables)
    decision = decide(lead, interaction, history, now)
    return LifecycleResult(
        score=result,
        segment=decision.segment,
        task=decision.task,
        rule=decision.rule,
    )
