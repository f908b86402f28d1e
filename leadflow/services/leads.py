"""
Lead lifecycle service — the three operations collaborators call.

    add_lead()         create a lead and seed its first follow-up task
    log_interaction()  score + segment + supersede the open task, atomically
    complete_task()    close a task; archive on the final follow-up

Each call is one transaction on one lead aggregate. Inputs are validated
before a session is opened. A stale read (another writer got there first)
is retried with a fresh read up to MAX_TRANSACTION_RETRIES times, then
surfaced as TransactionConflict. Callers that keep optimistic local copies
must re-fetch after any error.
"""
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm.exc import StaleDataError

from leadflow.config import DEFAULT_LEAD_SCORE, MAX_TRANSACTION_RETRIES
from leadflow.errors import InvalidInteractionShape, TransactionConflict
from leadflow.lifecycle import sequencer
from leadflow.lifecycle.enums import InteractionType, LeadStatus, Segment
from leadflow.lifecycle.inputs import InteractionInput, parse_interaction
from leadflow.lifecycle.responsiveness import classify
from leadflow.lifecycle.segmentation import evaluate
from leadflow.logging_config import lead_context
from leadflow.models.interaction import Interaction
from leadflow.models.lead import Lead, new_id
from leadflow.models.task import Task
from leadflow.services import notifications
from leadflow.services.locks import lead_lock
from leadflow.services.repository import transaction, read_only

logger = logging.getLogger('services.leads')

CREATION_NOTES = 'Lead Created'


@dataclass
class InteractionOutcome:
    """What log_interaction() committed."""
    lead: Lead
    interaction: Interaction
    task: Task
    superseded: List[Task] = field(default_factory=list)
    rule: str = ''

    @property
    def new_score(self):
        return self.interaction.new_score

    @property
    def new_segment(self):
        return self.lead.segment

    @property
    def new_task(self):
        return self.task

    def to_dict(self):
        return {
            'new_score': self.new_score,
            'new_segment': self.new_segment,
            'new_task': self.task.to_dict(),
            'interaction': self.interaction.to_dict(),
            'superseded_task_ids': [t.id for t in self.superseded],
            'rule': self.rule,
        }


@dataclass
class TaskCompletion:
    """What complete_task() committed."""
    lead: Lead
    task: Task
    archived: bool = False
    already_completed: bool = False
    touchpoint: Optional[InteractionOutcome] = None

    def to_dict(self):
        data = {
            'task': self.task.to_dict(),
            'lead': self.lead.to_dict(),
            'archived': self.archived,
            'already_completed': self.already_completed,
        }
        if self.touchpoint is not None:
            data['touchpoint'] = self.touchpoint.to_dict()
        return data


def utcnow():
    return datetime.now(timezone.utc)


def run_with_retries(lead_id, work: Callable, retries: Optional[int] = None):
    """
    Run work(repo) in a transaction, retrying on a stale version.

    Every attempt opens a new session, so each retry re-reads the lead.
    retries is the total number of attempts (default MAX_TRANSACTION_RETRIES);
    0 still makes one attempt.
    """
    attempts = max(1, retries if retries is not None else MAX_TRANSACTION_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            with transaction() as repo:
                return work(repo)
        except StaleDataError:
            logger.warning(
                "Lead %s changed underneath us (attempt %d/%d) — retrying",
                lead_id, attempt, attempts,
                extra=lead_context(lead_id),
            )
    raise TransactionConflict(lead_id, attempts)


def _apply_interaction(repo, lead, interaction: InteractionInput, now) -> InteractionOutcome:
    history = repo.interactions_for(lead.id)
    result = evaluate(lead, interaction, history, now)
    record, task, superseded = repo.apply(lead, result, interaction, now)
    return InteractionOutcome(
        lead=lead, interaction=record, task=task, superseded=superseded, rule=result.rule,
    )


# ── addLead ──────────────────────────────────────────────────────────────────

def add_lead(name, phone='', course='', traits=None, note='', now=None) -> InteractionOutcome:
    """
    Create a lead (score 50, Active, Standard Follow-up) and log its Creation
    interaction, which opens the Day 1 follow-up task. One transaction.
    """
    name = (name or '').strip()
    if not name:
        raise InvalidInteractionShape("'name' is required", field='name')
    if traits is not None and not isinstance(traits, (list, tuple, set)):
        raise InvalidInteractionShape("'traits' must be a list of strings", field='traits')

    now = now or utcnow()
    lead_id = new_id()
    creation = InteractionInput(type=InteractionType.CREATION, notes=CREATION_NOTES)

    def work(repo):
        lead = repo.add_lead(Lead(
            id=lead_id,
            name=name,
            phone=(phone or '').strip(),
            course=(course or '').strip(),
            score=DEFAULT_LEAD_SCORE,
            status=LeadStatus.ACTIVE.value,
            segment=Segment.STANDARD_FOLLOW_UP.value,
            traits=_dedupe(traits or []),
            insights=[],
            note=note or '',
            created_at=now,
            last_interaction_at=now,
        ))
        return _apply_interaction(repo, lead, creation, now)

    outcome = run_with_retries(lead_id, work)
    logger.info(
        "Lead %s created (%s) — first task: %s", lead_id, name, outcome.task.description,
        extra=lead_context(lead_id, outcome.task.id, InteractionType.CREATION, outcome.new_segment),
    )
    notifications.notify_lead_created(outcome.lead, outcome.task)
    return outcome


# ── logInteraction ───────────────────────────────────────────────────────────

def log_interaction(lead_id, data, interaction_type=InteractionType.ENGAGEMENT,
                    notes=None, now=None) -> InteractionOutcome:
    """
    Score the interaction, pick the next segment + task, and persist it all
    in one transaction: new interaction row, lead update, prior open task
    completed, new task inserted.

    data: a raw payload dict (validated here) or an InteractionInput.
    """
    if isinstance(data, InteractionInput):
        interaction = data
    else:
        interaction = parse_interaction(data, interaction_type)
    if notes is not None:
        interaction = dataclasses.replace(interaction, notes=notes)

    now = now or utcnow()

    def work(repo):
        lead = repo.require_lead(lead_id)
        return _apply_interaction(repo, lead, interaction, now)

    with lead_lock(lead_id):
        outcome = run_with_retries(lead_id, work)

    logger.info(
        "Lead %s %s logged: %+d → %d, segment=%s (%s), next=%r",
        lead_id, interaction.type.value, outcome.interaction.interaction_score,
        outcome.new_score, outcome.new_segment, outcome.rule, outcome.task.description,
        extra=lead_context(lead_id, outcome.task.id, interaction.type, outcome.new_segment),
    )
    if interaction.type is not InteractionType.CREATION:
        notifications.notify_interaction_logged(outcome.lead, outcome.interaction, outcome.task)
    return outcome


# ── completeTask ─────────────────────────────────────────────────────────────

def is_terminal_task(task) -> bool:
    return (
        sequencer.is_terminal_day(task.follow_up_day)
        or sequencer.is_terminal_description(task.description)
    )


def complete_task(task_id, lead_id, is_terminal_follow_up=None, log_touchpoint=True,
                  now=None) -> TaskCompletion:
    """
    Close a task.

    Terminal follow-up (explicit flag, or derived from the task when None):
    the task is completed and the lead archived.
    Otherwise, with log_touchpoint, the completion is recorded as a Touchpoint
    interaction ("<description> sent."), which decays the score and opens the
    next cadence task. Without it the task is simply closed.
    Completing an already-completed task is a no-op.
    """
    now = now or utcnow()

    def work(repo):
        lead = repo.require_lead(lead_id)
        task = repo.get_task(task_id, lead_id)
        if task.completed:
            return TaskCompletion(lead=lead, task=task, already_completed=True)

        terminal = is_terminal_follow_up
        if terminal is None:
            terminal = is_terminal_task(task)

        if terminal:
            repo.close_task(lead, task, now, archive=True)
            return TaskCompletion(lead=lead, task=task, archived=True)

        if log_touchpoint:
            touchpoint = InteractionInput(
                type=InteractionType.TOUCHPOINT,
                notes=f"{task.description} sent.",
                follow_up_day=task.follow_up_day,
            )
            outcome = _apply_interaction(repo, lead, touchpoint, now)
            return TaskCompletion(lead=lead, task=task, touchpoint=outcome)

        repo.close_task(lead, task, now)
        return TaskCompletion(lead=lead, task=task)

    with lead_lock(lead_id):
        completion = run_with_retries(lead_id, work)

    if completion.already_completed:
        logger.info("Task %s on lead %s was already completed", task_id, lead_id,
                    extra=lead_context(lead_id, task_id))
    elif completion.archived:
        logger.info("Task %s completed — lead %s archived", task_id, lead_id,
                    extra=lead_context(lead_id, task_id))
        notifications.notify_lead_archived(completion.lead)
    elif completion.touchpoint is not None:
        logger.info(
            "Task %s acknowledged as touchpoint on lead %s — next=%r",
            task_id, lead_id, completion.touchpoint.task.description,
            extra=lead_context(lead_id, task_id, InteractionType.TOUCHPOINT),
        )
    else:
        logger.info("Task %s on lead %s completed", task_id, lead_id,
                    extra=lead_context(lead_id, task_id))
    return completion


# ── Lead details + reads ─────────────────────────────────────────────────────

def _dedupe(tags):
    seen = []
    for tag in tags:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def update_lead_details(lead_id, note=None, traits=None, insights=None) -> Lead:
    """Edit qualitative fields. Does not touch score, segment or tasks."""
    details = {}
    if note is not None:
        details['note'] = str(note)
    if traits is not None:
        if not isinstance(traits, (list, tuple, set)):
            raise InvalidInteractionShape("'traits' must be a list of strings", field='traits')
        details['traits'] = _dedupe(traits)
    if insights is not None:
        if not isinstance(insights, (list, tuple)):
            raise InvalidInteractionShape("'insights' must be a list of strings", field='insights')
        details['insights'] = [str(i) for i in insights if str(i).strip()]

    def work(repo):
        lead = repo.require_lead(lead_id)
        if details:
            repo.update_details(lead, **details)
        return lead

    with lead_lock(lead_id):
        lead = run_with_retries(lead_id, work)
    logger.info("Lead %s details updated (%s)", lead_id, ', '.join(sorted(details)) or 'no changes',
                extra=lead_context(lead_id))
    return lead


def lead_responsiveness(lead, now=None):
    return classify(lead.last_interaction_at, now or utcnow())


def get_lead(lead_id):
    """Lead, its interaction log (newest first) and its open task."""
    with read_only() as repo:
        lead = repo.require_lead(lead_id)
        return lead, repo.interactions_for(lead_id), repo.open_task_for(lead_id)


def list_leads(status=None, segment=None):
    with read_only() as repo:
        return repo.list_leads(status=status, segment=segment)


def list_interactions(lead_id):
    with read_only() as repo:
        repo.require_lead(lead_id)
        return repo.interactions_for(lead_id)


def list_open_tasks(include_archived=False):
    """Open tasks with their leads, soonest due first; archived leads skipped."""
    with read_only() as repo:
        tasks = repo.open_tasks()
        leads = {lead.id: lead for lead in repo.list_leads()}
    pairs = []
    for task in tasks:
        lead = leads.get(task.lead_id)
        if lead is None:
            continue
        if lead.status == LeadStatus.ARCHIVED.value and not include_archived:
            continue
        pairs.append((task, lead))
    return pairs


def next_follow_up(lead_id, now=None):
    """Cadence step the lead would get next, from its closed history."""
    with read_only() as repo:
        repo.require_lead(lead_id)
        history = repo.interactions_for(lead_id)
    return sequencer.next_follow_up(history, now or utcnow())


def pipeline_stats():
    with read_only() as repo:
        by_segment = repo.segment_counts()
        archived = len(repo.list_leads(status=LeadStatus.ARCHIVED.value))
        open_tasks = len(repo.open_tasks())
    return {
        'segments': {segment.value: by_segment.get(segment.value, 0) for segment in Segment},
        'active': sum(by_segment.values()),
        'archived': archived,
        'open_tasks': open_tasks,
    }
