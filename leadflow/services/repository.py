"""
Lead aggregate repository — reads plus one transactional write per aggregate.

The aggregate is a lead, its open task and its interaction log. The write
path (apply / close_task / archive) bumps the lead's version first, so two
writers racing on the same lead are serialized by the version check: the
loser gets StaleDataError and is retried by the service layer with a fresh
read.

The repository never commits; transaction() owns commit/rollback.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from leadflow.database import get_session
from leadflow.errors import LeadNotFound, TaskNotFound
from leadflow.lifecycle.enums import LeadStatus
from leadflow.lifecycle.inputs import InteractionInput
from leadflow.lifecycle.segmentation import LifecycleResult
from leadflow.models.interaction import Interaction
from leadflow.models.lead import Lead
from leadflow.models.task import Task

logger = logging.getLogger('services.repository')


class LeadRepository:

    def __init__(self, session):
        self.session = session

    # ── Reads ─────────────────────────────────────────────────────────────

    def get_lead(self, lead_id) -> Optional[Lead]:
        return self.session.get(Lead, lead_id)

    def require_lead(self, lead_id) -> Lead:
        lead = self.get_lead(lead_id)
        if lead is None:
            raise LeadNotFound(lead_id)
        return lead

    def list_leads(self, status=None, segment=None) -> List[Lead]:
        """Leads ordered by most recent interaction first."""
        query = self.session.query(Lead)
        if status:
            query = query.filter(Lead.status == status)
        if segment:
            query = query.filter(Lead.segment == segment)
        return query.order_by(
            Lead.last_interaction_at.desc().nulls_last(),
            Lead.created_at.desc(),
        ).all()

    def interactions_for(self, lead_id) -> List[Interaction]:
        """The lead's interaction log, newest first."""
        return (
            self.session.query(Interaction)
            .filter(Interaction.lead_id == lead_id)
            .order_by(Interaction.seq.desc())
            .all()
        )

    def open_tasks(self, lead_id=None) -> List[Task]:
        """Incomplete tasks, soonest due first."""
        query = self.session.query(Task).filter(Task.completed.is_(False))
        if lead_id is not None:
            query = query.filter(Task.lead_id == lead_id)
        return query.order_by(Task.due_date.asc()).all()

    def open_task_for(self, lead_id) -> Optional[Task]:
        tasks = self.open_tasks(lead_id)
        return tasks[0] if tasks else None

    def get_task(self, task_id, lead_id=None) -> Task:
        task = self.session.get(Task, task_id)
        if task is None or (lead_id is not None and task.lead_id != lead_id):
            raise TaskNotFound(task_id, lead_id)
        return task

    def segment_counts(self, status=LeadStatus.ACTIVE.value):
        rows = (
            self.session.query(Lead.segment, func.count(Lead.id))
            .filter(Lead.status == status)
            .group_by(Lead.segment)
            .all()
        )
        return {segment: count for segment, count in rows}

    def _next_seq(self, lead_id) -> int:
        current = (
            self.session.query(func.max(Interaction.seq))
            .filter(Interaction.lead_id == lead_id)
            .scalar()
        )
        return (current or 0) + 1

    # ── Writes ────────────────────────────────────────────────────────────

    def add_lead(self, lead: Lead) -> Lead:
        self.session.add(lead)
        self.session.flush()
        return lead

    def touch(self, lead: Lead):
        """Bump the lead's version even when no column changed."""
        flag_modified(lead, 'status')
        self.session.flush()

    def complete_open_tasks(self, lead_id, now: datetime) -> List[Task]:
        superseded = self.open_tasks(lead_id)
        for task in superseded:
            task.completed = True
            task.completed_at = now
        self.session.flush()
        return superseded

    def apply(self, lead: Lead, result: LifecycleResult, interaction: InteractionInput,
              now: datetime):
        """
        Write one lifecycle decision for the lead.

        Order matters: the lead UPDATE goes first so a stale version fails
        before anything else is written; prior open tasks are closed and
        flushed before the new one is inserted so the open-task index never
        sees two rows.
        """
        lead.score = result.score.new_score
        lead.segment = result.segment.value
        lead.status = LeadStatus.ACTIVE.value
        lead.last_interaction_at = now
        self.touch(lead)

        superseded = self.complete_open_tasks(lead.id, now)

        record = Interaction(
            lead_id=lead.id,
            seq=self._next_seq(lead.id),
            type=interaction.type.value,
            date=now,
            interest=interaction.interest.value if interaction.interest else None,
            intent=interaction.intent.value if interaction.intent else None,
            engagement=interaction.engagement.value if interaction.engagement else None,
            outcome=interaction.outcome.value if interaction.outcome else None,
            outcome_detail=interaction.outcome_detail,
            notes=interaction.notes or '',
            follow_up_day=interaction.follow_up_day,
            interaction_score=result.score.interaction_score,
            previous_score=result.score.previous_score,
            new_score=result.score.new_score,
        )
        task = Task(
            lead_id=lead.id,
            description=result.task.description,
            due_date=result.task.due_date,
            segment=result.task.segment.value,
            follow_up_day=result.task.follow_up_day,
            completed=False,
            created_at=now,
        )
        self.session.add_all([record, task])
        self.session.flush()
        return record, task, superseded

    def close_task(self, lead: Lead, task: Task, now: datetime, archive=False):
        if archive:
            lead.status = LeadStatus.ARCHIVED.value
        self.touch(lead)
        task.completed = True
        task.completed_at = now
        self.session.flush()
        return task

    def update_details(self, lead: Lead, **details):
        for key, value in details.items():
            setattr(lead, key, value)
        self.touch(lead)
        return lead


@contextmanager
def transaction():
    """
    Yield a LeadRepository bound to a fresh session; commit on success.

    StaleDataError propagates untouched so callers can retry. Any other
    database error is rolled back, logged and re-raised.
    """
    session = get_session()
    try:
        yield LeadRepository(session)
        session.commit()
    except StaleDataError:
        session.rollback()
        raise
    except SQLAlchemyError:
        session.rollback()
        logger.error("Lead aggregate write failed — rolled back", exc_info=True)
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def read_only():
    """Yield a LeadRepository for reads; never commits."""
    session = get_session()
    try:
        yield LeadRepository(session)
    finally:
        session.close()
