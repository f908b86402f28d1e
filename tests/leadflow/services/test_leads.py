"""Tests for leadflow.services.leads — the transactional lead operations."""
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy.orm.exc import StaleDataError

from leadflow.errors import InvalidInteractionShape, LeadNotFound, TaskNotFound, TransactionConflict
from leadflow.lifecycle.responsiveness import as_utc
from leadflow.models.interaction import Interaction
from leadflow.models.lead import Lead
from leadflow.models.task import Task
from leadflow.services import leads as lead_service
from leadflow.services.repository import LeadRepository


def _hot_engagement(**overrides):
    data = {'interest': 'High', 'intent': 'High', 'engagement': 'Positive'}
    data.update(overrides)
    return data


def _open_tasks(session, lead_id):
    return session.query(Task).filter(Task.lead_id == lead_id, Task.completed.is_(False)).all()


def _interaction_count(session, lead_id):
    return session.query(Interaction).filter(Interaction.lead_id == lead_id).count()


@pytest.fixture
def lead(now):
    """A freshly added lead (Day 1 task open)."""
    return lead_service.add_lead('Riley Chen', phone='555-0100', course='Data Science', now=now).lead


# ---------------------------------------------------------------------------
# add_lead
# ---------------------------------------------------------------------------

class TestAddLead:
    """add_lead() creates the lead, its Creation interaction and the Day 1 task."""

    def test_defaults(self, now, db_session):
        outcome = lead_service.add_lead('Riley Chen', traits=['Haggling', 'Haggling', ' '], now=now)

        stored = db_session.get(Lead, outcome.lead.id)
        assert stored.score == 50
        assert stored.status == 'Active'
        assert stored.segment == 'Standard Follow-up'
        assert stored.traits == ['Haggling']

    def test_creation_interaction_logged(self, now, db_session):
        outcome = lead_service.add_lead('Riley Chen', now=now)

        history = db_session.query(Interaction).filter(Interaction.lead_id == outcome.lead.id).all()
        assert len(history) == 1
        assert history[0].type == 'Creation'
        assert history[0].notes == 'Lead Created'
        assert history[0].interaction_score == 0
        assert history[0].seq == 1

    def test_first_task_is_day_one(self, now, db_session):
        outcome = lead_service.add_lead('Riley Chen', now=now)

        tasks = _open_tasks(db_session, outcome.lead.id)
        assert len(tasks) == 1
        assert tasks[0].description == 'Follow up with Riley Chen (Day 1)'
        assert tasks[0].follow_up_day == 1
        assert as_utc(tasks[0].due_date) == now + timedelta(days=1)

    def test_blank_name_rejected(self, db_session):
        with pytest.raises(InvalidInteractionShape):
            lead_service.add_lead('   ')
        assert db_session.query(Lead).count() == 0

    def test_traits_must_be_a_list(self):
        with pytest.raises(InvalidInteractionShape) as exc:
            lead_service.add_lead('Riley Chen', traits='Haggling')
        assert exc.value.field == 'traits'

    def test_notifies(self, now):
        with patch('leadflow.services.leads.notifications.notify_lead_created') as notify:
            outcome = lead_service.add_lead('Riley Chen', now=now)
        notify.assert_called_once_with(outcome.lead, outcome.task)


# ---------------------------------------------------------------------------
# log_interaction
# ---------------------------------------------------------------------------

class TestLogInteraction:
    """log_interaction() scores, re-segments and supersedes the open task atomically."""

    def test_hot_engagement(self, lead, now, db_session):
        outcome = lead_service.log_interaction(lead.id, _hot_engagement(), now=now)

        assert outcome.new_score == 95
        assert outcome.new_segment == 'Standard Follow-up'
        # Creation carries no follow-up marker, so the cadence starts over
        assert outcome.new_task.description == 'Follow up with Riley Chen (Day 1)'
        stored = db_session.get(Lead, lead.id)
        assert stored.score == 95
        assert as_utc(stored.last_interaction_at) == now

    def test_exactly_one_open_task(self, lead, now, db_session):
        first_task = _open_tasks(db_session, lead.id)[0]

        outcome = lead_service.log_interaction(
            lead.id, _hot_engagement(outcome='Demo', outcome_detail='2026-03-05T15:00:00Z'), now=now,
        )

        db_session.expire_all()
        open_tasks = _open_tasks(db_session, lead.id)
        assert [t.id for t in open_tasks] == [outcome.task.id]
        assert open_tasks[0].description == 'Demo with Riley Chen'
        assert [t.id for t in outcome.superseded] == [first_task.id]
        closed = db_session.get(Task, first_task.id)
        assert closed.completed is True
        assert as_utc(closed.completed_at) == now

    def test_interaction_row_records_score_move(self, lead, now, db_session):
        outcome = lead_service.log_interaction(
            lead.id, _hot_engagement(interest='Unsure', intent='Neutral', engagement='Neutral'), now=now,
        )

        record = db_session.get(Interaction, outcome.interaction.id)
        assert (record.previous_score, record.interaction_score, record.new_score) == (50, -10, 40)
        assert record.interest == 'Unsure'
        assert record.seq == 2
        assert outcome.new_segment == 'Needs Nurturing'

    def test_paylink(self, lead, now):
        outcome = lead_service.log_interaction(lead.id, _hot_engagement(outcome='PayLink'), now=now)
        assert outcome.new_segment == 'Payment Pending'
        assert outcome.task.description == 'Close Riley Chen: follow up on payment link'

    def test_score_clamped(self, lead, now):
        lead_service.log_interaction(lead.id, _hot_engagement(interest='Love'), now=now)
        outcome = lead_service.log_interaction(lead.id, _hot_engagement(interest='Love'), now=now)
        assert outcome.new_score == 100

    def test_unknown_lead(self, now):
        with pytest.raises(LeadNotFound):
            lead_service.log_interaction('no-such-lead', _hot_engagement(), now=now)

    def test_invalid_payload_writes_nothing(self, lead, now, db_session):
        before = _interaction_count(db_session, lead.id)

        with pytest.raises(InvalidInteractionShape):
            lead_service.log_interaction(lead.id, _hot_engagement(outcome='Demo'), now=now)

        db_session.expire_all()
        assert _interaction_count(db_session, lead.id) == before
        assert db_session.get(Lead, lead.id).score == 50

    def test_touchpoint_advances_cadence(self, lead, now):
        outcome = lead_service.log_interaction(
            lead.id, {'notes': 'Follow up with Riley Chen (Day 1) sent.'}, 'Touchpoint', now=now,
        )
        assert outcome.new_score == 48
        assert outcome.task.description == 'Follow up with Riley Chen (Day 3)'

    def test_notes_override(self, lead, now):
        outcome = lead_service.log_interaction(lead.id, _hot_engagement(), notes='Called back', now=now)
        assert outcome.interaction.notes == 'Called back'

    def test_notifies(self, lead, now):
        with patch('leadflow.services.leads.notifications.notify_interaction_logged') as notify:
            outcome = lead_service.log_interaction(lead.id, _hot_engagement(), now=now)
        notify.assert_called_once_with(outcome.lead, outcome.interaction, outcome.task)


class TestConcurrentWrites:
    """A stale version is retried with a fresh read, then surfaced as a conflict."""

    def _racing(self, session_factory, times):
        original = LeadRepository.interactions_for
        calls = {'n': 0}

        def racing(repo, lead_id):
            if calls['n'] < times:
                calls['n'] += 1
                other = session_factory()
                rival = other.get(Lead, lead_id)
                rival.note = f"edited elsewhere {calls['n']}"
                other.commit()
                other.close()
            return original(repo, lead_id)

        return racing, calls

    def test_retry_after_concurrent_write(self, lead, now, session_factory, db_session):
        racing, calls = self._racing(session_factory, times=1)

        with patch.object(LeadRepository, 'interactions_for', racing):
            outcome = lead_service.log_interaction(lead.id, _hot_engagement(), now=now)

        assert calls['n'] == 1
        stored = db_session.get(Lead, lead.id)
        # Both writes survive: the rival's note and the retried interaction
        assert stored.note == 'edited elsewhere 1'
        assert stored.score == outcome.new_score == 95
        assert len(_open_tasks(db_session, lead.id)) == 1
        assert _interaction_count(db_session, lead.id) == 2

    def test_conflict_after_retries_exhausted(self, lead, now, session_factory, db_session):
        racing, _ = self._racing(session_factory, times=10)

        with patch.object(LeadRepository, 'interactions_for', racing):
            with pytest.raises(TransactionConflict) as exc:
                lead_service.log_interaction(lead.id, _hot_engagement(), now=now)

        assert exc.value.attempts == 3
        assert exc.value.lead_id == lead.id
        assert _interaction_count(db_session, lead.id) == 1
        assert db_session.get(Lead, lead.id).score == 50


# ---------------------------------------------------------------------------
# complete_task
# ---------------------------------------------------------------------------

class TestCompleteTask:
    """complete_task() walks the 1/3/5/7 cadence and archives on the last step."""

    def _open(self, db_session, lead_id):
        db_session.expire_all()
        tasks = _open_tasks(db_session, lead_id)
        assert len(tasks) == 1
        return tasks[0]

    def test_full_cadence_then_archive(self, lead, now, db_session):
        seen = []
        for step in range(3):
            task = self._open(db_session, lead.id)
            seen.append(task.follow_up_day)
            completion = lead_service.complete_task(task.id, lead.id, now=now + timedelta(days=step))
            assert completion.touchpoint is not None
            assert completion.touchpoint.interaction.notes == f'{task.description} sent.'

        final = self._open(db_session, lead.id)
        seen.append(final.follow_up_day)
        assert seen == [1, 3, 5, 7]
        assert final.description == 'Follow up with Riley Chen (Day 7)'

        completion = lead_service.complete_task(final.id, lead.id, now=now + timedelta(days=7))

        assert completion.archived is True
        db_session.expire_all()
        stored = db_session.get(Lead, lead.id)
        assert stored.status == 'Archived'
        assert stored.score == 44
        assert _open_tasks(db_session, lead.id) == []

    def test_non_terminal_completions_walk_the_cadence(self, lead, now, db_session):
        days = []
        for step in range(5):
            task = self._open(db_session, lead.id)
            days.append(task.follow_up_day)
            if step < 4:
                lead_service.complete_task(
                    task.id, lead.id, is_terminal_follow_up=False, now=now + timedelta(days=step),
                )
        assert days == [1, 3, 5, 7, 7]

    def test_touchpoint_decays_score(self, lead, now, db_session):
        task = self._open(db_session, lead.id)
        completion = lead_service.complete_task(task.id, lead.id, now=now)

        touchpoint = completion.touchpoint
        assert touchpoint.interaction.type == 'Touchpoint'
        assert touchpoint.interaction.follow_up_day == 1
        assert (touchpoint.interaction.interaction_score, touchpoint.new_score) == (-2, 48)
        assert touchpoint.task.description == 'Follow up with Riley Chen (Day 3)'
        assert completion.lead.status == 'Active'

    def test_explicit_terminal_flag(self, lead, now, db_session):
        task = self._open(db_session, lead.id)
        completion = lead_service.complete_task(task.id, lead.id, is_terminal_follow_up=True, now=now)
        assert completion.archived is True
        assert completion.lead.status == 'Archived'

    def test_explicit_non_terminal_on_day_seven(self, lead, now, db_session):
        lead_service.log_interaction(
            lead.id, {'notes': 'Follow up with Riley Chen (Day 5) sent.'}, 'Touchpoint', now=now,
        )
        task = self._open(db_session, lead.id)
        assert task.follow_up_day == 7

        completion = lead_service.complete_task(task.id, lead.id, is_terminal_follow_up=False, now=now)

        assert completion.archived is False
        # Cadence saturates at the last day
        assert completion.touchpoint.task.follow_up_day == 7

    def test_without_touchpoint(self, lead, now, db_session):
        task = self._open(db_session, lead.id)
        before = _interaction_count(db_session, lead.id)

        completion = lead_service.complete_task(task.id, lead.id, log_touchpoint=False, now=now)

        assert completion.touchpoint is None
        assert completion.archived is False
        db_session.expire_all()
        assert _open_tasks(db_session, lead.id) == []
        assert _interaction_count(db_session, lead.id) == before
        assert db_session.get(Lead, lead.id).status == 'Active'

    def test_already_completed_is_noop(self, lead, now, db_session):
        task = self._open(db_session, lead.id)
        lead_service.complete_task(task.id, lead.id, log_touchpoint=False, now=now)
        count = _interaction_count(db_session, lead.id)

        again = lead_service.complete_task(task.id, lead.id, now=now)

        assert again.already_completed is True
        assert _interaction_count(db_session, lead.id) == count

    def test_task_of_another_lead(self, lead, now, db_session):
        other = lead_service.add_lead('Casey Park', now=now).lead
        task = self._open(db_session, other.id)
        with pytest.raises(TaskNotFound):
            lead_service.complete_task(task.id, lead.id, now=now)

    def test_unknown_lead(self, now):
        with pytest.raises(LeadNotFound):
            lead_service.complete_task('task-x', 'no-such-lead', now=now)

    def test_archived_lead_reactivated_by_interaction(self, lead, now, db_session):
        task = self._open(db_session, lead.id)
        lead_service.complete_task(task.id, lead.id, is_terminal_follow_up=True, now=now)

        outcome = lead_service.log_interaction(lead.id, _hot_engagement(), now=now)

        assert outcome.lead.status == 'Active'
        assert len(_open_tasks(db_session, lead.id)) == 1

    def test_archive_notifies(self, lead, now, db_session):
        task = self._open(db_session, lead.id)
        with patch('leadflow.services.leads.notifications.notify_lead_archived') as notify:
            lead_service.complete_task(task.id, lead.id, is_terminal_follow_up=True, now=now)
        notify.assert_called_once()


class TestIsTerminalTask:

    def test_by_follow_up_day(self):
        task = SimpleNamespace(follow_up_day=7, description='anything')
        assert lead_service.is_terminal_task(task) is True

    def test_legacy_description(self):
        task = SimpleNamespace(follow_up_day=None, description='Follow up with Riley Chen (Day 7)')
        assert lead_service.is_terminal_task(task) is True

    def test_not_terminal(self):
        task = SimpleNamespace(follow_up_day=3, description='Follow up with Riley Chen (Day 3)')
        assert lead_service.is_terminal_task(task) is False


# ---------------------------------------------------------------------------
# Details + reads
# ---------------------------------------------------------------------------

class TestLeadDetails:

    def test_update_details(self, lead, db_session):
        lead_service.update_lead_details(
            lead.id, note='Prefers evenings', traits=['Price Sensitive'], insights=['Has a laptop', ''],
        )
        stored = db_session.get(Lead, lead.id)
        assert stored.note == 'Prefers evenings'
        assert stored.traits == ['Price Sensitive']
        assert stored.insights == ['Has a laptop']
        assert stored.score == 50

    def test_update_unknown_lead(self):
        with pytest.raises(LeadNotFound):
            lead_service.update_lead_details('no-such-lead', note='x')

    def test_insights_must_be_a_list(self, lead):
        with pytest.raises(InvalidInteractionShape):
            lead_service.update_lead_details(lead.id, insights='one')

    def test_responsiveness(self, lead, now):
        assert lead_service.lead_responsiveness(lead, now + timedelta(hours=2)).value == 'hot'
        assert lead_service.lead_responsiveness(lead, now + timedelta(hours=48)).value == 'warm'
        assert lead_service.lead_responsiveness(lead, now + timedelta(days=4)).value == 'cold'


class TestReads:

    def test_get_lead(self, lead):
        stored, interactions, task = lead_service.get_lead(lead.id)
        assert stored.id == lead.id
        assert [i.type for i in interactions] == ['Creation']
        assert task.follow_up_day == 1

    def test_list_interactions_newest_first(self, lead, now):
        lead_service.log_interaction(lead.id, _hot_engagement(), now=now)
        types = [i.type for i in lead_service.list_interactions(lead.id)]
        assert types == ['Engagement', 'Creation']

    def test_list_leads_filters(self, lead, now):
        lead_service.log_interaction(lead.id, _hot_engagement(outcome='PayLink'), now=now)
        lead_service.add_lead('Casey Park', now=now)

        assert [row.name for row in lead_service.list_leads(segment='Payment Pending')] == ['Riley Chen']
        assert len(lead_service.list_leads(status='Active')) == 2
        assert lead_service.list_leads(status='Archived') == []

    def test_open_tasks_skip_archived(self, lead, now, db_session):
        other = lead_service.add_lead('Casey Park', now=now).lead
        task = _open_tasks(db_session, other.id)[0]
        lead_service.complete_task(task.id, other.id, is_terminal_follow_up=True, now=now)

        pairs = lead_service.list_open_tasks()
        assert [row.id for _, row in pairs] == [lead.id]

    def test_next_follow_up(self, lead, now):
        lead_service.log_interaction(
            lead.id, {'notes': 'Follow up with Riley Chen (Day 3) sent.'}, 'Touchpoint', now=now,
        )
        assert lead_service.next_follow_up(lead.id, now).day == 5

    def test_pipeline_stats(self, lead, now, db_session):
        lead_service.log_interaction(lead.id, _hot_engagement(outcome='PayLink'), now=now)
        other = lead_service.add_lead('Casey Park', now=now).lead
        task = _open_tasks(db_session, other.id)[0]
        lead_service.complete_task(task.id, other.id, is_terminal_follow_up=True, now=now)

        stats = lead_service.pipeline_stats()
        assert stats['segments']['Payment Pending'] == 1
        assert stats['segments']['Standard Follow-up'] == 0
        assert stats['active'] == 1
        assert stats['archived'] == 1
        assert stats['open_tasks'] == 1


class TestRunWithRetries:
    """run_with_retries() honours an explicit attempt budget."""

    def _stale(self):
        calls = {'n': 0}

        def work(repo):
            calls['n'] += 1
            raise StaleDataError('stale')

        return work, calls

    def test_default_budget(self):
        work, calls = self._stale()
        with pytest.raises(TransactionConflict) as exc:
            lead_service.run_with_retries('lead-1', work)
        assert calls['n'] == exc.value.attempts == 3

    def test_explicit_budget(self):
        work, calls = self._stale()
        with pytest.raises(TransactionConflict):
            lead_service.run_with_retries('lead-1', work, retries=1)
        assert calls['n'] == 1

    def test_zero_is_not_the_default(self):
        work, calls = self._stale()
        with pytest.raises(TransactionConflict) as exc:
            lead_service.run_with_retries('lead-1', work, retries=0)
        assert calls['n'] == 1
        assert exc.value.attempts == 1

    def test_returns_work_result(self):
        assert lead_service.run_with_retries('lead-1', lambda repo: 'ok', retries=0) == 'ok'


class TestLogContext:
    """Service log records carry lead context for the formatters."""

    def test_interaction_log_record(self, lead, now, caplog):
        with caplog.at_level('INFO', logger='services.leads'):
            outcome = lead_service.log_interaction(lead.id, _hot_engagement(outcome='PayLink'), now=now)

        record = [r for r in caplog.records if 'Engagement logged' in r.getMessage()][0]
        assert record.lead_id == lead.id
        assert record.task_id == outcome.task.id
        assert record.interaction_type == 'Engagement'
        assert record.segment == 'Payment Pending'

    def test_completion_log_record(self, lead, now, db_session, caplog):
        task = _open_tasks(db_session, lead.id)[0]
        with caplog.at_level('INFO', logger='services.leads'):
            lead_service.complete_task(task.id, lead.id, is_terminal_follow_up=True, now=now)

        record = [r for r in caplog.records if 'archived' in r.getMessage()][0]
        assert record.lead_id == lead.id
        assert record.task_id == task.id
