"""
Lead routes — leads, interactions and tasks JSON API.

Domain errors (LeadNotFound, TaskNotFound, TransactionConflict,
InvalidInteractionShape) are turned into JSON responses by the app-level
error handler; anything else is a 500.
"""
import logging
from flask import Blueprint, request, jsonify

from leadflow.errors import InvalidInteractionShape
from leadflow.lifecycle.enums import InteractionType, LeadStatus, Segment
from leadflow.services import leads as lead_service

logger = logging.getLogger('routes.leads')

bp = Blueprint('leads', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInteractionShape('Request body must be a JSON object')
    return data


def _optional_bool(data, *keys):
    for key in keys:
        if key in data and data[key] is not None:
            value = data[key]
            if not isinstance(value, bool):
                raise InvalidInteractionShape(f"'{key}' must be true or false", field=key)
            return value
    return None


def _lead_summary(lead):
    data = lead.to_dict()
    data['responsiveness'] = lead_service.lead_responsiveness(lead).value
    return data


# ── Leads ────────────────────────────────────────────────────────────────────

@bp.route('/api/leads', methods=['POST'])
def create_lead():
    """Add a lead and seed its first follow-up task."""
    data = _json_body()
    outcome = lead_service.add_lead(
        name=data.get('name', ''),
        phone=data.get('phone', ''),
        course=data.get('course', ''),
        traits=data.get('traits'),
        note=data.get('note', ''),
    )
    return jsonify({
        'lead': _lead_summary(outcome.lead),
        'task': outcome.task.to_dict(),
    }), 201


@bp.route('/api/leads')
def list_leads():
    """List leads, most recently contacted first. Filters: status, segment."""
    status = request.args.get('status') or None
    segment = request.args.get('segment') or None
    if status and status not in [s.value for s in LeadStatus]:
        raise InvalidInteractionShape(f"Unknown status '{status}'", field='status')
    if segment and segment not in [s.value for s in Segment]:
        raise InvalidInteractionShape(f"Unknown segment '{segment}'", field='segment')

    leads = lead_service.list_leads(status=status, segment=segment)
    return jsonify([_lead_summary(lead) for lead in leads])


@bp.route('/api/leads/<lead_id>')
def get_lead(lead_id):
    """Lead detail with interaction history and the open task."""
    lead, interactions, task = lead_service.get_lead(lead_id)
    return jsonify({
        'lead': _lead_summary(lead),
        'interactions': [i.to_dict() for i in interactions],
        'task': task.to_dict() if task else None,
    })


@bp.route('/api/leads/<lead_id>', methods=['PATCH'])
def update_lead(lead_id):
    """Edit note / traits / insights."""
    data = _json_body()
    lead = lead_service.update_lead_details(
        lead_id,
        note=data.get('note'),
        traits=data.get('traits'),
        insights=data.get('insights'),
    )
    return jsonify(_lead_summary(lead))


# ── Interactions ─────────────────────────────────────────────────────────────

@bp.route('/api/leads/<lead_id>/interactions', methods=['POST'])
def log_interaction(lead_id):
    """Log an Engagement (default) or Touchpoint for a lead."""
    data = _json_body()
    interaction_type = data.get('type') or InteractionType.ENGAGEMENT.value
    if interaction_type == InteractionType.CREATION.value:
        raise InvalidInteractionShape('Creation interactions are logged by POST /api/leads', field='type')

    outcome = lead_service.log_interaction(lead_id, data, interaction_type)
    return jsonify(outcome.to_dict()), 201


@bp.route('/api/leads/<lead_id>/interactions')
def list_interactions(lead_id):
    """Interaction log for a lead, newest first."""
    interactions = lead_service.list_interactions(lead_id)
    return jsonify([i.to_dict() for i in interactions])


# ── Tasks ────────────────────────────────────────────────────────────────────

@bp.route('/api/tasks')
def list_tasks():
    """Open tasks across active leads, soonest due first."""
    pairs = lead_service.list_open_tasks()
    result = []
    for task, lead in pairs:
        item = task.to_dict()
        item['lead_name'] = lead.name
        item['responsiveness'] = lead_service.lead_responsiveness(lead).value
        result.append(item)
    return jsonify(result)


@bp.route('/api/tasks/<task_id>/complete', methods=['POST'])
def complete_task(task_id):
    """Complete a task. Body: lead_id, is_terminal_follow_up?, log_touchpoint?"""
    data = _json_body()
    lead_id = data.get('lead_id') or data.get('leadId')
    if not lead_id:
        raise InvalidInteractionShape("'lead_id' is required", field='lead_id')

    is_terminal = _optional_bool(data, 'is_terminal_follow_up', 'isTerminalFollowUp')
    log_touchpoint = _optional_bool(data, 'log_touchpoint', 'logTouchpoint')

    completion = lead_service.complete_task(
        task_id,
        lead_id,
        is_terminal_follow_up=is_terminal,
        log_touchpoint=True if log_touchpoint is None else log_touchpoint,
    )
    return jsonify(completion.to_dict())
