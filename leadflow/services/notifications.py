"""
Notifications — Slack webhook integration for pipeline events.

Fire-and-forget: notification failure never fails the lead operation that
triggered it.
"""
import logging
import requests

from leadflow.config import SLACK_WEBHOOK_URL

logger = logging.getLogger('services.notifications')


def _post(blocks, what):
    if not SLACK_WEBHOOK_URL:
        return False
    try:
        resp = requests.post(SLACK_WEBHOOK_URL, json={"blocks": blocks}, timeout=10)
        resp.raise_for_status()
        logger.info("%s notification sent", what)
        return True
    except Exception:
        logger.error("Failed to send %s notification", what, exc_info=True)
        return False


def notify_lead_created(lead, task):
    """Post a new-lead card to Slack."""
    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"New Lead — {lead.name}"},
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Course:* {lead.course or '—'}"},
                {"type": "mrkdwn", "text": f"*Score:* {lead.score}"},
                {"type": "mrkdwn", "text": f"*First task:* {task.description}"},
            ],
        },
    ]
    return _post(blocks, f"lead {lead.id[:8]} created")


def notify_interaction_logged(lead, interaction, task):
    """Post the score move and the new follow-up task."""
    delta = interaction.interaction_score
    blocks = [
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Lead:* {lead.name}"},
                {"type": "mrkdwn", "text": f"*{interaction.type}:* {delta:+d} → {interaction.new_score}"},
                {"type": "mrkdwn", "text": f"*Segment:* {lead.segment}"},
                {"type": "mrkdwn", "text": f"*Next:* {task.description}"},
            ],
        },
    ]
    return _post(blocks, f"interaction on lead {lead.id[:8]}")


def notify_lead_archived(lead):
    """Post an archive notice when the final follow-up is done."""
    blocks = [
        {
            "type": "context",
            "elements": [{
                "type": "mrkdwn",
                "text": f"{lead.name} archived after final follow-up (score {lead.score})",
            }],
        },
    ]
    return _post(blocks, f"lead {lead.id[:8]} archived")
