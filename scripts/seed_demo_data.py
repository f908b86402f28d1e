#!/usr/bin/env python3
"""
Seed a demo pipeline for trying the API locally.

Creates seven leads, each pushed through the real lifecycle engine so scores,
segments, tasks and the interaction log are all consistent:
  1. Hot lead on the standard cadence
  2. Demo booked (Awaiting Event)
  3. Lukewarm lead (Needs Nurturing)
  4. Asked for a brochure (Action Required)
  5. Payment link sent (Payment Pending)
  6. Cold lead whose final follow-up was completed (Archived)
  7. Lead mid-cadence after several acknowledged follow-ups

Usage:
    python scripts/seed_demo_data.py          # seed all scenarios
    python scripts/seed_demo_data.py --reset  # drop + recreate tables first

Requires: DATABASE_URL set (or defaults to sqlite:///local.db).
"""
import sys
import os
import argparse
from datetime import datetime, timezone, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leadflow.database import engine, Base
from leadflow.lifecycle.enums import InteractionType
from leadflow.logging_config import configure_logging
from leadflow.services import leads as lead_service

import leadflow.models.lead  # noqa: F401
import leadflow.models.interaction  # noqa: F401
import leadflow.models.task  # noqa: F401


# ── Demo leads ───────────────────────────────────────────────────────────────
# days_ago: when the engagement happened; signals: interest/intent/engagement

LEADS = [
    {'name': 'Alex Johnson',    'phone': '111-222-3333', 'course': 'UX Design',          'days_ago': 1,
     'traits': ['Pays for Value'],
     'signals': {'interest': 'High', 'intent': 'High', 'engagement': 'Positive'}},
    {'name': 'Brenda Smith',    'phone': '222-333-4444', 'course': 'Data Science',       'days_ago': 2,
     'traits': ['Self-starter'],
     'signals': {'interest': 'Love', 'intent': 'High', 'engagement': 'Positive',
                 'outcome': 'Demo', 'outcome_days': 3}},
    {'name': 'Charlie Brown',   'phone': '333-444-5555', 'course': 'Web Development',    'days_ago': 4,
     'traits': ['Price Sensitive', 'Needs Hand-holding'],
     'signals': {'interest': 'Unsure', 'intent': 'Neutral', 'engagement': 'Neutral'}},
    {'name': 'Diana Prince',    'phone': '444-555-6666', 'course': 'AI Engineering',     'days_ago': 0,
     'traits': [],
     'signals': {'interest': 'High', 'intent': 'Neutral', 'engagement': 'Positive',
                 'outcome': 'NeedsInfo', 'outcome_detail': 'Send course brochure'}},
    {'name': 'Ethan Hunt',      'phone': '555-666-7777', 'course': 'Cybersecurity',      'days_ago': 1,
     'traits': [],
     'signals': {'interest': 'Love', 'intent': 'High', 'engagement': 'Positive', 'outcome': 'PayLink'}},
    {'name': 'Fiona Glenanne',  'phone': '666-777-8888', 'course': 'UX Design',          'days_ago': 10,
     'traits': [], 'touchpoints': 4,
     'signals': {'interest': 'Low', 'intent': 'Low', 'engagement': 'Negative'}},
    {'name': 'George Costanza', 'phone': '777-888-9999', 'course': 'Product Management', 'days_ago': 6,
     'traits': [], 'touchpoints': 2,
     'signals': None},
]


def seed_lead(entry, now):
    """Create one lead and replay its history through the service layer."""
    at = now - timedelta(days=entry['days_ago'])
    created = lead_service.add_lead(
        name=entry['name'], phone=entry['phone'], course=entry['course'],
        traits=entry['traits'], now=at - timedelta(hours=1),
    )
    lead_id = created.lead.id
    outcome = created

    signals = entry.get('signals')
    if signals:
        payload = dict(signals)
        if 'outcome_days' in payload:
            payload['outcome_detail'] = (now + timedelta(days=payload.pop('outcome_days'))).isoformat()
        outcome = lead_service.log_interaction(lead_id, payload, InteractionType.ENGAGEMENT, now=at)

    # Acknowledge follow-ups one after another; the last Day 7 archives
    for i in range(entry.get('touchpoints', 0)):
        step_at = at + timedelta(minutes=10 * (i + 1))
        completion = lead_service.complete_task(outcome.task.id, lead_id, now=step_at)
        if completion.archived or completion.touchpoint is None:
            break
        outcome = completion.touchpoint

    lead, _, task = lead_service.get_lead(lead_id)
    print(f"  {lead.name:<18} score={lead.score:<3} {lead.status:<8} {lead.segment:<20} "
          f"{task.description if task else '(no open task)'}")


def main():
    parser = argparse.ArgumentParser(description='Seed demo leads')
    parser.add_argument('--reset', action='store_true', help='Drop and recreate all tables first')
    args = parser.parse_args()

    configure_logging()

    if args.reset:
        print("Dropping tables...")
        Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    now = datetime.now(timezone.utc)
    print(f"Seeding {len(LEADS)} demo leads...")
    for entry in LEADS:
        seed_lead(entry, now)
    print("Done.")


if __name__ == '__main__':
    main()
