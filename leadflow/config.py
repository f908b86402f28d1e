"""
Centralized configuration — all env vars, engine constants, segment names.
"""
import os


def _env_flag(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Write serialization ──────────────────────────────────────────────────────
# Optimistic version checks are always on; the redis lock is an extra
# single-writer guard for multi-process deployments.
LEAD_LOCKS_ENABLED = _env_flag('LEAD_LOCKS_ENABLED')
LEAD_LOCK_TIMEOUT = int(os.getenv('LEAD_LOCK_TIMEOUT', '10'))
LEAD_LOCK_WAIT = int(os.getenv('LEAD_LOCK_WAIT', '5'))
MAX_TRANSACTION_RETRIES = int(os.getenv('MAX_TRANSACTION_RETRIES', '3'))

# ── Slack notifications ──────────────────────────────────────────────────────
SLACK_WEBHOOK_URL = os.getenv('SLACK_WEBHOOK_URL')

# ── Scoring ──────────────────────────────────────────────────────────────────
SCORING_MODEL = os.getenv('SCORING_MODEL', 'signals')
SCORING_MODELS = ['signals', 'traits']
SCORING_CONFIG_PATH = os.getenv('SCORING_CONFIG_PATH')

DEFAULT_LEAD_SCORE = 50
SCORE_MIN = 0
SCORE_MAX = 100

# ── Follow-up cadence ────────────────────────────────────────────────────────
FOLLOW_UP_SEQUENCE = [1, 3, 5, 7]
TOUCHPOINT_DECAY = 2
NURTURE_DELAY_DAYS = 2
PAYMENT_FOLLOW_UP_DAYS = 1

# ── Responsiveness windows (hours since last interaction) ────────────────────
HOT_HOURS = 24
WARM_HOURS = 72

# ── Pipeline segments ────────────────────────────────────────────────────────
SEGMENTS = [
    'Standard Follow-up',
    'Awaiting Event',
    'Action Required',
    'Needs Nurturing',
    'Payment Pending',
    'On Hold',
    'Needs Persuasion',
    'Special Follow-up',
]

# ── Lead status values ───────────────────────────────────────────────────────
LEAD_STATUSES = [
    'Active',
    'Archived',
]
