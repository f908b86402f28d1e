"""
Closed vocabularies for leads, interactions and tasks.

Values are the display strings stored in the database, so
`Interest('Love')` round-trips with what the API receives and persists.
"""
from enum import Enum


class Interest(str, Enum):
    LOVE = 'Love'
    HIGH = 'High'
    UNSURE = 'Unsure'
    LOW = 'Low'
    HATE = 'Hate'


class Intent(str, Enum):
    HIGH = 'High'
    NEUTRAL = 'Neutral'
    LOW = 'Low'


class Engagement(str, Enum):
    POSITIVE = 'Positive'
    NEUTRAL = 'Neutral'
    NEGATIVE = 'Negative'


class Outcome(str, Enum):
    DEMO = 'Demo'
    VISIT = 'Visit'
    PAY_LINK = 'PayLink'
    FOLLOW_LATER = 'FollowLater'
    NEEDS_INFO = 'NeedsInfo'


# Outcomes whose detail payload is a due date rather than free text
DATED_OUTCOMES = (Outcome.DEMO, Outcome.VISIT, Outcome.FOLLOW_LATER)
# Outcomes that cannot be acted on without outcome_detail
DETAIL_REQUIRED_OUTCOMES = DATED_OUTCOMES + (Outcome.NEEDS_INFO,)


class InteractionType(str, Enum):
    ENGAGEMENT = 'Engagement'
    TOUCHPOINT = 'Touchpoint'
    CREATION = 'Creation'


class Segment(str, Enum):
    STANDARD_FOLLOW_UP = 'Standard Follow-up'
    AWAITING_EVENT = 'Awaiting Event'
    ACTION_REQUIRED = 'Action Required'
    NEEDS_NURTURING = 'Needs Nurturing'
    PAYMENT_PENDING = 'Payment Pending'
    ON_HOLD = 'On Hold'
    NEEDS_PERSUASION = 'Needs Persuasion'
    SPECIAL_FOLLOW_UP = 'Special Follow-up'


class LeadStatus(str, Enum):
    ACTIVE = 'Active'
    ARCHIVED = 'Archived'


class Responsiveness(str, Enum):
    HOT = 'hot'
    WARM = 'warm'
    COLD = 'cold'


# ── Trait-based scoring vocabulary ───────────────────────────────────────────
# Used only by scoring.score_traits(); see SCORING_MODEL in config.

class TraitIntent(str, Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'


class TraitInterest(str, Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'


class ActionCommitted(str, Enum):
    NONE = 'None'
    DEMO_SCHEDULED = 'Demo Scheduled'
    VISIT_SCHEDULED = 'Visit Scheduled'
    PAYMENT_LINK_SENT = 'Payment Link Sent'


class LeadTrait(str, Enum):
    HAGGLING = 'Haggling'
    PRICE_SENSITIVE = 'Price Sensitive'
    TIME_CONSTRAINT = 'Time Constraint'
    PAYS_FOR_VALUE = 'Pays for Value'
    BROWSER_NOT_BUYER = 'Browser-not-Buyer'
