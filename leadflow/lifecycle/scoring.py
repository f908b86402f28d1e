"""
Lead scoring — maps an interaction's qualitative signals to a signed delta.

Signal model (canonical, drives log_interaction):
    interest + intent + engagement → interaction_score in [-65, +55]
    new_score = clamp(current + interaction_score, 0, 100)

Trait model (alternate, never mixed with the signal model):
    intent + interest + committed action + observed traits

Tables live in scoring_config.yaml with a hardcoded fallback. Loading
validates that every enum member is mapped, so an unknown value is a
configuration error at startup rather than a silent 0 at scoring time.
"""
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import yaml

from leadflow.config import (
    SCORE_MIN, SCORE_MAX, TOUCHPOINT_DECAY, SCORING_MODEL, SCORING_MODELS,
    SCORING_CONFIG_PATH,
)
from leadflow.lifecycle.enums import (
    Interest, Intent, Engagement,
    TraitIntent, TraitInterest, ActionCommitted, LeadTrait,
)

logger = logging.getLogger('lifecycle.scoring')


@dataclass(frozen=True)
class ScoreResult:
    """Audit triple recorded on every interaction."""
    interaction_score: int
    previous_score: int
    new_score: int


@dataclass(frozen=True)
class ScoringTables:
    version: str
    interest: Mapping[Interest, int]
    intent: Mapping[Intent, int]
    engagement: Mapping[Engagement, int]
    trait_intent: Mapping[TraitIntent, int]
    trait_interest: Mapping[TraitInterest, int]
    action: Mapping[ActionCommitted, int]
    trait: Mapping[LeadTrait, int]
    touchpoint_decay: int = TOUCHPOINT_DECAY


# ── Config loading (YAML with hardcoded fallback) ────────────────────────────

def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'signals': {
            'interest': {'Love': 20, 'High': 10, 'Unsure': -5, 'Low': -15, 'Hate': -30},
            'intent': {'High': 25, 'Neutral': 0, 'Low': -20},
            'engagement': {'Positive': 10, 'Neutral': -5, 'Negative': -15},
        },
        'traits': {
            'intent': {'High': 20, 'Medium': 5, 'Low': -15},
            'interest': {'High': 15, 'Medium': 5, 'Low': -10},
            'action': {
                'None': 0,
                'Demo Scheduled': 25,
                'Visit Scheduled': 25,
                'Payment Link Sent': 30,
            },
            'trait': {
                'Pays for Value': 10,
                'Haggling': -5,
                'Price Sensitive': -5,
                'Browser-not-Buyer': -20,
                'Time Constraint': 0,
            },
        },
        'touchpoint_decay': TOUCHPOINT_DECAY,
    }


def _build_table(raw, enum_cls, name):
    """Turn {'High': 10, ...} into a read-only {Enum.HIGH: 10, ...}, exhaustively."""
    if not isinstance(raw, dict):
        raise ValueError(f"Scoring table '{name}' must be a mapping")

    known = {member.value for member in enum_cls}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Scoring table '{name}' has unknown keys: {sorted(unknown)}")

    table = {}
    for member in enum_cls:
        if member.value not in raw:
            raise ValueError(f"Scoring table '{name}' does not map '{member.value}'")
        points = raw[member.value]
        if isinstance(points, bool) or not isinstance(points, int):
            raise ValueError(f"Scoring table '{name}' value for '{member.value}' must be an integer")
        table[member] = points
    return MappingProxyType(table)


def build_tables(config):
    """Validate a raw config dict and return ScoringTables."""
    signals = config.get('signals') or {}
    traits = config.get('traits') or {}
    decay = config.get('touchpoint_decay', TOUCHPOINT_DECAY)
    if isinstance(decay, bool) or not isinstance(decay, int) or decay < 0:
        raise ValueError("touchpoint_decay must be a non-negative integer")

    return ScoringTables(
        version=str(config.get('version', '?')),
        interest=_build_table(signals.get('interest'), Interest, 'signals.interest'),
        intent=_build_table(signals.get('intent'), Intent, 'signals.intent'),
        engagement=_build_table(signals.get('engagement'), Engagement, 'signals.engagement'),
        trait_intent=_build_table(traits.get('intent'), TraitIntent, 'traits.intent'),
        trait_interest=_build_table(traits.get('interest'), TraitInterest, 'traits.interest'),
        action=_build_table(traits.get('action'), ActionCommitted, 'traits.action'),
        trait=_build_table(traits.get('trait'), LeadTrait, 'traits.trait'),
        touchpoint_decay=decay,
    )


@lru_cache(maxsize=None)
def load_scoring_config(path: Optional[str] = None) -> ScoringTables:
    """Load scoring tables from YAML, cached per path, with hardcoded fallback."""
    config_path = path or SCORING_CONFIG_PATH or os.path.join(
        os.path.dirname(__file__), 'scoring_config.yaml',
    )
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info("Scoring config loaded from YAML (version=%s)", config.get('version', '?'))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Scoring YAML unavailable (%s), using defaults", e)
        config = _default_config()
    return build_tables(config)


def validate_scoring_model(name: str = SCORING_MODEL) -> str:
    """Exactly one scoring model is active per deployment."""
    if name not in SCORING_MODELS:
        raise ValueError(f"SCORING_MODEL must be one of {SCORING_MODELS}, got '{name}'")
    if name != 'signals':
        logger.warning(
            "SCORING_MODEL=%s: interactions are still scored with the signal table; "
            "the trait table is available through score_traits() only", name,
        )
    return name


# ── Pure scoring functions ───────────────────────────────────────────────────

def clamp_score(value: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def interaction_delta(interest, intent, engagement, tables: Optional[ScoringTables] = None) -> int:
    """Signed delta for one Engagement. Accepts enums or their string values."""
    tables = tables or load_scoring_config()
    return (
        tables.interest[Interest(interest)]
        + tables.intent[Intent(intent)]
        + tables.engagement[Engagement(engagement)]
    )


def score(interest, intent, engagement, current_score: int,
          tables: Optional[ScoringTables] = None) -> ScoreResult:
    """Apply the signal table to current_score."""
    delta = interaction_delta(interest, intent, engagement, tables)
    return ScoreResult(
        interaction_score=delta,
        previous_score=current_score,
        new_score=clamp_score(current_score + delta),
    )


def touchpoint_decay(current_score: int, tables: Optional[ScoringTables] = None) -> ScoreResult:
    """Fixed decay applied when a scheduled touchpoint is acknowledged."""
    tables = tables or load_scoring_config()
    delta = -tables.touchpoint_decay
    return ScoreResult(
        interaction_score=delta,
        previous_score=current_score,
        new_score=clamp_score(current_score + delta),
    )


def unscored(current_score: int) -> ScoreResult:
    """Lead creation carries no signals."""
    return ScoreResult(interaction_score=0, previous_score=current_score, new_score=current_score)


def trait_points(traits: Iterable, tables: Optional[ScoringTables] = None) -> int:
    """
    Sum trait adjustments.

    Lead traits are free-form tags; tags outside the LeadTrait vocabulary
    (e.g. 'Self-starter') carry no score. Duplicates count once.
    """
    tables = tables or load_scoring_config()
    known = {member.value: member for member in LeadTrait}
    total = 0
    for tag in {getattr(t, 'value', t) for t in traits or ()}:
        member = known.get(tag)
        if member is not None:
            total += tables.trait[member]
    return total


def score_traits(intent, interest, action, traits, current_score: int,
                 tables: Optional[ScoringTables] = None) -> ScoreResult:
    """Alternate model: intent/interest/action/traits."""
    tables = tables or load_scoring_config()
    delta = (
        tables.trait_intent[TraitIntent(intent)]
        + tables.trait_interest[TraitInterest(interest)]
        + tables.action[ActionCommitted(action)]
        + trait_points(traits, tables)
    )
    return ScoreResult(
        interaction_score=delta,
        previous_score=current_score,
        new_score=clamp_score(current_score + delta),
    )


def refine_score_with_traits(current_score: int, traits,
                             tables: Optional[ScoringTables] = None) -> int:
    """Adjust a score by observed traits alone, clamped to [0, 100]."""
    return clamp_score(current_score + trait_points(traits, tables))
