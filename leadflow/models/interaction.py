"""
Interaction model — append-only audit log, one row per engagement event.

previous_score + interaction_score (clamped) = new_score, so the full score
history can be rebuilt from this table alone.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index, UniqueConstraint

from leadflow.database import Base
from leadflow.models.lead import new_id, to_iso


class Interaction(Base):
    __tablename__ = 'interactions'

    id = Column(Text, primary_key=True, default=new_id)
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=False)
    type = Column(Text, nullable=False)                 # Engagement / Touchpoint / Creation
    seq = Column(Integer, nullable=False)               # per-lead order, 1 = Creation
    date = Column(DateTime(timezone=True), nullable=False)
    interest = Column(Text, nullable=True)
    intent = Column(Text, nullable=True)
    engagement = Column(Text, nullable=True)
    outcome = Column(Text, nullable=True)               # Demo / Visit / PayLink / FollowLater / NeedsInfo
    outcome_detail = Column(Text, nullable=True)        # ISO date or free text, by outcome
    notes = Column(Text, default='')
    follow_up_day = Column(Integer, nullable=True)      # cadence day a touchpoint acknowledged
    interaction_score = Column(Integer, nullable=False, default=0)
    previous_score = Column(Integer, nullable=False)
    new_score = Column(Integer, nullable=False)

    __table_args__ = (
        Index('ix_interactions_lead_id_date', 'lead_id', 'date'),
        UniqueConstraint('lead_id', 'seq', name='uq_interactions_lead_seq'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'seq': self.seq,
            'type': self.type,
            'date': to_iso(self.date),
            'interest': self.interest,
            'intent': self.intent,
            'engagement': self.engagement,
            'outcome': self.outcome,
            'outcome_detail': self.outcome_detail,
            'notes': self.notes or '',
            'follow_up_day': self.follow_up_day,
            'interaction_score': self.interaction_score,
            'previous_score': self.previous_score,
            'new_score': self.new_score,
        }
