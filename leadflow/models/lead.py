"""
Lead model — one row per prospect; the root of the lead aggregate.

`version` is the optimistic-concurrency counter: every aggregate write bumps
it, and a write based on a stale read fails with StaleDataError.
"""
import uuid

from sqlalchemy import Column, Integer, Text, DateTime, JSON, CheckConstraint
from sqlalchemy.sql import func

from leadflow.database import Base


def new_id():
    return str(uuid.uuid4())


def to_iso(dt):
    return dt.isoformat() if dt else None


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(Text, primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    phone = Column(Text, default='')
    course = Column(Text, default='')
    score = Column(Integer, nullable=False, default=50)
    status = Column(Text, nullable=False, default='Active')               # Active / Archived
    segment = Column(Text, nullable=False, default='Standard Follow-up')
    traits = Column(JSON, default=list)                                    # free-form tags
    insights = Column(JSON, default=list)
    note = Column(Text, default='')
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_interaction_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint('score >= 0 AND score <= 100', name='ck_leads_score_range'),
    )

    __mapper_args__ = {'version_id_col': version}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone or '',
            'course': self.course or '',
            'score': self.score,
            'status': self.status,
            'segment': self.segment,
            'traits': list(self.traits or []),
            'insights': list(self.insights or []),
            'note': self.note or '',
            'created_at': to_iso(self.created_at),
            'last_interaction_at': to_iso(self.last_interaction_at),
        }
