"""
Task model — the single outstanding next action for a lead.

At most one open task per lead, enforced by a partial unique index.
"""
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Index, text
from sqlalchemy.sql import func

from leadflow.database import Base
from leadflow.models.lead import new_id, to_iso


class Task(Base):
    __tablename__ = 'tasks'

    id = Column(Text, primary_key=True, default=new_id)
    lead_id = Column(Text, ForeignKey('leads.id'), nullable=False)
    description = Column(Text, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False)
    segment = Column(Text, nullable=False)              # lead's segment when the task was opened
    follow_up_day = Column(Integer, nullable=True)      # set for cadence tasks (1/3/5/7)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_tasks_lead_id', 'lead_id'),
        Index(
            'uq_tasks_one_open_per_lead', 'lead_id',
            unique=True,
            sqlite_where=text('completed = 0'),
            postgresql_where=text('completed = false'),
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'lead_id': self.lead_id,
            'description': self.description,
            'due_date': to_iso(self.due_date),
            'segment': self.segment,
            'follow_up_day': self.follow_up_day,
            'completed': bool(self.completed),
            'completed_at': to_iso(self.completed_at),
        }
