"""
SQLAlchemy models for mail delivery logs.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, Index
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


class MailStatus(enum.Enum):
    """Outcome of a delivery attempt."""
    SENT = "sent"
    FAILED = "failed"


class MailLogEntry(Base):
    """One delivery attempt as reported by the background send task."""

    __tablename__ = 'mail_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(Enum(MailStatus), nullable=False, index=True)
    message_id = Column(String(255), nullable=True)

    sender = Column(String(255), nullable=True)
    sender_name = Column(String(255), nullable=True)
    receiver = Column(String(255), nullable=False, index=True)
    receiver_name = Column(String(255), nullable=True)

    subject = Column(Text, nullable=True)
    text = Column(Text, nullable=True)
    html = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index('idx_mail_logs_receiver_created', 'receiver', 'created_at'),
    )

    def __repr__(self):
        return f"<MailLogEntry(id={self.id}, receiver='{self.receiver}', status={self.status.value})>"
