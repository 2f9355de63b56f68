"""
Database connection and operations.
"""

from pathlib import Path
from typing import List, Optional
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from .models import Base, MailLogEntry, MailStatus


class Database:
    """Database manager for mail delivery logs."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file (defaults to MAIL_LOG_DB_PATH from settings)
        """
        if db_path is None:
            from settings import MAIL_LOG_DB_PATH
            db_path = MAIL_LOG_DB_PATH

        # Ensure data directory exists
        db_file = Path(db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

        # Create engine and session
        self.db_path = db_path
        self.engine = create_engine(f'sqlite:///{db_path}', echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine)

        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def save_mail_log(self, session: Session, entry_data: dict) -> MailLogEntry:
        """
        Add a mail log entry to the session.

        The caller owns the transaction and commits it.

        Args:
            session: Database session
            entry_data: Column values for MailLogEntry

        Returns:
            MailLogEntry object
        """
        entry = MailLogEntry(**entry_data)
        session.add(entry)
        return entry

    def get_mail_logs(
        self,
        session: Session,
        receiver: Optional[str] = None,
        status: Optional[MailStatus] = None,
        limit: int = 50
    ) -> List[MailLogEntry]:
        """Get most recent mail log entries, optionally filtered."""
        query = session.query(MailLogEntry).order_by(MailLogEntry.created_at.desc(), MailLogEntry.id.desc())

        if receiver:
            query = query.filter(MailLogEntry.receiver == receiver)

        if status:
            query = query.filter(MailLogEntry.status == status)

        return query.limit(limit).all()
