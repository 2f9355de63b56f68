"""
Mail delivery logs.

A MailLog is notified by the background send task after every delivery
attempt. Any number of mail logs can be registered with MailService; if
none is registered, the outcome is only written to the ``mail`` logger.

DatabaseMailLog stores every attempt in a SQLite database using
SQLAlchemy.
"""

import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import OperationalError, SQLAlchemyError

from db import Database, MailStatus
from mail_dispatch.logger import get_logger

MAIL = get_logger()


class MailLog(Protocol):
    """Receives the outcome of every delivery attempt."""

    def log_sent_mail(
        self,
        success: bool,
        message_id: Optional[str],
        sender: Optional[str],
        sender_name: Optional[str],
        receiver: str,
        receiver_name: Optional[str],
        subject: Optional[str],
        text: Optional[str],
        html: Optional[str]
    ) -> None:
        ...


class DatabaseMailLog:
    """
    Persist delivery attempts into the mail log database.

    Failures to write the log are reported as warnings; logging must never
    break delivery.
    """

    max_retries = 3
    retry_delay = 0.1  # 100ms

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the mail log.

        Args:
            db_path: Path to SQLite database file (defaults to MAIL_LOG_DB_PATH from settings)
        """
        self.db = Database(db_path)

    def log_sent_mail(
        self,
        success: bool,
        message_id: Optional[str],
        sender: Optional[str],
        sender_name: Optional[str],
        receiver: str,
        receiver_name: Optional[str],
        subject: Optional[str],
        text: Optional[str],
        html: Optional[str]
    ) -> None:
        entry_data = {
            'status': MailStatus.SENT if success else MailStatus.FAILED,
            'message_id': message_id,
            'sender': sender,
            'sender_name': sender_name,
            'receiver': receiver,
            'receiver_name': receiver_name,
            'subject': subject,
            'text': text,
            'html': html,
            'created_at': datetime.utcnow()
        }

        session = self.db.get_session()
        retry_delay = self.retry_delay

        try:
            for attempt in range(self.max_retries):
                try:
                    self.db.save_mail_log(session, entry_data)
                    session.commit()
                    break

                except OperationalError as e:
                    # Database locked - retry
                    session.rollback()
                    if attempt < self.max_retries - 1:
                        time.sleep(retry_delay)
                        retry_delay *= 2  # Exponential backoff
                        continue
                    MAIL.warning(
                        "Failed to save mail log after %d attempts: %s",
                        self.max_retries,
                        e
                    )

                except SQLAlchemyError as e:
                    session.rollback()
                    MAIL.warning("Failed to save mail log: %s", e)
                    break

        finally:
            session.close()

    def get_mail_logs(
        self,
        receiver: Optional[str] = None,
        status: Optional[MailStatus] = None,
        limit: int = 50
    ) -> List[Dict[str, Any]]:
        """
        Get mail logs with optional filtering.

        Args:
            receiver: Filter by receiver address
            status: Filter by status
            limit: Maximum number of logs to return

        Returns:
            List[dict]: Mail log records as dictionaries
        """
        session = self.db.get_session()

        try:
            entries = self.db.get_mail_logs(session, receiver=receiver, status=status, limit=limit)

            # Convert to dictionaries to avoid detached instance errors
            return [
                {
                    'id': entry.id,
                    'status': entry.status,
                    'message_id': entry.message_id,
                    'sender': entry.sender,
                    'sender_name': entry.sender_name,
                    'receiver': entry.receiver,
                    'receiver_name': entry.receiver_name,
                    'subject': entry.subject,
                    'created_at': entry.created_at
                }
                for entry in entries
            ]

        finally:
            session.close()
