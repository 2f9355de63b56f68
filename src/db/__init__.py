"""
Database package for mail delivery logs.
"""

from .models import Base, MailLogEntry, MailStatus
from .database import Database

__all__ = ['Base', 'MailLogEntry', 'MailStatus', 'Database']
