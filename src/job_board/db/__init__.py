"""
Database module for the Job Board service
"""
from .engine import engine, SessionLocal, get_db
from .base import Base
from .models import (
    Account,
    AccountRole,
    JobDraft,
    JobPosting,
    JobApplication,
    PostingStatus,
    PaymentTransaction,
    PaymentStatus,
)

__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
    "Base",
    "Account",
    "AccountRole",
    "JobDraft",
    "JobPosting",
    "JobApplication",
    "PostingStatus",
    "PaymentTransaction",
    "PaymentStatus",
]
