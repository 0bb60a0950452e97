"""
Database models for the Job Board service
Entities reference each other by id columns only
"""
from .account import Account, AccountRole
from .posting import (
    JobDraft,
    JobPosting,
    JobApplication,
    PostingStatus,
    ApplicationStatus,
)
from .payment import PaymentTransaction, PaymentStatus, PaymentProvider

__all__ = [
    "Account",
    "AccountRole",
    "JobDraft",
    "JobPosting",
    "JobApplication",
    "PostingStatus",
    "ApplicationStatus",
    "PaymentTransaction",
    "PaymentStatus",
    "PaymentProvider",
]
