"""
Job draft, job posting and application models
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import declared_attr
import enum

from ..base import Base
from ...clock import utcnow


class PostingStatus(str, enum.Enum):
    """Persisted posting states; drafts live in their own table"""
    ACTIVE = "active"
    EXPIRED = "expired"
    CLOSED = "closed"


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    CONTACTED = "contacted"
    REJECTED = "rejected"


class PostingContentMixin:
    """Descriptive fields shared by drafts and published postings"""

    title = Column(String, nullable=False)
    company = Column(String, nullable=False)
    location = Column(String, nullable=False)
    employment_type = Column(String, nullable=False)  # Full-time, Part-time, Gig
    compensation_type = Column(String, nullable=False)  # Salary, Hourly
    salary_range = Column(String, nullable=True)
    hourly_rate = Column(String, nullable=True)
    description = Column(Text, nullable=False)
    requirements = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)

    @declared_attr
    def business_account_id(cls):
        return Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    CONTENT_FIELDS = (
        "title",
        "company",
        "location",
        "employment_type",
        "compensation_type",
        "salary_range",
        "hourly_rate",
        "description",
        "requirements",
        "tags",
    )

    def content(self) -> dict:
        return {field: getattr(self, field) for field in self.CONTENT_FIELDS}


class JobDraft(PostingContentMixin, Base):
    """Unpublished posting owned by a business account"""
    __tablename__ = "job_drafts"

    id = Column(Integer, primary_key=True, index=True)
    posting_id = Column(Integer, ForeignKey("job_postings.id"), nullable=True, unique=True)
    payment_generation = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_published(self) -> bool:
        return self.posting_id is not None


class JobPosting(PostingContentMixin, Base):
    """Published job posting"""
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, index=True)
    draft_id = Column(Integer, nullable=False, unique=True, index=True)
    plan = Column(String, nullable=False, index=True)
    addons = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default=PostingStatus.ACTIVE.value, index=True)
    featured = Column(Boolean, nullable=False, default=False, index=True)
    expires_at = Column(DateTime, nullable=True, index=True)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def posting_status(self) -> PostingStatus:
        return PostingStatus(self.status)

    def is_overdue(self, now) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def __repr__(self) -> str:
        return f"<JobPosting id={self.id} status={self.status} featured={self.featured}>"


class JobApplication(Base):
    """Job seeker application to an active posting"""
    __tablename__ = "job_applications"

    id = Column(Integer, primary_key=True, index=True)
    job_posting_id = Column(Integer, ForeignKey("job_postings.id"), nullable=False, index=True)
    applicant_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    cover_letter = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=ApplicationStatus.PENDING.value)
    applied_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("job_posting_id", "applicant_account_id", name="uq_job_applications_posting_applicant"),
    )
