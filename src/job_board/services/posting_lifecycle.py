"""
Posting Lifecycle - state machine for published job postings

draft -> active -> expired | closed. Expired and closed are final;
a new posting (and a new payment) is required to list the job again.
"""
from typing import Optional
import logging

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from ..clock import Clock, utcnow
from ..db.models import JobDraft, JobPosting, PaymentTransaction, PaymentStatus, PostingStatus
from ..exceptions import InvalidTransition
from . import pricing

logger = logging.getLogger(__name__)

DRAFT = "draft"

ALLOWED_TRANSITIONS = {
    DRAFT: {PostingStatus.ACTIVE.value},
    PostingStatus.ACTIVE.value: {PostingStatus.EXPIRED.value, PostingStatus.CLOSED.value},
    PostingStatus.EXPIRED.value: set(),
    PostingStatus.CLOSED.value: set(),
}

ACTIVATING_PAYMENT_STATUSES = {PaymentStatus.SUCCEEDED.value, PaymentStatus.NOT_REQUIRED.value}


def check_transition(from_state: str, to_state: str, reason: Optional[str] = None) -> None:
    if to_state not in ALLOWED_TRANSITIONS.get(from_state, set()):
        raise InvalidTransition(from_state, to_state, reason)


class PostingLifecycle:
    """Owns every status change of a job posting"""

    def __init__(self, db: Session, now: Clock = utcnow):
        self.db = db
        self.now = now

    def activate(self, draft: JobDraft, transaction: PaymentTransaction) -> JobPosting:
        """
        draft -> active

        Only a succeeded or not_required transaction for this very draft can
        activate it, and a draft activates at most once. The caller commits.
        """
        if draft.is_published:
            raise InvalidTransition(DRAFT, PostingStatus.ACTIVE.value, "draft has already been published")
        if transaction.draft_id != draft.id:
            raise InvalidTransition(DRAFT, PostingStatus.ACTIVE.value, "payment belongs to a different draft")
        if transaction.status not in ACTIVATING_PAYMENT_STATUSES:
            raise InvalidTransition(
                DRAFT, PostingStatus.ACTIVE.value, f"payment is {transaction.status}"
            )
        check_transition(DRAFT, PostingStatus.ACTIVE.value)

        # The plan snapshot on the transaction is what was paid for
        now = self.now()
        duration = pricing.plan_duration(transaction.plan, transaction.addons)
        posting = JobPosting(
            **draft.content(),
            business_account_id=draft.business_account_id,
            draft_id=draft.id,
            plan=transaction.plan,
            addons=list(transaction.addons or []),
            status=PostingStatus.ACTIVE.value,
            featured=pricing.includes_featured_placement(transaction.plan, transaction.addons),
            expires_at=now + duration if duration is not None else None,
            created_at=now,
            updated_at=now,
        )
        self.db.add(posting)
        self.db.flush()

        draft.posting_id = posting.id
        transaction.posting_id = posting.id

        logger.info(
            f"Activated posting {posting.id} from draft {draft.id} "
            f"(plan={posting.plan}, expires_at={posting.expires_at})"
        )
        return posting

    def refresh(self, posting: JobPosting) -> JobPosting:
        """Lazily expire a single posting that is past its expiry time"""
        if posting.status == PostingStatus.ACTIVE.value and posting.is_overdue(self.now()):
            self._move(posting, PostingStatus.EXPIRED.value)
            self.db.flush()
        return posting

    def expire_overdue(self) -> int:
        """
        Expire every active posting whose expiry time has passed

        Shared by read paths and the periodic sweep; running it again is a
        no-op. The caller commits.
        """
        now = self.now()
        result = self.db.execute(
            update(JobPosting)
            .where(
                JobPosting.status == PostingStatus.ACTIVE.value,
                JobPosting.expires_at.isnot(None),
                JobPosting.expires_at <= now,
            )
            .values(status=PostingStatus.EXPIRED.value, featured=False, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount:
            logger.info(f"Expired {result.rowcount} overdue posting(s)")
        return result.rowcount or 0

    def close(self, posting: JobPosting) -> JobPosting:
        """active -> closed, by the owner; irreversible"""
        self.refresh(posting)
        self._move(posting, PostingStatus.CLOSED.value)
        posting.closed_at = self.now()
        return posting

    def reactivate(self, posting: JobPosting) -> JobPosting:
        """Expired and closed postings can never return to active"""
        self.refresh(posting)
        self._move(posting, PostingStatus.ACTIVE.value)
        return posting

    def edit(self, posting: JobPosting, changes: dict) -> JobPosting:
        """
        Apply owner edits to the descriptive fields of an active posting

        Plan, status, featured flag and expiry are not editable here.
        """
        self.refresh(posting)
        if posting.status != PostingStatus.ACTIVE.value:
            raise InvalidTransition(posting.status, "edited", "only active postings can be edited")
        for field, value in changes.items():
            setattr(posting, field, value)
        posting.updated_at = self.now()
        logger.info(f"Posting {posting.id} edited: {sorted(changes)}")
        return posting

    def set_featured(self, posting: JobPosting, featured: bool) -> JobPosting:
        self.refresh(posting)
        if featured and posting.status != PostingStatus.ACTIVE.value:
            raise InvalidTransition(posting.status, "featured", "only active postings can be featured")
        posting.featured = featured
        posting.updated_at = self.now()
        logger.info(f"Posting {posting.id} featured={featured}")
        return posting

    @staticmethod
    def active_filter(now):
        """SQL predicate for postings that may be served as active at `now`"""
        return (
            JobPosting.status == PostingStatus.ACTIVE.value,
            or_(JobPosting.expires_at.is_(None), JobPosting.expires_at > now),
        )

    def _move(self, posting: JobPosting, to_state: str) -> None:
        check_transition(posting.status, to_state)
        from_state = posting.status
        posting.status = to_state
        if to_state != PostingStatus.ACTIVE.value:
            posting.featured = False
        posting.updated_at = self.now()
        logger.info(f"Posting {posting.id}: {from_state} -> {to_state}")
