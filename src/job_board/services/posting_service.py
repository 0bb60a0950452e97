"""
Posting Service - the operations exposed to the HTTP layer

Wires the access gate, pricing, payment orchestration, lifecycle and
featured selection together. Confirmation and activation commit as one
database transaction.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import enum
import logging
import random

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import Clock, utcnow
from ..db.models import (
    Account,
    AccountRole,
    ApplicationStatus,
    JobApplication,
    JobDraft,
    JobPosting,
    PaymentStatus,
    PostingStatus,
)
from ..exceptions import (
    AccessDenied,
    DuplicateApplication,
    FeatureNotEntitled,
    ImmutablePostingField,
    InvalidApplicationStatus,
    InvalidTransition,
    NotFoundError,
    OwnershipError,
    PaymentDeclined,
    PaymentProcessorError,
    PostingNotOpen,
)
from . import pricing
from .access_control import authorize
from .featured_selection import FeaturedSelector
from .payment_gateway import PaymentGateway
from .payment_orchestrator import PaymentOrchestrator, PaymentOutcome
from .posting_lifecycle import DRAFT, PostingLifecycle

logger = logging.getLogger(__name__)


class PublishStatus(str, enum.Enum):
    ACTIVATED = "activated"
    PAYMENT_REQUIRED = "payment_required"
    FAILED = "failed"


class ActivationStatus(str, enum.Enum):
    ACTIVATED = "activated"
    PENDING = "pending"
    FAILED = "failed"


@dataclass
class PublishResult:
    status: PublishStatus
    amount_cents: int
    currency: str
    transaction_id: Optional[str] = None
    client_token: Optional[str] = None
    posting_id: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class ActivationResult:
    status: ActivationStatus
    outcome: PaymentOutcome
    posting_id: Optional[int] = None
    reason: Optional[str] = None


class PostingService:
    """Facade over the monetization engine for a single request"""

    CLEARABLE_FIELDS = ("salary_range", "hourly_rate", "requirements")

    def __init__(
        self,
        db: Session,
        gateway: Optional[PaymentGateway] = None,
        now: Clock = utcnow,
        rng: Optional[random.Random] = None,
        orchestrator: Optional[PaymentOrchestrator] = None,
    ):
        self.db = db
        self.now = now
        self.rng = rng
        self.orchestrator = orchestrator or PaymentOrchestrator(db, gateway=gateway, now=now)
        self.lifecycle = PostingLifecycle(db, now=now)

    # ------------------------------------------------------------------
    # pricing & drafts
    # ------------------------------------------------------------------

    @staticmethod
    def quote_price(plan, addons: Optional[Iterable] = None) -> int:
        return pricing.price(plan, addons)

    def create_draft(self, account: Account, fields: Dict) -> JobDraft:
        self._require(account, AccountRole.BUSINESS)
        content = {k: v for k, v in fields.items() if k in JobDraft.CONTENT_FIELDS}
        if content.get("tags") is None:
            content["tags"] = []

        draft = JobDraft(**content, business_account_id=account.id)
        self.db.add(draft)
        self.db.commit()
        self.db.refresh(draft)
        logger.info(f"Account {account.id} created draft {draft.id}")
        return draft

    # ------------------------------------------------------------------
    # publish & confirm
    # ------------------------------------------------------------------

    def publish_posting(self, draft_id: int, plan, addons, account_id: int) -> PublishResult:
        """
        Start publishing a draft under the chosen plan and add-ons

        Free selections are activated immediately. Paid selections return
        the processor transaction the client must complete, after which
        confirm_and_activate publishes the posting.
        """
        account = self._require(self._load_account(account_id), AccountRole.BUSINESS)
        draft = self._owned_draft(draft_id, account)
        if draft.is_published:
            raise InvalidTransition(DRAFT, PostingStatus.ACTIVE.value, "draft has already been published")

        try:
            intent = self.orchestrator.begin_payment(draft, plan, addons, account)
        except (PaymentDeclined, PaymentProcessorError) as e:
            logger.warning(f"Publishing draft {draft.id} failed at the processor: {e.code}")
            return PublishResult(
                status=PublishStatus.FAILED,
                amount_cents=pricing.price(plan, addons),
                currency=self.orchestrator.currency,
                reason=e.code.lower(),
            )

        if intent.status == PaymentStatus.NOT_REQUIRED:
            posting_id = self._activate_and_commit(draft, intent.transaction)
            return PublishResult(
                status=PublishStatus.ACTIVATED,
                amount_cents=0,
                currency=intent.currency,
                posting_id=posting_id,
            )

        return PublishResult(
            status=PublishStatus.PAYMENT_REQUIRED,
            amount_cents=intent.amount_cents,
            currency=intent.currency,
            transaction_id=intent.transaction_id,
            client_token=intent.client_token,
        )

    def confirm_and_activate(self, transaction_id: str, account_id: int) -> ActivationResult:
        """
        Confirm a payment with the processor and activate its posting

        Confirming an already-activated transaction returns the same posting.
        """
        account = self._require(self._load_account(account_id), AccountRole.BUSINESS)
        txn = self.orchestrator.get_transaction(transaction_id)
        if txn.account_id != account.id:
            raise OwnershipError("payment")

        outcome = self.orchestrator.confirm_payment(transaction_id, commit=False)

        if outcome == PaymentOutcome.SUCCEEDED:
            draft = self.db.query(JobDraft).filter(JobDraft.id == txn.draft_id).first()
            if draft is None:
                raise NotFoundError("Draft")
            if draft.is_published:
                self.db.commit()
                if txn.posting_id is not None and txn.posting_id == draft.posting_id:
                    return ActivationResult(ActivationStatus.ACTIVATED, outcome, posting_id=draft.posting_id)
                raise InvalidTransition(DRAFT, PostingStatus.ACTIVE.value, "draft has already been published")

            posting_id = self._activate_and_commit(draft, txn)
            return ActivationResult(ActivationStatus.ACTIVATED, outcome, posting_id=posting_id)

        self.db.commit()
        if outcome == PaymentOutcome.FAILED:
            return ActivationResult(ActivationStatus.FAILED, outcome, reason=txn.failure_reason)
        return ActivationResult(ActivationStatus.PENDING, outcome)

    def _activate_and_commit(self, draft: JobDraft, transaction) -> int:
        draft_id = draft.id
        transaction_ref = transaction.id
        try:
            posting = self.lifecycle.activate(draft, transaction)
            self.db.commit()
            return posting.id
        except IntegrityError:
            # A concurrent request published this draft first
            self.db.rollback()
            draft = self.db.query(JobDraft).filter(JobDraft.id == draft_id).first()
            if draft is not None and draft.is_published:
                logger.info(f"Draft {draft_id} was activated concurrently; transaction {transaction_ref} converged")
                return draft.posting_id
            raise

    # ------------------------------------------------------------------
    # listings
    # ------------------------------------------------------------------

    def list_featured(self) -> List[JobPosting]:
        selector = FeaturedSelector(self.db, rng=self.rng, now=self.now)
        featured = selector.list_featured()
        self.db.commit()
        return featured

    def list_active(self, limit: int = 20, offset: int = 0) -> List[JobPosting]:
        self.lifecycle.expire_overdue()
        self.db.commit()
        return (
            self.db.query(JobPosting)
            .filter(*PostingLifecycle.active_filter(self.now()))
            .order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_posting(self, posting_id: int, viewer: Optional[Account] = None) -> JobPosting:
        """Active postings are public; expired or closed ones are visible to their owner only"""
        posting = self._load_posting(posting_id)
        self.lifecycle.refresh(posting)
        self.db.commit()
        if posting.status != PostingStatus.ACTIVE.value:
            if viewer is None or viewer.id != posting.business_account_id:
                raise NotFoundError("Job posting")
        return posting

    def list_business_postings(self, account: Account) -> List[JobPosting]:
        self._require(account, AccountRole.BUSINESS)
        self.lifecycle.expire_overdue()
        self.db.commit()
        return (
            self.db.query(JobPosting)
            .filter(JobPosting.business_account_id == account.id)
            .order_by(JobPosting.created_at.desc(), JobPosting.id.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # owner actions
    # ------------------------------------------------------------------

    def update_posting(self, posting_id: int, account_id: int, fields: Dict) -> JobPosting:
        """
        Owner edit of an active posting's descriptive fields

        Plan, status, featured flag and expiry come from payments and
        lifecycle transitions; naming any of them rejects the whole edit.
        Omitted or null values leave the stored value unchanged, except for
        the optional text fields, which null clears.
        """
        account = self._require(self._load_account(account_id), AccountRole.BUSINESS)
        posting = self._owned_posting(posting_id, account)

        locked = set(fields) - set(JobPosting.CONTENT_FIELDS)
        if locked:
            raise ImmutablePostingField(locked)

        changes = {
            field: value for field, value in fields.items()
            if value is not None or field in self.CLEARABLE_FIELDS
        }
        self.lifecycle.edit(posting, changes)
        self.db.commit()
        return posting

    def close_posting(self, posting_id: int, account_id: int) -> JobPosting:
        account = self._require(self._load_account(account_id), AccountRole.BUSINESS)
        posting = self._owned_posting(posting_id, account)
        self.lifecycle.close(posting)
        self.db.commit()
        return posting

    def set_featured(self, posting_id: int, account_id: int, featured: bool) -> JobPosting:
        account = self._require(self._load_account(account_id), AccountRole.BUSINESS)
        posting = self._owned_posting(posting_id, account)
        if featured and not pricing.includes_featured_placement(posting.plan, posting.addons):
            raise FeatureNotEntitled()
        self.lifecycle.set_featured(posting, featured)
        self.db.commit()
        return posting

    # ------------------------------------------------------------------
    # applications
    # ------------------------------------------------------------------

    def apply_to_posting(self, posting_id: int, account: Account, cover_letter: Optional[str] = None) -> JobApplication:
        self._require(account, AccountRole.JOB_SEEKER)
        posting = self._load_posting(posting_id)
        self.lifecycle.refresh(posting)
        if posting.status != PostingStatus.ACTIVE.value:
            self.db.commit()
            raise PostingNotOpen()

        existing = self.db.query(JobApplication).filter(
            JobApplication.job_posting_id == posting.id,
            JobApplication.applicant_account_id == account.id,
        ).first()
        if existing is not None:
            raise DuplicateApplication()

        application = JobApplication(
            job_posting_id=posting.id,
            applicant_account_id=account.id,
            cover_letter=cover_letter,
            applied_at=self.now(),
        )
        self.db.add(application)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateApplication()
        self.db.refresh(application)
        logger.info(f"Account {account.id} applied to posting {posting.id}")
        return application

    def list_applications_for_seeker(self, account: Account) -> List[JobApplication]:
        self._require(account, AccountRole.JOB_SEEKER)
        return (
            self.db.query(JobApplication)
            .filter(JobApplication.applicant_account_id == account.id)
            .order_by(JobApplication.applied_at.desc(), JobApplication.id.desc())
            .all()
        )

    def list_applications_for_posting(self, posting_id: int, account_id: int) -> List[JobApplication]:
        account = self._require(self._load_account(account_id), AccountRole.BUSINESS)
        posting = self._owned_posting(posting_id, account)
        return (
            self.db.query(JobApplication)
            .filter(JobApplication.job_posting_id == posting.id)
            .order_by(JobApplication.applied_at.desc(), JobApplication.id.desc())
            .all()
        )

    def update_application_status(self, application_id: int, account_id: int, status) -> JobApplication:
        """Move an application to reviewed, contacted, rejected or back to pending"""
        account = self._require(self._load_account(account_id), AccountRole.BUSINESS)
        try:
            new_status = ApplicationStatus(status)
        except ValueError:
            raise InvalidApplicationStatus(status)

        application = self.db.query(JobApplication).filter(JobApplication.id == application_id).first()
        if application is None:
            raise NotFoundError("Application")
        self._owned_posting(application.job_posting_id, account)

        application.status = new_status.value
        self.db.commit()
        self.db.refresh(application)
        logger.info(f"Application {application.id} marked {new_status.value} by account {account.id}")
        return application

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require(account: Optional[Account], role: AccountRole) -> Account:
        decision = authorize(account, role)
        if not decision.allowed:
            raise AccessDenied(decision.reason.value, role.value)
        return account

    def _load_account(self, account_id: int) -> Optional[Account]:
        return self.db.query(Account).filter(Account.id == account_id).first()

    def _load_posting(self, posting_id: int) -> JobPosting:
        posting = self.db.query(JobPosting).filter(JobPosting.id == posting_id).first()
        if posting is None:
            raise NotFoundError("Job posting")
        return posting

    def _owned_draft(self, draft_id: int, account: Account) -> JobDraft:
        draft = self.db.query(JobDraft).filter(JobDraft.id == draft_id).first()
        if draft is None:
            raise NotFoundError("Draft")
        if draft.business_account_id != account.id:
            raise OwnershipError("draft")
        return draft

    def _owned_posting(self, posting_id: int, account: Account) -> JobPosting:
        posting = self._load_posting(posting_id)
        if posting.business_account_id != account.id:
            raise OwnershipError("job posting")
        return posting
