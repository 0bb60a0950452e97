"""
Payment Orchestrator - bridges priced quotes to the payment processor

Handles the zero-cost short-circuit, one pending transaction per draft,
quoted-amount verification on confirmation, and bounded retries of
transient processor failures.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional
import enum
import hashlib
import logging
import time

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import Clock, utcnow
from ..config import config
from ..db.models import Account, JobDraft, PaymentTransaction, PaymentStatus, PaymentProvider
from ..exceptions import (
    AmountMismatch,
    JobBoardError,
    NotFoundError,
    PaymentAlreadyCompleted,
    PaymentProcessorUnavailable,
)
from . import pricing
from .payment_gateway import PaymentGateway, ProcessorStatus

logger = logging.getLogger(__name__)


class PaymentOutcome(str, enum.Enum):
    """Result of confirming a transaction with the processor"""
    SUCCEEDED = "succeeded"
    PROCESSING = "processing"
    REQUIRES_ACTION = "requires_action"
    FAILED = "failed"


@dataclass
class PaymentIntentResult:
    """What begin_payment hands back to the caller"""
    status: PaymentStatus
    transaction: PaymentTransaction
    amount_cents: int
    currency: str
    transaction_id: Optional[str] = None
    client_token: Optional[str] = None
    reused: bool = False

    @property
    def requires_payment(self) -> bool:
        return self.status == PaymentStatus.PENDING


class PaymentOrchestrator:
    """Creates and confirms payment transactions for job drafts"""

    def __init__(
        self,
        db: Session,
        gateway: Optional[PaymentGateway] = None,
        currency: Optional[str] = None,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        pending_ttl: Optional[timedelta] = None,
        claim_grace: Optional[timedelta] = None,
        now: Clock = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize payment orchestrator

        Args:
            db: Database session
            gateway: Payment processor; only required for paid selections
            currency: ISO currency code for quotes (defaults to config.CURRENCY)
            max_attempts: Attempts per processor call on transient failures
            backoff_seconds: Base delay, doubled after each failed attempt
            pending_ttl: Age after which the sweep resolves pending transactions
            claim_grace: Age after which a pending row without a processor id is replaced
            now: Clock
            sleep: Sleep function used between retries
        """
        self.db = db
        self.gateway = gateway
        self.currency = (currency or config.CURRENCY).lower()
        self.max_attempts = max_attempts or config.PAYMENT_MAX_ATTEMPTS
        self.backoff_seconds = config.PAYMENT_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.pending_ttl = pending_ttl or timedelta(minutes=config.PENDING_TRANSACTION_TTL_MINUTES)
        self.claim_grace = claim_grace or timedelta(seconds=config.PENDING_CLAIM_GRACE_SECONDS)
        self.now = now
        self.sleep = sleep

    # ------------------------------------------------------------------
    # begin
    # ------------------------------------------------------------------

    def begin_payment(self, draft: JobDraft, plan, addons, account: Account) -> PaymentIntentResult:
        """
        Price the selection and open (or reuse) the draft's transaction

        A zero total records a not_required transaction without contacting
        the processor and without committing, so the caller can activate the
        posting in the same database transaction. Paid selections are
        committed here.
        """
        price_quote = pricing.quote(plan, addons, self.currency)
        logger.info(
            f"Quoted draft {draft.id}: plan={price_quote.plan.value} "
            f"addons={price_quote.addon_values} total={price_quote.total_cents} {price_quote.currency}"
        )

        existing = self._pending_for_draft(draft.id)

        if price_quote.is_free:
            # A paid transaction left open would still be payable after the free activation
            if existing is not None:
                self._supersede(existing, draft)
            return self._record_not_required(draft, account, price_quote)

        if self.gateway is None:
            raise PaymentProcessorUnavailable("No payment processor is configured")

        if existing is not None and self._is_orphaned(existing):
            logger.warning(
                f"Pending transaction {existing.id} for draft {draft.id} never reached the processor; replacing it"
            )
            self._supersede(existing, draft)
            existing = None

        if existing is not None:
            if existing.provider == self.gateway.provider and existing.same_quote(
                price_quote.total_cents, price_quote.currency, price_quote.plan.value, price_quote.addon_values
            ):
                logger.info(f"Reusing pending transaction {existing.id} for draft {draft.id}")
                return self._result(existing, reused=True)
            self._supersede(existing, draft)

        return self._open_transaction(draft, account, price_quote)

    def _record_not_required(self, draft: JobDraft, account: Account, price_quote: pricing.PriceQuote) -> PaymentIntentResult:
        now = self.now()
        txn = PaymentTransaction(
            provider=PaymentProvider.NONE.value,
            draft_id=draft.id,
            account_id=account.id,
            amount_cents=0,
            currency=price_quote.currency,
            plan=price_quote.plan.value,
            addons=price_quote.addon_values,
            status=PaymentStatus.NOT_REQUIRED.value,
            created_at=now,
            updated_at=now,
            resolved_at=now,
        )
        self.db.add(txn)
        self.db.flush()
        logger.info(f"Draft {draft.id} is free to publish; no payment required")
        return self._result(txn)

    def _open_transaction(self, draft: JobDraft, account: Account, price_quote: pricing.PriceQuote) -> PaymentIntentResult:
        idempotency_key = self._idempotency_key(draft, price_quote)
        now = self.now()
        txn = PaymentTransaction(
            provider=self.gateway.provider,
            idempotency_key=idempotency_key,
            draft_id=draft.id,
            account_id=account.id,
            amount_cents=price_quote.total_cents,
            currency=price_quote.currency,
            plan=price_quote.plan.value,
            addons=price_quote.addon_values,
            status=PaymentStatus.PENDING.value,
            pending_key=draft.id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(txn)

        # Claim the draft's single pending slot before talking to the processor
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            winner = self._pending_for_draft(draft.id)
            if winner is None:
                logger.warning(f"Pending slot for draft {draft.id} changed during claim; asking caller to retry")
                raise PaymentProcessorUnavailable("Payment is being set up. Please try again.")
            logger.info(f"Concurrent publish for draft {draft.id} converged on transaction {winner.id}")
            return self._result(winner, reused=True)

        metadata = {
            "draft_id": draft.id,
            "account_id": account.id,
            "email": account.email,
            "plan": price_quote.plan.value,
            "addons": ",".join(price_quote.addon_values),
            "transaction_ref": txn.id,
        }

        try:
            created = self._call_processor(
                self.gateway.create_transaction,
                price_quote.total_cents,
                price_quote.currency,
                metadata,
                idempotency_key,
            )
        except JobBoardError as e:
            self._mark_failed(txn, f"create_failed:{e.code.lower()}")
            draft.payment_generation = (draft.payment_generation or 0) + 1
            self.db.commit()
            raise

        txn.provider_transaction_id = created["transaction_id"]
        txn.client_token = created.get("client_token")
        self.db.commit()

        logger.info(
            f"Opened {txn.provider} transaction {txn.id} for draft {draft.id}: "
            f"{pricing.format_amount(txn.amount_cents, txn.currency)}"
        )
        return self._result(txn)

    def _supersede(self, existing: PaymentTransaction, draft: JobDraft) -> None:
        """
        Void a pending transaction whose quote no longer matches the request

        Raises PaymentAlreadyCompleted when the processor already took the
        payment, and PaymentProcessorUnavailable when that cannot be checked.
        """
        if existing.provider_transaction_id and (self.gateway is None or existing.provider != self.gateway.provider):
            raise PaymentProcessorUnavailable("The pending payment for this job posting cannot be verified right now")
        if existing.provider_transaction_id:
            remote = self._call_processor(self.gateway.get_transaction_status, existing.provider_transaction_id)
            if ProcessorStatus(remote["status"]) == ProcessorStatus.SUCCEEDED:
                raise PaymentAlreadyCompleted()

        self._mark_failed(existing, "superseded")
        draft.payment_generation = (draft.payment_generation or 0) + 1
        self.db.commit()
        logger.info(f"Superseded pending transaction {existing.id} for draft {draft.id}")

        self._cancel_quietly(existing)

    # ------------------------------------------------------------------
    # confirm
    # ------------------------------------------------------------------

    def get_transaction(self, transaction_id: str, for_update: bool = False) -> PaymentTransaction:
        query = self.db.query(PaymentTransaction).filter(
            PaymentTransaction.provider_transaction_id == transaction_id
        )
        if for_update:
            query = query.with_for_update()
        txn = query.first()
        if txn is None:
            raise NotFoundError("Payment")
        return txn

    def confirm_payment(self, transaction_id: str, commit: bool = True) -> PaymentOutcome:
        """
        Ask the processor for the authoritative status of a transaction

        The processor-reported amount must equal the stored quote; otherwise
        the transaction is voided and AmountMismatch is raised.

        Args:
            transaction_id: Processor transaction id
            commit: Commit the status change; pass False to let the caller
                commit it together with posting activation
        """
        txn = self.get_transaction(transaction_id, for_update=True)

        if txn.is_terminal:
            return self._terminal_outcome(txn)

        if self.gateway is None or txn.provider != self.gateway.provider:
            raise PaymentProcessorUnavailable("The payment processor for this transaction is not configured")

        remote = self._call_processor(self.gateway.get_transaction_status, transaction_id)
        remote_status = ProcessorStatus(remote["status"])

        if remote["amount_cents"] != txn.amount_cents or remote["currency"] != txn.currency:
            logger.error(
                f"Transaction {txn.id} amount mismatch: quoted {txn.amount_cents} {txn.currency}, "
                f"processor reported {remote['amount_cents']} {remote['currency']}"
            )
            self._mark_failed(txn, "amount_mismatch")
            self.db.commit()
            if remote_status != ProcessorStatus.SUCCEEDED:
                self._cancel_quietly(txn)
            raise AmountMismatch(txn.amount_cents, remote["amount_cents"])

        if remote_status == ProcessorStatus.SUCCEEDED:
            txn.status = PaymentStatus.SUCCEEDED.value
            txn.pending_key = None
            txn.resolved_at = self.now()
            logger.info(f"Transaction {txn.id} succeeded")
        elif remote_status == ProcessorStatus.FAILED:
            self._mark_failed(txn, "declined")
            logger.info(f"Transaction {txn.id} failed at the processor")
        else:
            logger.info(f"Transaction {txn.id} still {remote_status.value}")

        if commit:
            self.db.commit()
        else:
            self.db.flush()

        return PaymentOutcome(remote_status.value)

    @staticmethod
    def _terminal_outcome(txn: PaymentTransaction) -> PaymentOutcome:
        if txn.status in (PaymentStatus.SUCCEEDED.value, PaymentStatus.NOT_REQUIRED.value):
            return PaymentOutcome.SUCCEEDED
        return PaymentOutcome.FAILED

    # ------------------------------------------------------------------
    # sweep
    # ------------------------------------------------------------------

    def resolve_stale_pending(self) -> int:
        """
        Void pending transactions older than the TTL

        Transactions the processor reports as succeeded are left pending so
        that only an explicit confirmation can activate their posting.

        Returns:
            Number of transactions voided
        """
        cutoff = self.now() - self.pending_ttl
        stale = self.db.query(PaymentTransaction).filter(
            PaymentTransaction.status == PaymentStatus.PENDING.value,
            PaymentTransaction.created_at <= cutoff,
        ).all()

        voided = 0
        for txn in stale:
            reason = "timed_out"
            if txn.provider_transaction_id and self.gateway is not None and txn.provider == self.gateway.provider:
                try:
                    remote = self._call_processor(self.gateway.get_transaction_status, txn.provider_transaction_id)
                except PaymentProcessorUnavailable:
                    logger.warning(f"Skipping stale transaction {txn.id}: processor unavailable")
                    continue

                remote_status = ProcessorStatus(remote["status"])
                if remote_status == ProcessorStatus.SUCCEEDED:
                    logger.warning(f"Stale transaction {txn.id} succeeded at the processor; awaiting confirmation")
                    continue
                if remote_status == ProcessorStatus.FAILED:
                    reason = "declined"

            self._mark_failed(txn, reason)
            self.db.commit()
            self._cancel_quietly(txn)
            voided += 1

        if voided:
            logger.info(f"Voided {voided} stale pending transaction(s)")
        return voided

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _pending_for_draft(self, draft_id: int) -> Optional[PaymentTransaction]:
        return self.db.query(PaymentTransaction).filter(
            PaymentTransaction.pending_key == draft_id
        ).first()

    def _is_orphaned(self, txn: PaymentTransaction) -> bool:
        """Claimed but never given a processor id within the grace period"""
        return txn.provider_transaction_id is None and txn.created_at <= self.now() - self.claim_grace

    def _mark_failed(self, txn: PaymentTransaction, reason: str) -> None:
        txn.status = PaymentStatus.FAILED.value
        txn.failure_reason = reason
        txn.pending_key = None
        txn.resolved_at = self.now()

    def _cancel_quietly(self, txn: PaymentTransaction) -> None:
        """Best-effort processor cancel for a transaction already voided locally"""
        if not txn.provider_transaction_id or self.gateway is None or txn.provider != self.gateway.provider:
            return
        try:
            self.gateway.cancel_transaction(txn.provider_transaction_id)
        except JobBoardError as e:
            logger.warning(f"Could not cancel transaction {txn.id} at the processor: {e.code}")

    def _call_processor(self, func, *args, **kwargs):
        """Call the processor, retrying only transient failures with exponential backoff"""
        for attempt in range(self.max_attempts):
            try:
                return func(*args, **kwargs)
            except PaymentProcessorUnavailable as e:
                logger.warning(
                    f"Payment processor call {func.__name__} attempt {attempt + 1}/{self.max_attempts} failed: {e}"
                )
                if attempt < self.max_attempts - 1:
                    self.sleep(self.backoff_seconds * (2 ** attempt))

        logger.error(f"Payment processor call {func.__name__} failed after {self.max_attempts} attempts")
        raise PaymentProcessorUnavailable()

    @staticmethod
    def _idempotency_key(draft: JobDraft, price_quote: pricing.PriceQuote) -> str:
        fingerprint = "|".join([
            price_quote.plan.value,
            ",".join(price_quote.addon_values),
            str(price_quote.total_cents),
            price_quote.currency,
        ])
        digest = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:16]
        return f"job-draft-{draft.id}-g{draft.payment_generation or 0}-{digest}"

    @staticmethod
    def _result(txn: PaymentTransaction, reused: bool = False) -> PaymentIntentResult:
        return PaymentIntentResult(
            status=PaymentStatus(txn.status),
            transaction=txn,
            amount_cents=txn.amount_cents,
            currency=txn.currency,
            transaction_id=txn.provider_transaction_id,
            client_token=txn.client_token,
            reused=reused,
        )
