"""
Payment transaction model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
import enum

from ..base import Base
from ...clock import utcnow


class PaymentStatus(str, enum.Enum):
    """Persisted transaction status"""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_REQUIRED = "not_required"


TERMINAL_PAYMENT_STATUSES = frozenset({
    PaymentStatus.SUCCEEDED.value,
    PaymentStatus.FAILED.value,
    PaymentStatus.NOT_REQUIRED.value,
})


class PaymentProvider(str, enum.Enum):
    """Payment provider enum"""
    STRIPE = "stripe"
    PAYSTACK = "paystack"
    NONE = "none"  # zero-cost publish, no processor involved


class PaymentTransaction(Base):
    """One attempt to pay for publishing a draft"""
    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, index=True)
    provider = Column(String, nullable=False)
    provider_transaction_id = Column(String, nullable=True, unique=True, index=True)
    client_token = Column(String, nullable=True)
    idempotency_key = Column(String, nullable=True)
    draft_id = Column(Integer, ForeignKey("job_drafts.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    posting_id = Column(Integer, ForeignKey("job_postings.id"), nullable=True, index=True)

    # Quote snapshot taken when the transaction was opened
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String, nullable=False)
    plan = Column(String, nullable=False)
    addons = Column(JSON, nullable=False, default=list)

    status = Column(String, nullable=False, default=PaymentStatus.PENDING.value, index=True)
    failure_reason = Column(String, nullable=True)

    # Equals draft_id while pending and NULL once terminal; the unique index
    # allows at most one pending transaction per draft.
    pending_key = Column(Integer, nullable=True, unique=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    resolved_at = Column(DateTime, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PAYMENT_STATUSES

    def same_quote(self, amount_cents: int, currency: str, plan: str, addons) -> bool:
        return (
            self.amount_cents == amount_cents
            and self.currency == currency
            and self.plan == plan
            and list(self.addons or []) == list(addons)
        )

    def __repr__(self) -> str:
        return f"<PaymentTransaction id={self.id} status={self.status} amount={self.amount_cents}>"
