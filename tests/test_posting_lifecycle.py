"""
Tests for the posting lifecycle state machine
"""
from datetime import timedelta

import pytest

from job_board.db.models import JobPosting, PaymentStatus, PaymentTransaction, PostingStatus
from job_board.exceptions import InvalidTransition
from job_board.services.posting_lifecycle import PostingLifecycle, check_transition

from conftest import make_draft


def make_transaction(db_session, draft, plan="standard", addons=None, status=PaymentStatus.SUCCEEDED, amount=2000):
    txn = PaymentTransaction(
        provider="stripe",
        provider_transaction_id=f"pi_lifecycle_{draft.id}_{plan}",
        draft_id=draft.id,
        account_id=draft.business_account_id,
        amount_cents=amount,
        currency="usd",
        plan=plan,
        addons=addons or [],
        status=status.value,
    )
    db_session.add(txn)
    db_session.commit()
    return txn


@pytest.fixture
def lifecycle(db_session, clock):
    return PostingLifecycle(db_session, now=clock)


@pytest.fixture
def active_posting(db_session, lifecycle, draft):
    posting = lifecycle.activate(draft, make_transaction(db_session, draft))
    db_session.commit()
    return posting


class TestTransitionTable:
    @pytest.mark.parametrize("from_state,to_state", [
        ("draft", "active"),
        ("active", "expired"),
        ("active", "closed"),
    ])
    def test_allowed_edges(self, from_state, to_state):
        check_transition(from_state, to_state)

    @pytest.mark.parametrize("from_state,to_state", [
        ("expired", "active"),
        ("closed", "active"),
        ("expired", "closed"),
        ("draft", "expired"),
        ("active", "active"),
    ])
    def test_rejected_edges(self, from_state, to_state):
        with pytest.raises(InvalidTransition) as exc_info:
            check_transition(from_state, to_state)
        assert exc_info.value.from_state == from_state
        assert exc_info.value.to_state == to_state


class TestActivate:
    """draft -> active"""

    def test_activation_sets_expiry_from_plan(self, db_session, lifecycle, draft, clock):
        txn = make_transaction(db_session, draft, plan="standard")

        posting = lifecycle.activate(draft, txn)
        db_session.commit()

        assert posting.status == PostingStatus.ACTIVE.value
        assert posting.created_at == clock()
        assert posting.expires_at == clock() + timedelta(days=30)
        assert posting.featured is False
        assert posting.title == draft.title
        assert posting.business_account_id == draft.business_account_id
        assert draft.posting_id == posting.id
        assert txn.posting_id == posting.id

    def test_unlimited_never_expires(self, db_session, lifecycle, draft):
        posting = lifecycle.activate(draft, make_transaction(db_session, draft, plan="unlimited", amount=15000))
        assert posting.expires_at is None
        assert posting.featured is True

    def test_extended_and_boost_addons(self, db_session, lifecycle, draft, clock):
        txn = make_transaction(db_session, draft, plan="standard", addons=["boost", "extended"], amount=5000)
        posting = lifecycle.activate(draft, txn)

        assert posting.expires_at == clock() + timedelta(days=37)
        assert posting.featured is True

    def test_free_transaction_activates(self, db_session, lifecycle, draft, clock):
        txn = make_transaction(db_session, draft, plan="basic", status=PaymentStatus.NOT_REQUIRED, amount=0)
        posting = lifecycle.activate(draft, txn)
        assert posting.expires_at == clock() + timedelta(days=15)

    @pytest.mark.parametrize("status", [PaymentStatus.PENDING, PaymentStatus.FAILED])
    def test_unpaid_transaction_cannot_activate(self, db_session, lifecycle, draft, status):
        txn = make_transaction(db_session, draft, status=status)

        with pytest.raises(InvalidTransition):
            lifecycle.activate(draft, txn)

        assert draft.posting_id is None
        assert db_session.query(JobPosting).count() == 0

    def test_transaction_for_another_draft(self, db_session, lifecycle, draft, business_account):
        other = make_draft(db_session, business_account, title="Dishwasher")
        txn = make_transaction(db_session, other)

        with pytest.raises(InvalidTransition):
            lifecycle.activate(draft, txn)

    def test_draft_activates_only_once(self, db_session, lifecycle, draft, active_posting):
        txn = make_transaction(db_session, draft, plan="featured", amount=5000)

        with pytest.raises(InvalidTransition):
            lifecycle.activate(draft, txn)


class TestExpiration:
    """active -> expired, lazily on read and in bulk"""

    def test_refresh_expires_overdue_posting(self, lifecycle, active_posting, clock):
        clock.advance(days=30)

        lifecycle.refresh(active_posting)

        assert active_posting.status == PostingStatus.EXPIRED.value

    def test_refresh_keeps_posting_before_expiry(self, lifecycle, active_posting, clock):
        clock.advance(days=29, hours=23)
        lifecycle.refresh(active_posting)
        assert active_posting.status == PostingStatus.ACTIVE.value

    def test_expiration_clears_featured(self, db_session, lifecycle, draft, clock):
        posting = lifecycle.activate(draft, make_transaction(db_session, draft, plan="featured", amount=5000))
        db_session.commit()
        assert posting.featured is True

        clock.advance(days=31)
        lifecycle.refresh(posting)

        assert posting.status == PostingStatus.EXPIRED.value
        assert posting.featured is False

    def test_expire_overdue_is_idempotent(self, db_session, lifecycle, active_posting, clock):
        clock.advance(days=31)

        assert lifecycle.expire_overdue() == 1
        db_session.commit()
        assert lifecycle.expire_overdue() == 0

        db_session.refresh(active_posting)
        assert active_posting.status == PostingStatus.EXPIRED.value
        assert active_posting.featured is False

    def test_expire_overdue_skips_unlimited(self, db_session, lifecycle, draft, clock):
        posting = lifecycle.activate(draft, make_transaction(db_session, draft, plan="unlimited", amount=15000))
        db_session.commit()
        clock.advance(days=3650)

        assert lifecycle.expire_overdue() == 0
        db_session.refresh(posting)
        assert posting.status == PostingStatus.ACTIVE.value

    def test_active_filter_hides_overdue_rows(self, db_session, active_posting, clock):
        clock.advance(days=31)
        # Row still says active until a sweep or refresh runs
        visible = db_session.query(JobPosting).filter(*PostingLifecycle.active_filter(clock())).all()
        assert visible == []

    def test_reactivation_from_expired_is_rejected(self, lifecycle, active_posting, clock):
        clock.advance(days=31)
        lifecycle.refresh(active_posting)

        with pytest.raises(InvalidTransition):
            lifecycle.reactivate(active_posting)
        assert active_posting.status == PostingStatus.EXPIRED.value


class TestCloseAndFeature:
    """Owner-driven transitions"""

    def test_close(self, lifecycle, active_posting, clock):
        lifecycle.close(active_posting)

        assert active_posting.status == PostingStatus.CLOSED.value
        assert active_posting.closed_at == clock()

    def test_close_is_irreversible(self, lifecycle, active_posting):
        lifecycle.close(active_posting)

        with pytest.raises(InvalidTransition):
            lifecycle.reactivate(active_posting)
        with pytest.raises(InvalidTransition):
            lifecycle.close(active_posting)

    def test_closing_overdue_posting_is_rejected(self, lifecycle, active_posting, clock):
        clock.advance(days=31)

        with pytest.raises(InvalidTransition):
            lifecycle.close(active_posting)
        assert active_posting.status == PostingStatus.EXPIRED.value

    def test_featured_only_while_active(self, lifecycle, active_posting):
        lifecycle.set_featured(active_posting, True)
        assert active_posting.featured is True

        lifecycle.close(active_posting)
        assert active_posting.featured is False

        with pytest.raises(InvalidTransition):
            lifecycle.set_featured(active_posting, True)

    def test_edit_keeps_status_and_expiry(self, lifecycle, active_posting, clock):
        expires_at = active_posting.expires_at
        clock.advance(days=1)

        lifecycle.edit(active_posting, {"title": "Prep Cook", "location": "Bangor, ME"})

        assert active_posting.title == "Prep Cook"
        assert active_posting.location == "Bangor, ME"
        assert active_posting.status == PostingStatus.ACTIVE.value
        assert active_posting.expires_at == expires_at
        assert active_posting.updated_at == clock()

    def test_edit_after_expiry_is_rejected(self, lifecycle, active_posting, clock):
        clock.advance(days=31)

        with pytest.raises(InvalidTransition):
            lifecycle.edit(active_posting, {"title": "Prep Cook"})
        assert active_posting.title == "Line Cook"
        assert active_posting.status == PostingStatus.EXPIRED.value
