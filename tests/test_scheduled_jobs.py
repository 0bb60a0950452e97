"""
Tests for the periodic expiration sweep
"""
from unittest.mock import MagicMock, patch

from job_board.db.models import JobPosting, PaymentStatus, PaymentTransaction, PostingStatus
from job_board.services import scheduled_jobs
from job_board.services.scheduled_jobs import run_expiration_sweep

from conftest import make_draft


class TestRunExpirationSweep:
    def test_expires_overdue_postings_and_voids_stale_payments(
        self, db_session, posting_service, fake_gateway, business_account, clock
    ):
        live_id = posting_service.publish_posting(
            make_draft(db_session, business_account, title="Prep Cook").id, "basic", [], business_account.id
        ).posting_id
        pending = posting_service.publish_posting(
            make_draft(db_session, business_account, title="Line Cook").id, "standard", [], business_account.id
        )

        clock.advance(days=16)
        result = run_expiration_sweep(db_session, gateway=fake_gateway, now=clock)

        assert result == {"postings_expired": 1, "transactions_voided": 1}
        assert db_session.get(JobPosting, live_id).status == PostingStatus.EXPIRED.value
        txn = db_session.query(PaymentTransaction).filter(
            PaymentTransaction.provider_transaction_id == pending.transaction_id
        ).one()
        assert txn.status == PaymentStatus.FAILED.value
        assert txn.pending_key is None
        assert pending.transaction_id in fake_gateway.cancelled

    def test_second_run_is_a_no_op(self, db_session, posting_service, fake_gateway, draft, business_account, clock):
        posting_service.publish_posting(draft.id, "basic", [], business_account.id)
        clock.advance(days=16)

        run_expiration_sweep(db_session, gateway=fake_gateway, now=clock)

        assert run_expiration_sweep(db_session, gateway=fake_gateway, now=clock) == {
            "postings_expired": 0,
            "transactions_voided": 0,
        }

    def test_without_gateway_pending_payments_are_left_alone(
        self, db_session, posting_service, draft, business_account, clock
    ):
        posting_service.publish_posting(draft.id, "standard", [], business_account.id)
        clock.advance(hours=2)

        result = run_expiration_sweep(db_session, gateway=None, now=clock)

        assert result["transactions_voided"] == 0
        txn = db_session.query(PaymentTransaction).filter(PaymentTransaction.draft_id == draft.id).one()
        assert txn.status == PaymentStatus.PENDING.value

    def test_succeeded_stale_payment_waits_for_confirmation(
        self, db_session, posting_service, fake_gateway, draft, business_account, clock
    ):
        pending = posting_service.publish_posting(draft.id, "standard", [], business_account.id)
        fake_gateway.set_status(pending.transaction_id, "succeeded")
        clock.advance(hours=2)

        assert run_expiration_sweep(db_session, gateway=fake_gateway, now=clock)["transactions_voided"] == 0
        assert posting_service.confirm_and_activate(pending.transaction_id, business_account.id).posting_id


class TestSweepJob:
    """Scheduler entry point"""

    def test_job_rolls_back_and_closes_on_failure(self):
        session = MagicMock()
        with patch("job_board.db.engine.SessionLocal", return_value=session), \
                patch("job_board.services.payment_gateway.get_payment_gateway", return_value=None), \
                patch.object(scheduled_jobs, "run_expiration_sweep", side_effect=RuntimeError("db gone")):
            scheduled_jobs.run_expiration_sweep_job()

        session.rollback.assert_called_once()
        session.close.assert_called_once()

    def test_missing_gateway_config_still_expires_postings(self):
        session = MagicMock()
        with patch("job_board.db.engine.SessionLocal", return_value=session), \
                patch("job_board.services.payment_gateway.get_payment_gateway", side_effect=ValueError("no key")), \
                patch.object(scheduled_jobs, "run_expiration_sweep", return_value={
                    "postings_expired": 0, "transactions_voided": 0,
                }) as sweep:
            scheduled_jobs.run_expiration_sweep_job()

        sweep.assert_called_once_with(session, gateway=None)
        session.close.assert_called_once()

    def test_start_registers_interval_job(self):
        scheduler = MagicMock()
        scheduler.running = False
        with patch.object(scheduled_jobs, "get_scheduler", return_value=scheduler):
            scheduled_jobs.start_scheduler()

        kwargs = scheduler.add_job.call_args.kwargs
        assert kwargs["id"] == "expiration_sweep"
        assert kwargs["func"] is scheduled_jobs.run_expiration_sweep_job
        scheduler.start.assert_called_once()
