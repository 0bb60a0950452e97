"""
Tests for featured selection
"""
import random
from datetime import datetime, timedelta

import pytest

from job_board.db.models import JobPosting, PostingStatus
from job_board.services.featured_selection import FeaturedSelector, select_featured

from conftest import make_draft

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0)


def posting(id, featured=False, status=PostingStatus.ACTIVE, age_minutes=0):
    """Detached posting for the pure selection function"""
    return JobPosting(
        id=id,
        featured=featured,
        status=status.value,
        created_at=BASE_TIME - timedelta(minutes=age_minutes),
    )


class TestSelectFeatured:
    """Pure selection over an in-memory candidate list"""

    def test_four_or_more_featured_returns_newest_four(self):
        candidates = [posting(i, featured=True, age_minutes=i) for i in range(1, 7)]
        candidates += [posting(i) for i in range(10, 15)]

        selected = select_featured(candidates, slots=4, rng=random.Random(1))

        assert [p.id for p in selected] == [1, 2, 3, 4]

    def test_featured_result_is_stable(self):
        candidates = [posting(i, featured=True, age_minutes=10 - i) for i in range(1, 6)]

        runs = {tuple(p.id for p in select_featured(candidates, 4)) for _ in range(20)}

        assert runs == {(5, 4, 3, 2)}

    def test_ties_on_created_at_break_by_id(self):
        candidates = [posting(i, featured=True) for i in range(1, 6)]
        assert [p.id for p in select_featured(candidates, 4)] == [5, 4, 3, 2]

    def test_one_featured_is_filled_from_the_rest(self):
        candidates = [posting(1, featured=True)] + [posting(i) for i in range(100, 110)]

        selections = [select_featured(candidates, 4, random.Random(seed)) for seed in range(30)]

        for selected in selections:
            assert len(selected) == 4
            assert selected[0].id == 1
            fill = [p.id for p in selected[1:]]
            assert len(set(fill)) == 3
            assert all(100 <= i < 110 for i in fill)
        assert len({tuple(p.id for p in s) for s in selections}) > 1

    def test_seeded_rng_is_deterministic(self):
        candidates = [posting(1, featured=True)] + [posting(i) for i in range(100, 110)]

        first = select_featured(candidates, 4, random.Random(42))
        second = select_featured(candidates, 4, random.Random(42))

        assert [p.id for p in first] == [p.id for p in second]

    def test_small_pool_returns_everything(self):
        candidates = [posting(1, featured=True), posting(2), posting(3)]

        selected = select_featured(candidates, 4)

        assert [p.id for p in selected][0] == 1
        assert {p.id for p in selected} == {1, 2, 3}

    def test_no_candidates(self):
        assert select_featured([], 4) == []

    def test_inactive_postings_are_ignored(self):
        candidates = [
            posting(1, featured=True, status=PostingStatus.EXPIRED),
            posting(2, status=PostingStatus.CLOSED),
            posting(3),
        ]
        assert [p.id for p in select_featured(candidates, 4)] == [3]

    def test_input_is_not_mutated(self):
        candidates = [posting(i) for i in range(1, 10)]
        snapshot = list(candidates)

        select_featured(candidates, 4, random.Random(3))

        assert candidates == snapshot


class TestFeaturedSelector:
    """Selection over the database with lazy expiration"""

    @pytest.fixture
    def publish(self, db_session, posting_service, business_account):
        def _publish(plan, title):
            draft = make_draft(db_session, business_account, title=title)
            if plan == "basic":
                return posting_service.publish_posting(draft.id, plan, [], business_account.id).posting_id
            result = posting_service.publish_posting(draft.id, plan, [], business_account.id)
            posting_service.orchestrator.gateway.set_status(result.transaction_id, "succeeded")
            return posting_service.confirm_and_activate(result.transaction_id, business_account.id).posting_id
        return _publish

    def test_expired_featured_postings_are_not_selected(self, db_session, publish, clock):
        featured_id = publish("featured", "Sous Chef")
        basic_ids = [publish("basic", f"Server {i}") for i in range(3)]

        clock.advance(days=20)  # basic (15 days) expired, featured (30 days) still live

        selected = FeaturedSelector(db_session, rng=random.Random(0), now=clock).list_featured()

        assert [p.id for p in selected] == [featured_id]
        for posting_id in basic_ids:
            assert db_session.get(JobPosting, posting_id).status == PostingStatus.EXPIRED.value

    def test_fills_with_active_postings(self, db_session, publish, clock):
        featured_id = publish("featured", "Sous Chef")
        basic_ids = {publish("basic", f"Server {i}") for i in range(5)}

        selected = FeaturedSelector(db_session, rng=random.Random(0), slots=4, now=clock).list_featured()

        assert selected[0].id == featured_id
        assert len(selected) == 4
        assert {p.id for p in selected[1:]} <= basic_ids
