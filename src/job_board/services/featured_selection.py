"""
Featured selection for the public listings page

Sponsored (featured) postings fill the slots first in a stable order;
any remaining slots rotate through the other active postings at random.
"""
from typing import List, Optional, Sequence
import random
import logging

from sqlalchemy.orm import Session

from ..clock import Clock, utcnow
from ..config import config
from ..db.models import JobPosting, PostingStatus
from .posting_lifecycle import PostingLifecycle

logger = logging.getLogger(__name__)

DEFAULT_FEATURED_SLOTS = 4


def _newest_first(posting: JobPosting):
    return (posting.created_at, posting.id)


def select_featured(
    postings: Sequence[JobPosting],
    slots: int = DEFAULT_FEATURED_SLOTS,
    rng: Optional[random.Random] = None,
) -> List[JobPosting]:
    """
    Pick at most `slots` postings to show as featured

    Args:
        postings: Candidate postings; anything not active is ignored
        slots: Target number of postings
        rng: Random source for the rotating fill; a fresh one if omitted

    Returns:
        Featured postings newest first, followed by the random fill
    """
    active = [p for p in postings if p.status == PostingStatus.ACTIVE.value]
    featured = sorted((p for p in active if p.featured), key=_newest_first, reverse=True)

    if len(featured) >= slots:
        return featured[:slots]

    pool = sorted((p for p in active if not p.featured), key=lambda p: p.id)
    needed = slots - len(featured)
    if len(pool) <= needed:
        return featured + pool

    rng = rng or random.Random()
    return featured + rng.sample(pool, needed)


class FeaturedSelector:
    """Loads the active set and applies select_featured per request"""

    def __init__(
        self,
        db: Session,
        rng: Optional[random.Random] = None,
        slots: Optional[int] = None,
        now: Clock = utcnow,
    ):
        self.db = db
        self.rng = rng
        self.slots = slots or config.FEATURED_SLOTS
        self.now = now
        self.lifecycle = PostingLifecycle(db, now=now)

    def list_featured(self) -> List[JobPosting]:
        self.lifecycle.expire_overdue()
        now = self.now()
        active = self.db.query(JobPosting).filter(*PostingLifecycle.active_filter(now)).all()
        selected = select_featured(active, self.slots, self.rng)
        logger.debug(f"Selected {len(selected)} featured posting(s) from {len(active)} active")
        return selected
