"""
Job posting API routes - drafts, publishing, payment confirmation and listings
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from .auth import get_current_account_optional, require_role
from .db.models import Account, AccountRole
from .dependencies import get_posting_service
from .schemas import (
    ActivationResponse,
    DraftCreate,
    DraftResponse,
    FeaturedUpdate,
    PostingResponse,
    PostingUpdate,
    PublishRequest,
    PublishResponse,
)
from .services.posting_service import PostingService

router = APIRouter(prefix="/v1", tags=["jobs"])

require_business = require_role(AccountRole.BUSINESS)


@router.post("/drafts", response_model=DraftResponse, status_code=status.HTTP_201_CREATED)
def create_draft(
    request: DraftCreate,
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    return service.create_draft(account, request.model_dump())


@router.post("/drafts/{draft_id}/publish", response_model=PublishResponse)
def publish_draft(
    draft_id: int,
    request: PublishRequest,
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    """
    Publish a draft under a plan

    Free selections go live immediately (status=activated). Paid selections
    return status=payment_required with the processor transaction id and
    client token; the posting goes live once the payment is confirmed.
    """
    result = service.publish_posting(draft_id, request.plan, request.addons, account.id)
    return PublishResponse(
        status=result.status.value,
        amount_cents=result.amount_cents,
        currency=result.currency,
        transaction_id=result.transaction_id,
        client_token=result.client_token,
        posting_id=result.posting_id,
        reason=result.reason,
    )


@router.post("/payments/{transaction_id}/confirm", response_model=ActivationResponse)
def confirm_payment(
    transaction_id: str,
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    """Check the payment with the processor and activate the posting once it has succeeded"""
    result = service.confirm_and_activate(transaction_id, account.id)
    return ActivationResponse(
        status=result.status.value,
        outcome=result.outcome.value,
        posting_id=result.posting_id,
        reason=result.reason,
    )


@router.get("/jobs", response_model=List[PostingResponse])
def list_jobs(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: PostingService = Depends(get_posting_service),
):
    return service.list_active(limit=limit, offset=offset)


@router.get("/jobs/featured", response_model=List[PostingResponse])
def list_featured_jobs(service: PostingService = Depends(get_posting_service)):
    return service.list_featured()


@router.get("/jobs/{posting_id}", response_model=PostingResponse)
def get_job(
    posting_id: int,
    viewer: Optional[Account] = Depends(get_current_account_optional),
    service: PostingService = Depends(get_posting_service),
):
    return service.get_posting(posting_id, viewer=viewer)


@router.get("/business/jobs", response_model=List[PostingResponse])
def list_my_jobs(
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    return service.list_business_postings(account)


@router.put("/jobs/{posting_id}", response_model=PostingResponse)
def update_job(
    posting_id: int,
    request: PostingUpdate,
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    """
    Edit the descriptive fields of an active posting

    Plan, status, featured and expiry are rejected with IMMUTABLE_FIELD.
    """
    fields = {**request.model_dump(exclude_unset=True), **(request.model_extra or {})}
    return service.update_posting(posting_id, account.id, fields)


@router.post("/jobs/{posting_id}/close", response_model=PostingResponse)
def close_job(
    posting_id: int,
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    return service.close_posting(posting_id, account.id)


@router.put("/jobs/{posting_id}/featured", response_model=PostingResponse)
def update_featured(
    posting_id: int,
    request: FeaturedUpdate,
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    return service.set_featured(posting_id, account.id, request.featured)
