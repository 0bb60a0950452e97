"""
Job application API routes for job seekers
"""
from typing import List

from fastapi import APIRouter, Depends, status

from .auth import require_role
from .db.models import Account, AccountRole
from .dependencies import get_posting_service
from .schemas import ApplicationCreate, ApplicationResponse, ApplicationStatusUpdate
from .services.posting_service import PostingService

router = APIRouter(prefix="/v1", tags=["applications"])

require_job_seeker = require_role(AccountRole.JOB_SEEKER)
require_business = require_role(AccountRole.BUSINESS)


@router.post(
    "/jobs/{posting_id}/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
def apply_to_job(
    posting_id: int,
    request: ApplicationCreate,
    account: Account = Depends(require_job_seeker),
    service: PostingService = Depends(get_posting_service),
):
    return service.apply_to_posting(posting_id, account, request.cover_letter)


@router.get("/seeker/applications", response_model=List[ApplicationResponse])
def list_my_applications(
    account: Account = Depends(require_job_seeker),
    service: PostingService = Depends(get_posting_service),
):
    return service.list_applications_for_seeker(account)


@router.get("/business/jobs/{posting_id}/applications", response_model=List[ApplicationResponse])
def list_job_applications(
    posting_id: int,
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    """Applications received for one of the caller's postings, newest first"""
    return service.list_applications_for_posting(posting_id, account.id)


@router.patch("/business/applications/{application_id}", response_model=ApplicationResponse)
def update_application_status(
    application_id: int,
    request: ApplicationStatusUpdate,
    account: Account = Depends(require_business),
    service: PostingService = Depends(get_posting_service),
):
    return service.update_application_status(application_id, account.id, request.status)
