"""
Pydantic request and response schemas for the HTTP API
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class QuoteRequest(BaseModel):
    plan: str = Field(..., description="Plan identifier: basic, standard, featured or unlimited")
    addons: List[str] = Field(default_factory=list, description="Add-on identifiers: boost, highlight, urgent, extended")


class QuoteResponse(BaseModel):
    plan: str
    addons: List[str]
    plan_price_cents: int
    addon_prices: Dict[str, int]
    total_cents: int
    currency: str
    display_total: str


def clean_tags(tags):
    """Strip whitespace and drop empty or repeated tags"""
    if tags is None:
        return None
    seen = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class DraftCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)
    employment_type: str = Field(..., description="Full-time, Part-time or Gig")
    compensation_type: str = Field(..., description="Salary or Hourly")
    salary_range: Optional[str] = None
    hourly_rate: Optional[str] = None
    description: str = Field(..., min_length=10)
    requirements: Optional[str] = None
    tags: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        return clean_tags(v)


class DraftResponse(BaseModel):
    id: int
    title: str
    company: str
    location: str
    employment_type: str
    compensation_type: str
    salary_range: Optional[str] = None
    hourly_rate: Optional[str] = None
    description: str
    requirements: Optional[str] = None
    tags: List[str] = []
    posting_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PublishRequest(BaseModel):
    plan: str
    addons: List[str] = Field(default_factory=list)


class PublishResponse(BaseModel):
    status: str
    amount_cents: int
    currency: str
    transaction_id: Optional[str] = None
    client_token: Optional[str] = None
    posting_id: Optional[int] = None
    reason: Optional[str] = None


class ActivationResponse(BaseModel):
    status: str
    outcome: str
    posting_id: Optional[int] = None
    reason: Optional[str] = None


class PostingResponse(BaseModel):
    id: int
    title: str
    company: str
    location: str
    employment_type: str
    compensation_type: str
    salary_range: Optional[str] = None
    hourly_rate: Optional[str] = None
    description: str
    requirements: Optional[str] = None
    tags: List[str] = []
    plan: str
    addons: List[str] = []
    status: str
    featured: bool
    expires_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostingUpdate(BaseModel):
    """
    Partial edit of a live posting

    Unknown keys are passed through so the service can reject attempts to
    change plan, status, featured or expiry with IMMUTABLE_FIELD.
    """
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    company: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    employment_type: Optional[str] = None
    compensation_type: Optional[str] = None
    salary_range: Optional[str] = None
    hourly_rate: Optional[str] = None
    description: Optional[str] = Field(None, min_length=10)
    requirements: Optional[str] = None
    tags: Optional[List[str]] = Field(None, max_length=20)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v):
        return clean_tags(v)


class FeaturedUpdate(BaseModel):
    featured: bool


class ApplicationCreate(BaseModel):
    cover_letter: Optional[str] = Field(None, max_length=5000)


class ApplicationResponse(BaseModel):
    id: int
    job_posting_id: int
    applicant_account_id: int
    status: str
    cover_letter: Optional[str] = None
    applied_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationStatusUpdate(BaseModel):
    status: str = Field(..., description="pending, reviewed, contacted or rejected")


class AccountRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = None
    role: Optional[str] = Field(None, description="Optional initial role: business or job_seeker")


class AccountLogin(BaseModel):
    email: EmailStr
    password: str


class AccountResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: str
    role_selected_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: AccountResponse


class RoleRequest(BaseModel):
    role: str = Field(..., description="business or job_seeker")


class AuthorizationResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    required_role: Optional[str] = None
