"""
Authentication and account role API routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import (
    create_access_token,
    get_current_account,
    get_current_account_optional,
    get_password_hash,
    verify_password,
)
from .db import get_db
from .db.models import Account
from .schemas import (
    AccountLogin,
    AccountRegister,
    AccountResponse,
    AuthorizationResponse,
    RoleRequest,
    Token,
)
from .services.access_control import AccountService, authorize, parse_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["authentication"])


def _token_for(account: Account) -> Token:
    access_token = create_access_token(data={"sub": str(account.id)})
    return Token(access_token=access_token, account=AccountResponse.model_validate(account))


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(request: AccountRegister, db: Session = Depends(get_db)):
    """Register a new account; the role may be chosen now or later"""
    email = request.email.lower()
    role = parse_role(request.role) if request.role else None

    if db.query(Account).filter(Account.email == email).first():
        logger.warning("Registration failed: email already registered")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "EMAIL_ALREADY_REGISTERED", "message": "Email already registered"},
        )

    account = Account(
        email=email,
        hashed_password=get_password_hash(request.password),
        full_name=request.full_name,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "EMAIL_ALREADY_REGISTERED", "message": "Email already registered"},
        )
    db.refresh(account)
    logger.info(f"Registered account {account.id}")

    if role is not None:
        account = AccountService(db).select_role(account, role)

    return _token_for(account)


@router.post("/login", response_model=Token)
def login(request: AccountLogin, db: Session = Depends(get_db)):
    account = db.query(Account).filter(Account.email == request.email.lower()).first()
    if account is None or not verify_password(request.password, account.hashed_password):
        logger.warning("Login failed: invalid credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_CREDENTIALS", "message": "Incorrect email or password"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _token_for(account)


@router.get("/me", response_model=AccountResponse)
def me(account: Account = Depends(get_current_account)):
    return account


@router.post("/select-role", response_model=AccountResponse)
def select_role(
    request: RoleRequest,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Choose business or job_seeker; a different role later requires switch-role"""
    return AccountService(db).select_role(account, request.role)


@router.post("/switch-role", response_model=AccountResponse)
def switch_role(
    request: RoleRequest,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Change role; refused while the account owns drafts, postings or applications"""
    return AccountService(db).switch_role(account, request.role)


@router.get("/authorize", response_model=AuthorizationResponse)
def check_authorization(
    required_role: Optional[str] = Query(None, description="business or job_seeker"),
    account: Optional[Account] = Depends(get_current_account_optional),
):
    """Evaluate the access gate for the caller without performing any action"""
    role = parse_role(required_role) if required_role else None
    decision = authorize(account, role)
    return AuthorizationResponse(
        allowed=decision.allowed,
        reason=decision.reason.value if decision.reason else None,
        required_role=role.value if role else None,
    )
