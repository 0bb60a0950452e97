"""
Authentication utilities, JWT token handling and role-gated dependencies
"""
import os
import hashlib
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .db import get_db
from .db.models import Account, AccountRole
from .services.access_control import AccessDecision, RejectionReason, authorize

logger = logging.getLogger(__name__)


def get_secret_key():
    """Get secret key from config module"""
    from .config import config
    return config.SECRET_KEY


def get_token_lifetime() -> timedelta:
    from .config import config
    return timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)


ALGORITHM = "HS256"

# Each increment doubles the hashing time: 12 -> ~300ms
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS
)
http_bearer = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _prepare_password(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        # SHA256 hex digest is 64 bytes, under the bcrypt limit
        return hashlib.sha256(password_bytes).hexdigest().encode("utf-8")
    return password_bytes


def get_password_hash(password: str) -> str:
    """Hash a password, handling bcrypt's 72-byte limit"""
    if not password:
        raise ValueError("Password cannot be empty")
    hashed = bcrypt.hashpw(_prepare_password(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    if not plain_password or not hashed_password:
        return False

    prepared = _prepare_password(plain_password)
    try:
        return pwd_context.verify(prepared.decode("utf-8"), hashed_password)
    except (ValueError, AttributeError) as e:
        # passlib's backend self-test fails against newer bcrypt releases
        logger.debug(f"passlib verification unavailable ({type(e).__name__}); using bcrypt directly")
        if not hashed_password.startswith("$2"):
            return False
        return bcrypt.checkpw(prepared, hashed_password.encode("utf-8"))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token

    Args:
        data: Claims to encode (must include 'sub' - the account id as a string)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    issued_at = datetime.utcnow()
    expire = issued_at + (expires_delta or get_token_lifetime())

    to_encode.update({
        "exp": expire,
        "jti": str(uuid.uuid4()),
        "iat": issued_at,
    })
    return jwt.encode(to_encode, get_secret_key(), algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Verify and decode a JWT token; None when invalid or expired"""
    try:
        return jwt.decode(token, get_secret_key(), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("Token verification failed: Token has expired")
        return None
    except jwt.JWTClaimsError as e:
        logger.warning(f"Token verification failed: Invalid token claims - {str(e)}")
        return None
    except JWTError as e:
        logger.warning(f"Token verification failed: {type(e).__name__} - {str(e)}")
        return None


def get_auth_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> Optional[str]:
    """Extract the bearer token from the Authorization header, falling back to the auth_token cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials.strip() or None
    cookie_token = request.cookies.get("auth_token")
    if cookie_token:
        logger.debug("Using token from cookie (no Authorization header present)")
        return cookie_token.strip() or None
    return None


def get_current_account_optional(
    token: Optional[str] = Depends(get_auth_token),
    db: Session = Depends(get_db)
) -> Optional[Account]:
    """Resolve the calling account, or None when the request is anonymous or the token is unusable"""
    if not token:
        return None

    payload = verify_token(token)
    if payload is None:
        return None

    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.warning(f"Authentication failed: Invalid account id in token: {payload.get('sub')!r}")
        return None

    account = db.query(Account).filter(Account.id == account_id).first()
    if account is None:
        logger.warning(f"Authentication failed: Account {account_id} not found")
    return account


REJECTION_RESPONSES = {
    RejectionReason.UNAUTHENTICATED: (
        status.HTTP_401_UNAUTHORIZED,
        "UNAUTHENTICATED",
        "Authentication required. Please log in.",
    ),
    RejectionReason.ROLE_SELECTION_REQUIRED: (
        status.HTTP_409_CONFLICT,
        "ROLE_SELECTION_REQUIRED",
        "Please choose whether you are a business or a job seeker before continuing.",
    ),
    RejectionReason.FORBIDDEN_ROLE: (
        status.HTTP_403_FORBIDDEN,
        "FORBIDDEN_ROLE",
        "Your account role does not allow this action.",
    ),
}


def rejection_to_http(decision: AccessDecision) -> HTTPException:
    status_code, code, message = REJECTION_RESPONSES[decision.reason]
    detail = {"code": code, "message": message}
    if decision.required_role is not None:
        detail["required_role"] = decision.required_role.value
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


def get_current_account(
    account: Optional[Account] = Depends(get_current_account_optional)
) -> Account:
    """Any authenticated account, with or without a role"""
    if account is None:
        raise rejection_to_http(AccessDecision.reject(RejectionReason.UNAUTHENTICATED))
    return account


def require_role(role: Optional[AccountRole] = None):
    """
    Dependency factory gating a route on the caller's role

    Usage:
        @router.post("/drafts")
        def create_draft(account: Account = Depends(require_role(AccountRole.BUSINESS))):
            ...

    With role=None the caller only needs to be authenticated with a role selected.
    """
    def dependency(account: Optional[Account] = Depends(get_current_account_optional)) -> Account:
        decision = authorize(account, role)
        if not decision.allowed:
            logger.info(
                f"Access rejected: {decision.reason.value} "
                f"(account={getattr(account, 'id', None)}, required_role={role.value if role else None})"
            )
            raise rejection_to_http(decision)
        return account

    return dependency
