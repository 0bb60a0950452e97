"""
Access Control Gate - role-based authorization for accounts

`authorize` is a pure predicate over (account, required role). Rejections
are returned as values; the HTTP layer decides how to render them.
"""
from dataclasses import dataclass
from typing import Optional
import enum
import logging

from sqlalchemy.orm import Session

from ..clock import Clock, utcnow
from ..db.models import Account, AccountRole, JobApplication, JobDraft, JobPosting
from ..exceptions import InvalidRole, RoleAlreadySelected, RoleSwitchBlocked

logger = logging.getLogger(__name__)


class RejectionReason(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    ROLE_SELECTION_REQUIRED = "role_selection_required"
    FORBIDDEN_ROLE = "forbidden_role"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[RejectionReason] = None
    required_role: Optional[AccountRole] = None

    @classmethod
    def allow(cls, required_role: Optional[AccountRole] = None) -> "AccessDecision":
        return cls(True, None, required_role)

    @classmethod
    def reject(cls, reason: RejectionReason, required_role: Optional[AccountRole] = None) -> "AccessDecision":
        return cls(False, reason, required_role)


def authorize(account: Optional[Account], required_role: Optional[AccountRole] = None) -> AccessDecision:
    """
    Decide whether `account` may perform an operation needing `required_role`

    Rules, first match wins:
        no account                       -> UNAUTHENTICATED
        role unset                       -> ROLE_SELECTION_REQUIRED
        role differs from required_role  -> FORBIDDEN_ROLE
        otherwise                        -> allowed

    With required_role=None only authentication and role selection are checked.
    """
    if account is None:
        return AccessDecision.reject(RejectionReason.UNAUTHENTICATED, required_role)

    role = account.account_role
    if role is AccountRole.UNSET:
        return AccessDecision.reject(RejectionReason.ROLE_SELECTION_REQUIRED, required_role)

    if required_role is None:
        return AccessDecision.allow()

    if required_role is AccountRole.BUSINESS and role is not AccountRole.BUSINESS:
        return AccessDecision.reject(RejectionReason.FORBIDDEN_ROLE, required_role)

    if required_role is AccountRole.JOB_SEEKER and role is not AccountRole.JOB_SEEKER:
        return AccessDecision.reject(RejectionReason.FORBIDDEN_ROLE, required_role)

    return AccessDecision.allow(required_role)


def parse_role(value) -> AccountRole:
    """Resolve a selectable role; 'unset' is not selectable"""
    try:
        role = value if isinstance(value, AccountRole) else AccountRole(str(value).strip().lower())
    except ValueError:
        raise InvalidRole(value)
    if role is AccountRole.UNSET:
        raise InvalidRole(value)
    return role


class AccountService:
    """Role selection and switching"""

    def __init__(self, db: Session, now: Clock = utcnow):
        self.db = db
        self.now = now

    def select_role(self, account: Account, role) -> Account:
        """
        Set the role of an account that has none

        Re-selecting the current role is a no-op; choosing a different one
        requires switch_role.
        """
        role = parse_role(role)
        current = account.account_role

        if current is role:
            return account
        if current is not AccountRole.UNSET:
            raise RoleAlreadySelected(
                f"Account already has role '{current.value}'. Use switch role to change it.",
                {"current_role": current.value},
            )

        account.role = role.value
        account.role_selected_at = self.now()
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"Account {account.id} selected role {role.value}")
        return account

    def switch_role(self, account: Account, role) -> Account:
        """Change an account's role when it owns nothing tied to the current one"""
        role = parse_role(role)
        current = account.account_role

        if current is role:
            return account
        if current is AccountRole.UNSET:
            return self.select_role(account, role)

        if self._owns_records_for(account, current):
            raise RoleSwitchBlocked(
                f"Account has {current.value} records and cannot switch to '{role.value}'",
                {"current_role": current.value, "requested_role": role.value},
            )

        account.role = role.value
        account.role_selected_at = self.now()
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"Account {account.id} switched role {current.value} -> {role.value}")
        return account

    def _owns_records_for(self, account: Account, role: AccountRole) -> bool:
        if role is AccountRole.BUSINESS:
            has_drafts = self.db.query(JobDraft.id).filter(JobDraft.business_account_id == account.id).first()
            has_postings = self.db.query(JobPosting.id).filter(JobPosting.business_account_id == account.id).first()
            return bool(has_drafts or has_postings)
        if role is AccountRole.JOB_SEEKER:
            return bool(
                self.db.query(JobApplication.id).filter(JobApplication.applicant_account_id == account.id).first()
            )
        return False
