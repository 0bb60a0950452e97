"""
Account model and role enum
"""
from sqlalchemy import Column, Integer, String, DateTime
import enum

from ..base import Base
from ...clock import utcnow


class AccountRole(str, enum.Enum):
    """Closed set of account capability classes"""
    UNSET = "unset"
    BUSINESS = "business"
    JOB_SEEKER = "job_seeker"


class Account(Base):
    """User account model"""
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default=AccountRole.UNSET.value, index=True)
    role_selected_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def account_role(self) -> AccountRole:
        return AccountRole(self.role or AccountRole.UNSET.value)

    @property
    def has_role(self) -> bool:
        return self.account_role is not AccountRole.UNSET

    def __repr__(self) -> str:
        return f"<Account id={self.id} role={self.role}>"
