"""
Tests for the access control gate and role management
"""
from unittest.mock import Mock

import pytest

from job_board.db.models import AccountRole, JobApplication
from job_board.exceptions import InvalidRole, RoleAlreadySelected, RoleSwitchBlocked
from job_board.services.access_control import (
    AccountService,
    RejectionReason,
    authorize,
    parse_role,
)

from conftest import make_draft


def account_with(role: AccountRole):
    account = Mock()
    account.id = 1
    account.account_role = role
    return account


class TestAuthorize:
    """authorize() rules, first match wins"""

    def test_anonymous_is_unauthenticated(self):
        decision = authorize(None, AccountRole.BUSINESS)
        assert decision.allowed is False
        assert decision.reason is RejectionReason.UNAUTHENTICATED

    def test_anonymous_without_required_role(self):
        assert authorize(None).reason is RejectionReason.UNAUTHENTICATED

    @pytest.mark.parametrize("required", [AccountRole.BUSINESS, AccountRole.JOB_SEEKER, None])
    def test_unset_role_requires_selection(self, required):
        decision = authorize(account_with(AccountRole.UNSET), required)
        assert decision.allowed is False
        assert decision.reason is RejectionReason.ROLE_SELECTION_REQUIRED

    def test_job_seeker_cannot_do_business_operations(self):
        decision = authorize(account_with(AccountRole.JOB_SEEKER), AccountRole.BUSINESS)
        assert decision.allowed is False
        assert decision.reason is RejectionReason.FORBIDDEN_ROLE
        assert decision.required_role is AccountRole.BUSINESS

    def test_business_cannot_do_job_seeker_operations(self):
        decision = authorize(account_with(AccountRole.BUSINESS), AccountRole.JOB_SEEKER)
        assert decision.reason is RejectionReason.FORBIDDEN_ROLE

    def test_matching_roles_are_allowed(self):
        assert authorize(account_with(AccountRole.BUSINESS), AccountRole.BUSINESS).allowed is True
        assert authorize(account_with(AccountRole.JOB_SEEKER), AccountRole.JOB_SEEKER).allowed is True

    def test_any_selected_role_passes_without_requirement(self):
        decision = authorize(account_with(AccountRole.JOB_SEEKER))
        assert decision.allowed is True
        assert decision.reason is None


class TestParseRole:
    def test_accepts_selectable_roles(self):
        assert parse_role("Business") is AccountRole.BUSINESS
        assert parse_role("job_seeker") is AccountRole.JOB_SEEKER

    @pytest.mark.parametrize("value", ["unset", "admin", ""])
    def test_rejects_everything_else(self, value):
        with pytest.raises(InvalidRole):
            parse_role(value)


class TestAccountService:
    """Role selection and switching against the database"""

    def test_select_role_from_unset(self, db_session, unset_account, clock):
        account = AccountService(db_session, now=clock).select_role(unset_account, "business")

        assert account.account_role is AccountRole.BUSINESS
        assert account.role_selected_at == clock()

    def test_reselecting_same_role_is_noop(self, db_session, business_account):
        selected_at = business_account.role_selected_at
        account = AccountService(db_session).select_role(business_account, AccountRole.BUSINESS)

        assert account.account_role is AccountRole.BUSINESS
        assert account.role_selected_at == selected_at

    def test_selecting_different_role_is_rejected(self, db_session, business_account):
        with pytest.raises(RoleAlreadySelected):
            AccountService(db_session).select_role(business_account, "job_seeker")

    def test_switch_role_without_records(self, db_session, business_account):
        account = AccountService(db_session).switch_role(business_account, "job_seeker")
        assert account.account_role is AccountRole.JOB_SEEKER

    def test_switch_blocked_for_business_with_drafts(self, db_session, business_account):
        make_draft(db_session, business_account)

        with pytest.raises(RoleSwitchBlocked):
            AccountService(db_session).switch_role(business_account, "job_seeker")

        db_session.refresh(business_account)
        assert business_account.account_role is AccountRole.BUSINESS

    def test_switch_blocked_for_seeker_with_applications(self, db_session, seeker_account, posting_service, draft):
        result = posting_service.publish_posting(draft.id, "basic", [], draft.business_account_id)
        db_session.add(JobApplication(job_posting_id=result.posting_id, applicant_account_id=seeker_account.id))
        db_session.commit()

        with pytest.raises(RoleSwitchBlocked):
            AccountService(db_session).switch_role(seeker_account, "business")

    def test_switch_from_unset_behaves_like_select(self, db_session, unset_account):
        account = AccountService(db_session).switch_role(unset_account, "job_seeker")
        assert account.account_role is AccountRole.JOB_SEEKER
