"""
Tests for the approval workflow rules.
"""

import pytest
from django.contrib.auth import get_user_model

from .. import approval
from ..approval import ApprovalAction
from ..exceptions import ApprovalActionNotAllowed, InvalidApprovalTarget
from ..state import QuoteStatus, new_quote

pytestmark = pytest.mark.django_db


@pytest.fixture
def users():
    User = get_user_model()
    return {
        role: User.objects.create_user(username=role, password="pw", role=role)
        for role in ("sales_rep", "sales_manager", "local_leader", "ceo", "system_admin")
    }


@pytest.fixture
def quote(users):
    return new_quote(created_by=str(users["sales_rep"].pk))


def _pending(quote, approver):
    quote.status = QuoteStatus.PENDING_APPROVAL
    quote.current_assignee_id = str(approver.pk)
    return quote


class TestAvailableActions:
    """Test which approval steps each user gets"""

    def test_draft_only_creator_submits(self, quote, users):
        assert approval.available_actions(quote, users["sales_rep"]) == ["submit"]
        assert approval.available_actions(quote, users["sales_manager"]) == []

    def test_unowned_draft_can_be_submitted_by_anyone(self, users):
        assert approval.available_actions(new_quote(), users["sales_manager"]) == ["submit"]

    def test_pending_assignee(self, quote, users):
        _pending(quote, users["sales_manager"])
        actions = approval.available_actions(quote, users["sales_manager"])
        assert actions == ["approve", "reject", "edit", "escalate", "return"]
        assert approval.available_actions(quote, users["local_leader"]) == []
        assert approval.available_actions(quote, users["sales_rep"]) == []

    def test_top_role_cannot_escalate(self, quote, users):
        _pending(quote, users["system_admin"])
        assert "escalate" not in approval.available_actions(quote, users["system_admin"])

    def test_admin_acts_on_any_pending_quote(self, quote, users):
        _pending(quote, users["sales_manager"])
        actions = approval.available_actions(quote, users["system_admin"])
        assert set(actions) == {"approve", "reject", "escalate", "return", "edit"}

    def test_in_review(self, quote, users):
        _pending(quote, users["local_leader"]).status = QuoteStatus.IN_REVIEW
        assert approval.available_actions(quote, users["local_leader"]) == ["approve", "reject", "escalate", "return"]
        assert approval.available_actions(quote, users["system_admin"]) == []

    def test_changes_requested_goes_back_to_creator(self, quote, users):
        quote.status = QuoteStatus.CHANGES_REQUESTED
        assert approval.available_actions(quote, users["sales_rep"]) == ["submit"]
        assert approval.available_actions(quote, users["sales_manager"]) == []

    @pytest.mark.parametrize("status", [QuoteStatus.APPROVED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED])
    def test_closed_quotes(self, quote, users, status):
        quote.status = status
        assert approval.available_actions(quote, users["system_admin"]) == []


class TestApplyAction:
    """Test the status and assignee each approval step produces"""

    def test_submit(self, quote, users):
        approval.apply_action(quote, users["sales_rep"], ApprovalAction.SUBMIT, users["sales_manager"])
        assert quote.status == QuoteStatus.PENDING_APPROVAL
        assert quote.current_assignee_id == str(users["sales_manager"].pk)

    def test_submit_to_non_approver(self, quote, users):
        other_rep = get_user_model().objects.create_user(username="rep2", password="pw", role="sales_rep")
        with pytest.raises(InvalidApprovalTarget):
            approval.apply_action(quote, users["sales_rep"], ApprovalAction.SUBMIT, other_rep)
        assert quote.status == QuoteStatus.DRAFT

    def test_approve_and_reject_stay_with_actor(self, quote, users):
        manager = users["sales_manager"]
        _pending(quote, manager)
        approval.apply_action(quote, manager, ApprovalAction.APPROVE)
        assert quote.status == QuoteStatus.APPROVED
        assert quote.current_assignee_id == str(manager.pk)

        _pending(quote, manager)
        approval.apply_action(quote, manager, ApprovalAction.REJECT)
        assert quote.status == QuoteStatus.REJECTED

    def test_escalate_goes_up(self, quote, users):
        _pending(quote, users["sales_manager"])
        approval.apply_action(quote, users["sales_manager"], ApprovalAction.ESCALATE, users["ceo"])
        assert quote.status == QuoteStatus.PENDING_APPROVAL
        assert quote.current_assignee_id == str(users["ceo"].pk)

    def test_escalate_needs_a_higher_target(self, quote, users):
        _pending(quote, users["local_leader"])
        with pytest.raises(InvalidApprovalTarget):
            approval.apply_action(quote, users["local_leader"], ApprovalAction.ESCALATE, users["sales_manager"])
        with pytest.raises(InvalidApprovalTarget):
            approval.apply_action(quote, users["local_leader"], ApprovalAction.ESCALATE)
        assert quote.status == QuoteStatus.PENDING_APPROVAL
        assert quote.current_assignee_id == str(users["local_leader"].pk)

    def test_return_defaults_to_creator(self, quote, users):
        _pending(quote, users["sales_manager"])
        approval.apply_action(quote, users["sales_manager"], ApprovalAction.RETURN)
        assert quote.status == QuoteStatus.CHANGES_REQUESTED
        assert quote.current_assignee_id == quote.created_by

    def test_return_to_higher_role_refused(self, quote, users):
        _pending(quote, users["sales_manager"])
        with pytest.raises(InvalidApprovalTarget):
            approval.apply_action(quote, users["sales_manager"], ApprovalAction.RETURN, users["ceo"])

    def test_edit_takes_quote_into_review(self, quote, users):
        _pending(quote, users["sales_manager"])
        approval.apply_action(quote, users["sales_manager"], ApprovalAction.EDIT)
        assert quote.status == QuoteStatus.IN_REVIEW

    def test_step_not_available(self, quote, users):
        before = quote.updated_at
        with pytest.raises(ApprovalActionNotAllowed):
            approval.apply_action(quote, users["sales_rep"], ApprovalAction.APPROVE)
        assert quote.status == QuoteStatus.DRAFT
        assert quote.updated_at == before


class TestFindUser:
    """Test resolving user ids from requests"""

    def test_found(self, users):
        assert approval.find_user(str(users["ceo"].pk)) == users["ceo"]

    @pytest.mark.parametrize("user_id", ["nobody", "", None, "999999"])
    def test_unknown(self, users, user_id):
        assert approval.find_user(user_id) is None

    def test_inactive(self, users):
        users["ceo"].is_active = False
        users["ceo"].save()
        assert approval.find_user(users["ceo"].pk) is None
