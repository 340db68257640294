"""
Approval workflow rules.

`available_actions` decides which approval steps a user may take on a quote,
from the quote's status, who created it, who it is waiting on and the user's
role level. `apply_action` performs one of those steps on a `QuoteState`: it
moves the status and hands the quote to its next assignee. Persisting the
result is left to the caller.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from django.contrib.auth import get_user_model
from django.db import models

from . import commands
from .exceptions import ApprovalActionNotAllowed, InvalidApprovalTarget
from .state import QuoteState, QuoteStatus

logger = logging.getLogger(__name__)


class ApprovalAction(models.TextChoices):
    SUBMIT = "submit", "Submit for Approval"
    APPROVE = "approve", "Approve"
    REJECT = "reject", "Reject"
    ESCALATE = "escalate", "Escalate"
    RETURN = "return", "Return for Changes"
    EDIT = "edit", "Edit in Review"


NEXT_STATUS = {
    ApprovalAction.SUBMIT: QuoteStatus.PENDING_APPROVAL,
    ApprovalAction.APPROVE: QuoteStatus.APPROVED,
    ApprovalAction.REJECT: QuoteStatus.REJECTED,
    ApprovalAction.ESCALATE: QuoteStatus.PENDING_APPROVAL,
    ApprovalAction.RETURN: QuoteStatus.CHANGES_REQUESTED,
    ApprovalAction.EDIT: QuoteStatus.IN_REVIEW,
}


def _levels():
    return get_user_model().ROLE_LEVELS.values()


def has_roles_above(user) -> bool:
    return any(level > user.role_level for level in _levels())


def has_roles_below(user) -> bool:
    return any(level < user.role_level for level in _levels())


def find_user(user_id):
    """Active user with primary key `user_id`, or None (also for ids that are not valid keys)."""
    if user_id is None or user_id == "":
        return None
    try:
        return get_user_model().objects.filter(pk=user_id, is_active=True).first()
    except (TypeError, ValueError):
        return None


def available_actions(quote: QuoteState, user) -> List[str]:
    """Approval steps `user` may take on `quote` right now, without duplicates."""
    uid = str(user.pk)
    is_assignee = quote.current_assignee_id == uid
    is_creator = quote.created_by == uid
    actions: List[str] = []

    if quote.status == QuoteStatus.DRAFT:
        if is_creator or not quote.created_by:
            actions.append(ApprovalAction.SUBMIT)

    elif quote.status == QuoteStatus.PENDING_APPROVAL:
        if is_assignee and user.can_approve_quotes:
            actions += [ApprovalAction.APPROVE, ApprovalAction.REJECT, ApprovalAction.EDIT]
            if has_roles_above(user):
                actions.append(ApprovalAction.ESCALATE)
            if has_roles_below(user) or is_creator:
                actions.append(ApprovalAction.RETURN)
        if user.can_edit_any_quote and not is_assignee:
            actions += [ApprovalAction.APPROVE, ApprovalAction.REJECT, ApprovalAction.ESCALATE,
                        ApprovalAction.RETURN, ApprovalAction.EDIT]

    elif quote.status == QuoteStatus.IN_REVIEW:
        if is_assignee:
            actions += [ApprovalAction.APPROVE, ApprovalAction.REJECT]
            if has_roles_above(user):
                actions.append(ApprovalAction.ESCALATE)
            if has_roles_below(user):
                actions.append(ApprovalAction.RETURN)

    elif quote.status == QuoteStatus.CHANGES_REQUESTED:
        if is_creator:
            actions.append(ApprovalAction.SUBMIT)

    return list(dict.fromkeys(str(a) for a in actions))


def _check_target(quote: QuoteState, actor, action: str, target) -> None:
    if action in (ApprovalAction.SUBMIT, ApprovalAction.ESCALATE):
        if target is None:
            raise InvalidApprovalTarget("An approver is required")
        if str(target.pk) == str(actor.pk):
            raise InvalidApprovalTarget("Cannot hand the quote to yourself")
        if not target.can_approve_quotes:
            raise InvalidApprovalTarget(f"{target.username} cannot approve quotes")
        if action == ApprovalAction.ESCALATE and target.role_level <= actor.role_level:
            raise InvalidApprovalTarget("Escalation has to go to a higher role")
    elif action == ApprovalAction.RETURN:
        if str(target.pk) != quote.created_by and target.role_level >= actor.role_level:
            raise InvalidApprovalTarget("A quote can only be returned to its creator or a lower role")


def apply_action(quote: QuoteState, actor, action: str, target=None) -> Optional[str]:
    """
    Take approval step `action` on `quote` as `actor`.

    Submit and escalate hand the quote to `target`, which must be an approver
    (at a higher role than `actor` for an escalation). Return hands it to
    `target` or, when none is given, back to the quote's creator. Approve,
    reject and edit leave it with `actor`. Returns the new assignee id.
    """
    if action not in available_actions(quote, actor):
        raise ApprovalActionNotAllowed(
            f'Cannot {action} quote {quote.reference} in "{quote.status}" status'
        )

    if action in (ApprovalAction.APPROVE, ApprovalAction.REJECT, ApprovalAction.EDIT):
        assignee = str(actor.pk)
    elif action == ApprovalAction.RETURN and target is None:
        assignee = quote.created_by
    else:
        _check_target(quote, actor, action, target)
        assignee = str(target.pk)

    commands.set_status(quote, NEXT_STATUS[ApprovalAction(action)])
    quote.current_assignee_id = assignee
    logger.info("Quote %s: %s by %s, now with %s", quote.reference, action, actor.pk, assignee)
    return assignee
