"""
Single-writer edit lock for a quote.

    Unlocked --acquire(U)--> LockedBy(U) --release(U) or age > stale threshold--> Unlocked

Staleness is evaluated lazily whenever the lock is queried; nothing sweeps old
locks in the background. Acquisition failure is a False result, never an
exception, so callers can fall back to a read-only view.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from django.conf import settings
from django.utils import timezone

from .state import QuoteStatus

logger = logging.getLogger(__name__)

DEFAULT_LOCK_STALE_SECONDS = 60 * 60


def lock_stale_after() -> timedelta:
    return timedelta(seconds=getattr(settings, "QUOTE_LOCK_STALE_SECONDS", DEFAULT_LOCK_STALE_SECONDS))


def _same_user(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def lock_is_stale(locked_at: Optional[datetime], now: datetime, stale_after: timedelta) -> bool:
    """A lock without a timestamp never goes stale."""
    if locked_at is None:
        return False
    return now - locked_at > stale_after


class LockCoordinator:
    """
    Lock state machine over anything exposing `locked_by` and `locked_at`
    (a `QuoteState` or a `Quote` row's domain copy).

    Args:
        quote: The lock holder.
        stale_after: Age after which a lock counts as absent.
            Defaults to settings.QUOTE_LOCK_STALE_SECONDS.
        clock: Returns the current aware datetime; injectable for tests.
    """

    def __init__(self, quote, stale_after: Optional[timedelta] = None,
                 clock: Callable[[], datetime] = timezone.now):
        self.quote = quote
        self.stale_after = stale_after if stale_after is not None else lock_stale_after()
        self.clock = clock

    @property
    def owner(self) -> Optional[str]:
        return self.quote.locked_by

    def is_stale(self) -> bool:
        return self.quote.locked_by is not None and lock_is_stale(
            self.quote.locked_at, self.clock(), self.stale_after
        )

    def is_locked(self) -> bool:
        """Held by anyone, stale locks excluded."""
        return self.quote.locked_by is not None and not self.is_stale()

    def is_held_by_other(self, user_id) -> bool:
        if self.quote.locked_by is None or _same_user(self.quote.locked_by, user_id):
            return False
        return not self.is_stale()

    def acquire(self, user_id) -> bool:
        """
        Take the lock for `user_id`.

        Succeeds when the quote is unlocked, already held by `user_id`, or held
        by someone whose lock has gone stale. Otherwise returns False and leaves
        the lock untouched.
        """
        if self.is_held_by_other(user_id):
            logger.warning("Quote %s is locked by user %s", getattr(self.quote, "id", "?"), self.quote.locked_by)
            return False
        if self.quote.locked_by is not None and not _same_user(self.quote.locked_by, user_id):
            logger.warning(
                "Overriding stale lock on quote %s held by %s since %s",
                getattr(self.quote, "id", "?"), self.quote.locked_by, self.quote.locked_at,
            )
        self.quote.locked_by = str(user_id)
        self.quote.locked_at = self.clock()
        return True

    def release(self, user_id) -> bool:
        """Clear the lock if `user_id` holds it; no-op otherwise."""
        if not _same_user(self.quote.locked_by, user_id):
            return False
        self.quote.locked_by = None
        self.quote.locked_at = None
        return True

    def can_edit(self, user_id, status=None) -> bool:
        """
        Status-dependent edit permission, always gated by "not locked by someone else".

        draft and changes-requested: the owner or the assignee.
        in-review: the owner, the assignee, or the current designated approver.
        Any other status: nobody.
        """
        status = self.quote.status if status is None else status
        if self.is_held_by_other(user_id):
            return False

        is_owner = _same_user(self.quote.created_by, user_id)
        is_assignee = _same_user(self.quote.assigned_to, user_id)
        is_approver = _same_user(self.quote.current_assignee_id, user_id)

        if status in (QuoteStatus.DRAFT, QuoteStatus.CHANGES_REQUESTED):
            return is_owner or is_assignee
        if status == QuoteStatus.IN_REVIEW:
            return is_owner or is_assignee or is_approver
        return False
