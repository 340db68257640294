"""
Debounced, versioned persistence for the quote being edited.

A `SaveScheduler` belongs to one edit session. Command handlers advance the
quote's `updated_at`; the session calls `notify_changed()` afterwards, and once
the debounce interval passes without another change the current snapshot is
handed to the repository together with the version it was loaded at.

Saves never overlap: a dispatch that arrives while a save is in flight is
dropped, and a save that finishes after the session switched to a different
quote is discarded so it cannot touch the new quote's state.
"""
from __future__ import annotations

import copy
import enum
import logging
from datetime import datetime
from typing import Callable, Optional

from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import DatabaseError

from .repository import ConflictKind, QuoteRepository, SaveOutcome
from .scheduling import DebounceScheduler
from .state import QuoteState

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 2.0
AUTOSAVE_KEY = "autosave"


class SaveStatus(str, enum.Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


def autosave_delay() -> float:
    return float(getattr(settings, "QUOTE_AUTOSAVE_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS))


class SaveScheduler:
    """
    Args:
        repository: Record store the snapshots are written to.
        actor_id: User the session saves on behalf of; checked against the lock.
        delay: Debounce interval in seconds. Defaults to
            settings.QUOTE_AUTOSAVE_DEBOUNCE_SECONDS.
        scheduler: Timer source; a fresh DebounceScheduler when omitted.
        on_saved, on_lock_conflict, on_version_conflict: Called with the
            SaveOutcome of the matching result.
    """

    def __init__(
        self,
        repository: QuoteRepository,
        actor_id=None,
        delay: Optional[float] = None,
        scheduler: Optional[DebounceScheduler] = None,
        on_saved: Optional[Callable[[SaveOutcome], None]] = None,
        on_lock_conflict: Optional[Callable[[SaveOutcome], None]] = None,
        on_version_conflict: Optional[Callable[[SaveOutcome], None]] = None,
    ):
        self.repository = repository
        self.actor_id = actor_id
        self.delay = autosave_delay() if delay is None else delay
        self.scheduler = scheduler or DebounceScheduler()
        self.on_saved = on_saved
        self.on_lock_conflict = on_lock_conflict
        self.on_version_conflict = on_version_conflict

        self.quote: Optional[QuoteState] = None
        self.last_saved: Optional[datetime] = None
        self.status = SaveStatus.IDLE
        self.last_error = ""
        self._activation = 0
        self._in_flight = False

    # -- session -----------------------------------------------------------

    def activate(self, quote: QuoteState) -> None:
        """Make `quote` the session's quote; anything pending for the previous one is dropped."""
        self.scheduler.cancel_all()
        self._activation += 1
        self.quote = quote
        self.last_saved = quote.updated_at if quote.is_saved else None
        self.status = SaveStatus.IDLE
        self.last_error = ""

    def close(self) -> None:
        self.scheduler.cancel_all()
        self._activation += 1
        self.quote = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def has_unsaved_changes(self) -> bool:
        if self.quote is None:
            return False
        return self.last_saved is None or self.quote.updated_at > self.last_saved

    # -- scheduling --------------------------------------------------------

    def notify_changed(self) -> bool:
        """(Re)start the debounce timer if the quote has moved past the watermark."""
        if not self.has_unsaved_changes():
            return False
        quote_id, activation = self.quote.id, self._activation
        self.scheduler.schedule(AUTOSAVE_KEY, self.delay, lambda: self._dispatch(quote_id, activation))
        return True

    async def _dispatch(self, quote_id: str, activation: int) -> Optional[SaveOutcome]:
        if self.quote is None or activation != self._activation or self.quote.id != quote_id:
            logger.warning("Skipping scheduled save of quote %s: a different quote is active", quote_id)
            return None
        if self._in_flight:
            logger.debug("Save of quote %s already in flight; scheduled save ignored", quote_id)
            return None
        return await self._save()

    async def save_now(self) -> Optional[SaveOutcome]:
        """Cancel the pending timer and save immediately. None when nothing was written."""
        self.scheduler.cancel(AUTOSAVE_KEY)
        if self.quote is None or self._in_flight:
            return None
        return await self._save()

    # -- persistence -------------------------------------------------------

    async def _save(self) -> Optional[SaveOutcome]:
        activation = self._activation
        self._in_flight = True
        self.status = SaveStatus.SAVING
        try:
            if not self.quote.is_saved:
                reference = await sync_to_async(self.repository.next_reference_number)()
                if activation != self._activation:
                    return None
                self.quote.reference = reference
            snapshot = copy.deepcopy(self.quote)
            outcome = await sync_to_async(self.repository.save)(snapshot, snapshot.version, self.actor_id)
        except DatabaseError as exc:
            logger.exception("Saving quote %s failed", self.quote.id if self.quote else "?")
            if activation == self._activation:
                self.status = SaveStatus.ERROR
                self.last_error = str(exc)
            return SaveOutcome(False, error=str(exc))
        finally:
            self._in_flight = False

        if activation != self._activation:
            logger.info("Discarding save response for quote %s: session moved on", snapshot.id)
            return outcome

        if outcome.success:
            self.quote.version = outcome.version
            self.last_saved = snapshot.updated_at
            self.status = SaveStatus.SAVED
            self.last_error = ""
            logger.debug("Autosaved quote %s at version %s", snapshot.id, outcome.version)
            if self.on_saved:
                self.on_saved(outcome)
            # edits made while the save was in flight
            self.notify_changed()
            return outcome

        self.status = SaveStatus.ERROR
        self.last_error = outcome.error or f"{outcome.conflict} conflict"
        if outcome.conflict == ConflictKind.LOCK:
            logger.warning("Quote %s is locked by another user; changes kept unsaved", snapshot.id)
            if self.on_lock_conflict:
                self.on_lock_conflict(outcome)
        elif outcome.conflict == ConflictKind.VERSION:
            logger.warning("Quote %s changed elsewhere (stored version %s)", snapshot.id, outcome.version)
            if self.on_version_conflict:
                self.on_version_conflict(outcome)
        return outcome

    async def reload_latest(self) -> Optional[QuoteState]:
        """
        Replace the in-memory quote with the stored one, wholesale.

        Local edits are dropped, the version and the save watermark are
        re-based on the stored record, and any pending or in-flight save for
        the replaced state is invalidated.
        """
        if self.quote is None:
            return None
        fresh = await sync_to_async(self.repository.load)(self.quote.id)
        if fresh is None:
            logger.warning("Reload of quote %s found no stored record", self.quote.id)
            return None
        self.activate(fresh)
        self.last_saved = fresh.updated_at
        return fresh
