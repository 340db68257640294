"""
Record store for quotes.

`QuoteRepository` is the narrow interface the edit session talks to. Saves are
optimistic: the caller passes the version it loaded, and the store refuses the
write (with a lock or version conflict) instead of merging. Conflicts are
results, not exceptions.
"""
from __future__ import annotations

import abc
import copy
import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .exceptions import QuoteNotFound
from .locking import lock_is_stale, lock_stale_after
from .models import Quote
from .serialization import apply_state_to_record, state_from_record
from .state import UNSAVED_REFERENCE, QuoteState, QuoteStatus

logger = logging.getLogger(__name__)

FIRST_REFERENCE_NUMBER = 2140


class ConflictKind(str, enum.Enum):
    LOCK = "lock"
    VERSION = "version"


@dataclass
class SaveOutcome:
    success: bool
    version: Optional[int] = None
    conflict: Optional[ConflictKind] = None
    error: str = ""


def split_reference(reference: str):
    """'2142.3' -> (2142, 3). Unparseable parts come back as 0."""
    base, _, revision = (reference or "").partition(".")
    try:
        base_no = int(base)
    except ValueError:
        base_no = 0
    try:
        revision_no = int(revision) if revision else 0
    except ValueError:
        revision_no = 0
    return base_no, revision_no


def next_reference_from(references) -> str:
    highest = FIRST_REFERENCE_NUMBER - 1
    for reference in references:
        base, _ = split_reference(reference)
        highest = max(highest, base)
    return f"{highest + 1}.0"


def _fresh_copy(source: QuoteState, reference: str, actor_id=None) -> QuoteState:
    quote = copy.deepcopy(source)
    now = timezone.now()
    quote.id = str(uuid.uuid4())
    quote.reference = reference
    quote.version = 1
    quote.status = QuoteStatus.DRAFT
    quote.current_assignee_id = None
    quote.locked_by = None
    quote.locked_at = None
    if actor_id is not None:
        quote.created_by = str(actor_id)
    quote.created_at = now
    quote.updated_at = now
    return quote


class QuoteRepository(abc.ABC):

    @abc.abstractmethod
    def load(self, quote_id) -> Optional[QuoteState]:
        raise NotImplementedError

    @abc.abstractmethod
    def save(self, quote: QuoteState, expected_version: int, actor_id=None) -> SaveOutcome:
        """
        Persist `quote` if the stored version still equals `expected_version`.

        Returns SaveOutcome(success=True, version=new_version) or a failed
        outcome with `conflict` set to LOCK (another user holds a fresh lock)
        or VERSION (someone saved in between).
        """
        raise NotImplementedError

    @abc.abstractmethod
    def list_by_filter(self, status=None, client_name=None, date_from=None, date_to=None) -> List[QuoteState]:
        raise NotImplementedError

    @abc.abstractmethod
    def next_reference_number(self) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    def create_revision(self, quote_id, actor_id=None) -> QuoteState:
        raise NotImplementedError

    @abc.abstractmethod
    def duplicate(self, quote_id, actor_id=None) -> QuoteState:
        raise NotImplementedError

    @abc.abstractmethod
    def acquire_lock(self, quote_id, user_id) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def release_lock(self, quote_id, user_id) -> bool:
        raise NotImplementedError


def _as_uuid(quote_id) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(quote_id))
    except ValueError:
        return None


def _start_of(day):
    if isinstance(day, datetime):
        return day
    return timezone.make_aware(datetime.combine(day, datetime.min.time()))


def _end_of(day):
    if isinstance(day, datetime):
        return day
    return timezone.make_aware(datetime.combine(day, datetime.max.time()))


class DjangoQuoteRepository(QuoteRepository):
    """Quote rows in the Django database; every write runs in one transaction."""

    def load(self, quote_id) -> Optional[QuoteState]:
        pk = _as_uuid(quote_id)
        if pk is None:
            return None
        record = Quote.objects.filter(pk=pk).first()
        return state_from_record(record) if record else None

    def save(self, quote: QuoteState, expected_version: int, actor_id=None) -> SaveOutcome:
        pk = _as_uuid(quote.id)
        if pk is None:
            return SaveOutcome(False, error=f"Invalid quote id {quote.id!r}")

        with transaction.atomic():
            record = Quote.objects.select_for_update().filter(pk=pk).first()
            if record is None:
                record = Quote(id=pk, version=expected_version)
                stored_version = expected_version
            else:
                stored_version = record.version
                if record.locked_by_id is not None and str(record.locked_by_id) != str(actor_id):
                    if not lock_is_stale(record.locked_at, timezone.now(), lock_stale_after()):
                        logger.warning(
                            "Save of quote %s by %s refused: locked by %s",
                            quote.id, actor_id, record.locked_by_id,
                        )
                        return SaveOutcome(False, version=stored_version, conflict=ConflictKind.LOCK,
                                           error="Quote is locked by another user")
                if stored_version != expected_version:
                    logger.warning(
                        "Version conflict saving quote %s: expected %s, stored %s",
                        quote.id, expected_version, stored_version,
                    )
                    return SaveOutcome(False, version=stored_version, conflict=ConflictKind.VERSION,
                                       error="Version conflict - quote was modified by another session")

            apply_state_to_record(quote, record)
            record.version = stored_version + 1
            record.save()

        logger.info("Saved quote %s (%s) as version %s", quote.id, quote.reference, record.version)
        return SaveOutcome(True, version=record.version)

    def list_by_filter(self, status=None, client_name=None, date_from=None, date_to=None,
                       created_by=None) -> List[QuoteState]:
        qs = Quote.objects.all()
        if status:
            qs = qs.filter(status=status)
        if client_name:
            qs = qs.filter(client_name__icontains=client_name)
        if date_from:
            qs = qs.filter(quote_date__gte=_start_of(date_from))
        if date_to:
            qs = qs.filter(quote_date__lte=_end_of(date_to))
        if created_by is not None:
            qs = qs.filter(created_by_id=created_by)
        return [state_from_record(r) for r in qs.order_by('-updated_at')]

    def next_reference_number(self) -> str:
        references = Quote.objects.exclude(reference=UNSAVED_REFERENCE).values_list('reference', flat=True)
        return next_reference_from(references)

    def _insert(self, quote: QuoteState) -> QuoteState:
        record = Quote(id=uuid.UUID(quote.id))
        apply_state_to_record(quote, record)
        record.version = quote.version
        record.created_at = quote.created_at
        record.save(force_insert=True)
        return quote

    def create_revision(self, quote_id, actor_id=None) -> QuoteState:
        """New draft '2142.N+1' copied from `quote_id`, with its own identity and version 1."""
        source = self.load(quote_id)
        if source is None:
            raise QuoteNotFound(str(quote_id))

        base, _ = split_reference(source.reference)
        with transaction.atomic():
            siblings = Quote.objects.select_for_update().filter(reference__startswith=f"{base}.")
            latest = max((split_reference(r)[1] for r in siblings.values_list('reference', flat=True)), default=0)
            revision = _fresh_copy(source, f"{base}.{latest + 1}", actor_id)
            self._insert(revision)

        logger.info("Created revision %s from %s", revision.reference, source.reference)
        return revision

    def duplicate(self, quote_id, actor_id=None) -> QuoteState:
        source = self.load(quote_id)
        if source is None:
            raise QuoteNotFound(str(quote_id))
        with transaction.atomic():
            copy_ = _fresh_copy(source, self.next_reference_number(), actor_id)
            self._insert(copy_)
        logger.info("Duplicated %s as %s", source.reference, copy_.reference)
        return copy_

    def acquire_lock(self, quote_id, user_id) -> bool:
        """
        Conditional update: only one of two concurrent callers can win.

        The row is taken when it is unlocked, already held by `user_id`, or
        held by a lock older than the stale threshold.
        """
        pk = _as_uuid(quote_id)
        if pk is None:
            return False
        now = timezone.now()
        cutoff = now - lock_stale_after()
        claimable = Q(locked_by__isnull=True) | Q(locked_by_id=user_id) | Q(locked_at__lt=cutoff)
        updated = Quote.objects.filter(pk=pk).filter(claimable).update(locked_by_id=user_id, locked_at=now)
        if not updated:
            logger.warning("Lock on quote %s refused for user %s", quote_id, user_id)
        return updated == 1

    def release_lock(self, quote_id, user_id) -> bool:
        pk = _as_uuid(quote_id)
        if pk is None:
            return False
        return Quote.objects.filter(pk=pk, locked_by_id=user_id).update(locked_by=None, locked_at=None) == 1


class InMemoryQuoteRepository(QuoteRepository):
    """Dict-backed store with the same conflict rules; for tooling and tests."""

    def __init__(self, clock=timezone.now):
        self._quotes: Dict[str, QuoteState] = {}
        self.clock = clock
        self.save_calls = 0

    def put(self, quote: QuoteState) -> None:
        self._quotes[str(quote.id)] = copy.deepcopy(quote)

    def load(self, quote_id) -> Optional[QuoteState]:
        stored = self._quotes.get(str(quote_id))
        return copy.deepcopy(stored) if stored else None

    def save(self, quote: QuoteState, expected_version: int, actor_id=None) -> SaveOutcome:
        self.save_calls += 1
        stored = self._quotes.get(str(quote.id))
        stored_version = stored.version if stored else expected_version
        if stored is not None:
            if stored.locked_by is not None and str(stored.locked_by) != str(actor_id):
                if not lock_is_stale(stored.locked_at, self.clock(), lock_stale_after()):
                    return SaveOutcome(False, version=stored_version, conflict=ConflictKind.LOCK)
            if stored_version != expected_version:
                return SaveOutcome(False, version=stored_version, conflict=ConflictKind.VERSION)

        saved = copy.deepcopy(quote)
        saved.version = stored_version + 1
        if stored is not None:
            saved.locked_by, saved.locked_at = stored.locked_by, stored.locked_at
        self._quotes[str(quote.id)] = saved
        return SaveOutcome(True, version=saved.version)

    def list_by_filter(self, status=None, client_name=None, date_from=None, date_to=None) -> List[QuoteState]:
        out = []
        for quote in self._quotes.values():
            if status and quote.status != status:
                continue
            if client_name and client_name.lower() not in quote.client_name.lower():
                continue
            day = quote.quote_date.date()
            if date_from and day < (date_from.date() if isinstance(date_from, datetime) else date_from):
                continue
            if date_to and day > (date_to.date() if isinstance(date_to, datetime) else date_to):
                continue
            out.append(copy.deepcopy(quote))
        return sorted(out, key=lambda q: q.updated_at, reverse=True)

    def next_reference_number(self) -> str:
        return next_reference_from(
            q.reference for q in self._quotes.values() if q.reference != UNSAVED_REFERENCE
        )

    def create_revision(self, quote_id, actor_id=None) -> QuoteState:
        source = self.load(quote_id)
        if source is None:
            raise QuoteNotFound(str(quote_id))
        base, _ = split_reference(source.reference)
        latest = max(
            (split_reference(q.reference)[1] for q in self._quotes.values()
             if split_reference(q.reference)[0] == base),
            default=0,
        )
        revision = _fresh_copy(source, f"{base}.{latest + 1}", actor_id)
        self.put(revision)
        return revision

    def duplicate(self, quote_id, actor_id=None) -> QuoteState:
        source = self.load(quote_id)
        if source is None:
            raise QuoteNotFound(str(quote_id))
        copy_ = _fresh_copy(source, self.next_reference_number(), actor_id)
        self.put(copy_)
        return copy_

    def acquire_lock(self, quote_id, user_id) -> bool:
        stored = self._quotes.get(str(quote_id))
        if stored is None:
            return False
        now = self.clock()
        held_by_other = stored.locked_by is not None and str(stored.locked_by) != str(user_id)
        if held_by_other and not lock_is_stale(stored.locked_at, now, lock_stale_after()):
            return False
        stored.locked_by, stored.locked_at = str(user_id), now
        return True

    def release_lock(self, quote_id, user_id) -> bool:
        stored = self._quotes.get(str(quote_id))
        if stored is None or str(stored.locked_by) != str(user_id):
            return False
        stored.locked_by, stored.locked_at = None, None
        return True
