"""
Tests for the database-backed quote store.
"""

import uuid
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from .. import commands
from ..exceptions import QuoteNotFound
from ..models import Quote
from ..repository import (
    ConflictKind,
    DjangoQuoteRepository,
    InMemoryQuoteRepository,
    next_reference_from,
    split_reference,
)
from ..state import QuoteStatus, new_quote

pytestmark = pytest.mark.django_db


@pytest.fixture
def users():
    User = get_user_model()
    owner = User.objects.create_user(username="owner", password="pw", role="sales_rep")
    other = User.objects.create_user(username="other", password="pw", role="sales_rep")
    return owner, other


@pytest.fixture
def repo():
    return DjangoQuoteRepository()


def saved_quote(repo, owner, reference="2140.0", **fields):
    quote = new_quote(created_by=str(owner.pk))
    quote.reference = reference
    for name, value in fields.items():
        setattr(quote, name, value)
    outcome = repo.save(quote, quote.version, owner.pk)
    assert outcome.success
    return repo.load(quote.id)


class TestReferences:
    """Test quote reference numbering"""

    def test_split(self):
        assert split_reference("2142.3") == (2142, 3)
        assert split_reference("2142") == (2142, 0)
        assert split_reference("junk.x") == (0, 0)

    def test_first_number(self):
        assert next_reference_from([]) == "2140.0"
        assert next_reference_from(["12.0"]) == "2140.0"
        assert next_reference_from(["2140.0", "2151.4", "2149.0"]) == "2152.0"

    def test_unsaved_quotes_ignored(self, repo, users):
        owner, _ = users
        assert repo.next_reference_number() == "2140.0"
        saved_quote(repo, owner, "2142.3")
        draft = new_quote(created_by=str(owner.pk))
        repo.save(draft, draft.version, owner.pk)
        assert repo.next_reference_number() == "2143.0"


class TestSave:
    """Test optimistic versioned saves"""

    def test_new_quote_is_created(self, repo, users):
        owner, _ = users
        quote = new_quote(created_by=str(owner.pk))
        quote.reference = "2140.0"
        commands.update_slot_fields(quote, 0, {"model_code": "1275-E25", "eur_cost": "18000"})

        outcome = repo.save(quote, quote.version, owner.pk)

        assert outcome.success
        assert outcome.version == 2
        loaded = repo.load(quote.id)
        assert loaded.version == 2
        assert loaded.slots[0].is_active
        assert loaded.created_by == str(owner.pk)

    def test_each_save_bumps_version(self, repo, users):
        owner, _ = users
        quote = saved_quote(repo, owner)
        commands.set_discount(quote, 4)
        assert repo.save(quote, quote.version, owner.pk).version == 3
        assert Quote.objects.get(pk=quote.id).version == 3

    def test_version_conflict(self, repo, users):
        owner, _ = users
        quote = saved_quote(repo, owner)
        elsewhere = repo.load(quote.id)
        commands.set_client_info(elsewhere, client_name="First")
        repo.save(elsewhere, elsewhere.version, owner.pk)

        commands.set_client_info(quote, client_name="Second")
        outcome = repo.save(quote, quote.version, owner.pk)

        assert not outcome.success
        assert outcome.conflict == ConflictKind.VERSION
        assert outcome.version == 3
        assert repo.load(quote.id).client_name == "First"

    def test_lock_conflict(self, repo, users):
        owner, other = users
        quote = saved_quote(repo, owner)
        assert repo.acquire_lock(quote.id, other.pk)

        outcome = repo.save(quote, quote.version, owner.pk)
        assert outcome.conflict == ConflictKind.LOCK
        # no actor conflicts with any fresh lock
        assert repo.save(quote, quote.version).conflict == ConflictKind.LOCK
        # the holder saves normally
        assert repo.save(quote, quote.version, other.pk).success

    def test_stale_lock_is_ignored(self, repo, users):
        owner, other = users
        quote = saved_quote(repo, owner)
        Quote.objects.filter(pk=quote.id).update(locked_by=other, locked_at=timezone.now() - timedelta(hours=2))
        assert repo.save(quote, quote.version, owner.pk).success

    def test_save_keeps_lock_columns(self, repo, users):
        owner, _ = users
        quote = saved_quote(repo, owner)
        repo.acquire_lock(quote.id, owner.pk)
        quote.locked_by = None
        repo.save(quote, quote.version, owner.pk)
        assert repo.load(quote.id).locked_by == str(owner.pk)

    def test_invalid_id(self, repo):
        quote = new_quote()
        quote.id = "not-a-uuid"
        outcome = repo.save(quote, 1)
        assert not outcome.success
        assert "Invalid quote id" in outcome.error
        assert repo.load("not-a-uuid") is None
        assert repo.load(uuid.uuid4()) is None

    def test_corrupt_slots_recovered_on_load(self, repo, users):
        owner, _ = users
        quote = saved_quote(repo, owner)
        Quote.objects.filter(pk=quote.id).update(slots={"broken": True})
        loaded = repo.load(quote.id)
        assert len(loaded.slots) == 6
        assert loaded.active_slots == []


class TestLocks:
    """Test lock acquisition against the database"""

    def test_only_one_user_wins(self, repo, users):
        owner, other = users
        quote = saved_quote(repo, owner)
        assert repo.acquire_lock(quote.id, owner.pk)
        assert not repo.acquire_lock(quote.id, other.pk)
        assert repo.acquire_lock(quote.id, owner.pk)
        assert repo.load(quote.id).locked_by == str(owner.pk)

    def test_stale_lock_can_be_taken(self, repo, users):
        owner, other = users
        quote = saved_quote(repo, owner)
        Quote.objects.filter(pk=quote.id).update(locked_by=owner, locked_at=timezone.now() - timedelta(hours=2))
        assert repo.acquire_lock(quote.id, other.pk)

    def test_release_only_by_holder(self, repo, users):
        owner, other = users
        quote = saved_quote(repo, owner)
        repo.acquire_lock(quote.id, owner.pk)
        assert not repo.release_lock(quote.id, other.pk)
        assert repo.release_lock(quote.id, owner.pk)
        assert repo.load(quote.id).locked_by is None
        assert not repo.acquire_lock("nope", owner.pk)


class TestRevisionsAndCopies:
    """Test revision and duplicate"""

    def test_revisions_increment(self, repo, users):
        owner, other = users
        source = saved_quote(repo, owner, "2142.0", status=QuoteStatus.APPROVED)
        repo.acquire_lock(source.id, owner.pk)

        first = repo.create_revision(source.id, other.pk)
        second = repo.create_revision(source.id)

        assert first.reference == "2142.1"
        assert second.reference == "2142.2"
        assert first.id != source.id
        assert first.version == 1
        assert first.status == QuoteStatus.DRAFT
        assert first.locked_by is None
        assert first.created_by == str(other.pk)
        assert repo.load(first.id).reference == "2142.1"

    def test_revision_of_revision(self, repo, users):
        owner, _ = users
        saved_quote(repo, owner, "2142.0")
        latest = saved_quote(repo, owner, "2142.4")
        assert repo.create_revision(latest.id).reference == "2142.5"

    def test_duplicate_takes_next_number(self, repo, users):
        owner, _ = users
        source = saved_quote(repo, owner, "2150.2", client_name="Acme")
        copy_ = repo.duplicate(source.id)
        assert copy_.reference == "2151.0"
        assert copy_.client_name == "Acme"
        assert repo.load(copy_.id) is not None

    def test_missing_source(self, repo):
        with pytest.raises(QuoteNotFound):
            repo.create_revision(uuid.uuid4())
        with pytest.raises(QuoteNotFound):
            repo.duplicate(uuid.uuid4())


class TestListByFilter:
    """Test list_by_filter"""

    def test_filters(self, repo, users):
        owner, other = users
        saved_quote(repo, owner, "2140.0", client_name="Acme Mining")
        saved_quote(repo, owner, "2141.0", client_name="Harbour", status=QuoteStatus.APPROVED)
        saved_quote(repo, other, "2142.0", client_name="acme foods")

        assert {q.reference for q in repo.list_by_filter(client_name="acme")} == {"2140.0", "2142.0"}
        assert [q.reference for q in repo.list_by_filter(status=QuoteStatus.APPROVED)] == ["2141.0"]
        assert {q.reference for q in repo.list_by_filter(created_by=other.pk)} == {"2142.0"}

        today = timezone.localdate()
        assert len(repo.list_by_filter(date_from=today, date_to=today)) == 3
        assert repo.list_by_filter(date_from=today + timedelta(days=1)) == []


class TestInMemoryRepository:
    """Test the dict-backed store follows the same rules"""

    def test_conflicts_and_references(self):
        repo = InMemoryQuoteRepository()
        quote = new_quote(created_by="1")
        quote.reference = repo.next_reference_number()
        assert repo.save(quote, 1, "1").version == 2
        assert repo.save(quote, 1, "1").conflict == ConflictKind.VERSION
        assert repo.acquire_lock(quote.id, "2")
        assert repo.save(quote, 2, "1").conflict == ConflictKind.LOCK
        assert repo.create_revision(quote.id).reference == "2140.1"
        assert repo.next_reference_number() == "2141.0"
