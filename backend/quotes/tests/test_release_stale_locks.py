from datetime import timedelta
from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.utils import timezone

from ..models import Quote

pytestmark = pytest.mark.django_db


@pytest.fixture
def locked_quotes():
    user = get_user_model().objects.create_user(username="rep", password="pw")
    now = timezone.now()
    stale = Quote.objects.create(reference="2140.0", factory_roe=19, customer_roe=20, annual_interest_rate=9,
                                 locked_by=user, locked_at=now - timedelta(hours=3))
    fresh = Quote.objects.create(reference="2141.0", factory_roe=19, customer_roe=20, annual_interest_rate=9,
                                 locked_by=user, locked_at=now - timedelta(minutes=5))
    return stale, fresh


class TestReleaseStaleLocks:
    """Test the release_stale_locks management command"""

    def test_dry_run_leaves_locks(self, locked_quotes):
        stale, _ = locked_quotes
        out = StringIO()
        call_command("release_stale_locks", "--dry-run", stdout=out)
        assert "2140.0" in out.getvalue()
        assert "2141.0" not in out.getvalue()
        stale.refresh_from_db()
        assert stale.locked_by_id is not None

    def test_releases_only_stale(self, locked_quotes):
        stale, fresh = locked_quotes
        out = StringIO()
        call_command("release_stale_locks", stdout=out)
        assert "Released 1 stale lock(s)." in out.getvalue()
        stale.refresh_from_db()
        fresh.refresh_from_db()
        assert stale.locked_by_id is None and stale.locked_at is None
        assert fresh.locked_by_id is not None
