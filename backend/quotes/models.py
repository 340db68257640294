import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from .state import DEFAULT_VALIDITY_DAYS, UNSAVED_REFERENCE, QuoteStatus


def _default_slots():
    return []


def _default_address():
    return ["", "", "", ""]


class Quote(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # NNNN.R: base number + revision; "0000.0" until first saved
    reference = models.CharField(max_length=16, default=UNSAVED_REFERENCE, db_index=True)
    status = models.CharField(max_length=20, choices=QuoteStatus.choices, default=QuoteStatus.DRAFT)
    quote_date = models.DateTimeField(default=timezone.now)
    validity_days = models.PositiveIntegerField(default=DEFAULT_VALIDITY_DAYS)

    client_name = models.CharField(max_length=255, blank=True, default='')
    contact_name = models.CharField(max_length=255, blank=True, default='')
    contact_title = models.CharField(max_length=255, blank=True, default='')
    contact_email = models.CharField(max_length=255, blank=True, default='')
    contact_phone = models.CharField(max_length=64, blank=True, default='')
    client_address = models.JSONField(default=_default_address)

    factory_roe = models.DecimalField(max_digits=12, decimal_places=4)
    customer_roe = models.DecimalField(max_digits=12, decimal_places=4)
    discount_pct = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    annual_interest_rate = models.DecimalField(max_digits=6, decimal_places=3)
    default_lease_term_months = models.PositiveSmallIntegerField(default=60)

    # Six slot dicts / shipping-entry dicts; see quotes.serialization
    slots = models.JSONField(default=_default_slots)
    shipping_entries = models.JSONField(default=_default_slots)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='quotes_created'
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='quotes_assigned'
    )
    # Approver currently holding the quote in review
    current_assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='quotes_to_review'
    )
    locked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='quotes_locked'
    )
    locked_at = models.DateTimeField(null=True, blank=True)

    # Bumped only by a successful save through the repository
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(default=timezone.now)
    # Last edit time of the in-memory quote, not the row write time
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=['status', '-updated_at'], name='quote_status_updated_idx'),
            models.Index(fields=['client_name'], name='quote_client_name_idx'),
        ]
        ordering = ['-updated_at']

    @property
    def is_locked(self) -> bool:
        return self.locked_by_id is not None

    @property
    def base_number(self) -> int:
        return int(self.reference.split('.', 1)[0] or 0)

    def __str__(self):
        return f"{self.reference} ({self.client_name or 'no client'}) v{self.version}"
