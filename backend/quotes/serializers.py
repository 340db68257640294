from __future__ import annotations

from rest_framework import serializers

from .approval import ApprovalAction
from .serialization import shipping_entry_to_dict, slot_to_dict
from .state import QuoteStatus


def _money():
    return serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)


# ---------- DERIVED FIGURES (never stored) ----------
class SlotPricingSerializer(serializers.Serializer):
    gross_cost_eur = _money()
    factory_cost_eur = _money()
    factory_cost = _money()
    landed_cost = _money()
    selling_price = _money()
    margin = _money()
    residual_value = _money()
    lease_payment = _money()
    maintenance_monthly = _money()
    total_monthly = _money()
    cost_per_hour = _money()
    total_contract_value = _money()


class QuoteTotalsSerializer(serializers.Serializer):
    total_sales_price = _money()
    total_factory_cost = _money()
    total_landed_cost = _money()
    average_margin = _money()
    total_lease_payment = _money()
    total_monthly = _money()
    total_maintenance = _money()
    total_residual_value = _money()
    total_contract_value = _money()
    # monthly rate; None when the root finder did not converge
    irr = serializers.DecimalField(max_digits=20, decimal_places=8, read_only=True, allow_null=True)
    npv = _money()
    commission = _money()
    unit_count = serializers.IntegerField(read_only=True)
    average_term_months = serializers.IntegerField(read_only=True)
    payback_period = serializers.IntegerField(read_only=True, allow_null=True)


class ValidationIssueSerializer(serializers.Serializer):
    field = serializers.CharField(read_only=True)
    message = serializers.CharField(read_only=True)
    severity = serializers.CharField(read_only=True)


# ---------- QUOTE (read) ----------
class QuoteStateSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    reference = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    quote_date = serializers.DateTimeField(read_only=True)
    valid_until = serializers.DateTimeField(read_only=True)
    validity_days = serializers.IntegerField(read_only=True)
    client_name = serializers.CharField(read_only=True)
    contact_name = serializers.CharField(read_only=True)
    contact_title = serializers.CharField(read_only=True)
    contact_email = serializers.CharField(read_only=True)
    contact_phone = serializers.CharField(read_only=True)
    client_address = serializers.ListField(child=serializers.CharField(), read_only=True)
    factory_roe = serializers.DecimalField(max_digits=12, decimal_places=4, read_only=True)
    customer_roe = serializers.DecimalField(max_digits=12, decimal_places=4, read_only=True)
    discount_pct = serializers.DecimalField(max_digits=6, decimal_places=2, read_only=True)
    annual_interest_rate = serializers.DecimalField(max_digits=6, decimal_places=3, read_only=True)
    default_lease_term_months = serializers.IntegerField(read_only=True)
    slots = serializers.SerializerMethodField()
    shipping_entries = serializers.SerializerMethodField()
    created_by = serializers.CharField(read_only=True, allow_null=True)
    assigned_to = serializers.CharField(read_only=True, allow_null=True)
    current_assignee_id = serializers.CharField(read_only=True, allow_null=True)
    locked_by = serializers.CharField(read_only=True, allow_null=True)
    locked_at = serializers.DateTimeField(read_only=True, allow_null=True)
    updated_at = serializers.DateTimeField(read_only=True)
    version = serializers.IntegerField(read_only=True)

    def get_slots(self, quote):
        return [slot_to_dict(s) for s in quote.slots]

    def get_shipping_entries(self, quote):
        return [shipping_entry_to_dict(e) for e in quote.shipping_entries]


class QuoteSummarySerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    reference = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    client_name = serializers.CharField(read_only=True)
    quote_date = serializers.DateTimeField(read_only=True)
    unit_count = serializers.SerializerMethodField()
    locked_by = serializers.CharField(read_only=True, allow_null=True)
    updated_at = serializers.DateTimeField(read_only=True)
    version = serializers.IntegerField(read_only=True)

    def get_unit_count(self, quote):
        return sum(int(s.quantity) for s in quote.active_slots)


# ---------- COMMANDS (write) ----------
class VersionedSerializer(serializers.Serializer):
    # version the client last loaded; the save is refused when it is stale
    version = serializers.IntegerField(min_value=1)


class SlotUpdateSerializer(VersionedSerializer):
    changes = serializers.DictField(allow_empty=False)


class QuoteHeaderSerializer(VersionedSerializer):
    client_name = serializers.CharField(required=False, allow_blank=True)
    contact_name = serializers.CharField(required=False, allow_blank=True)
    contact_title = serializers.CharField(required=False, allow_blank=True)
    contact_email = serializers.CharField(required=False, allow_blank=True)
    contact_phone = serializers.CharField(required=False, allow_blank=True)
    client_address = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False, max_length=4)
    factory_roe = serializers.DecimalField(max_digits=12, decimal_places=4, required=False)
    customer_roe = serializers.DecimalField(max_digits=12, decimal_places=4, required=False)
    discount_pct = serializers.DecimalField(max_digits=6, decimal_places=2, required=False)
    annual_interest_rate = serializers.DecimalField(max_digits=6, decimal_places=3, required=False)
    default_lease_term_months = serializers.IntegerField(required=False)

    CLIENT_FIELDS = ("client_name", "contact_name", "contact_title", "contact_email", "contact_phone", "client_address")


class ShippingEntryUpdateSerializer(VersionedSerializer):
    description = serializers.CharField(required=False, allow_blank=True)
    container_type = serializers.CharField(required=False, allow_blank=True)
    quantity = serializers.IntegerField(required=False)
    cost = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)


class ApplySuggestionSerializer(VersionedSerializer):
    confirm = serializers.BooleanField(default=False)


class SubmitSerializer(VersionedSerializer):
    target_id = serializers.CharField()


class ApprovalActionSerializer(VersionedSerializer):
    # submit and edit have their own endpoints
    action = serializers.ChoiceField(choices=[
        a.value for a in (ApprovalAction.APPROVE, ApprovalAction.REJECT, ApprovalAction.ESCALATE, ApprovalAction.RETURN)
    ])
    target_id = serializers.CharField(required=False, allow_blank=True)


class QuoteCreateSerializer(serializers.Serializer):
    client_name = serializers.CharField(required=False, allow_blank=True, default="")


class QuoteFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=QuoteStatus.choices, required=False)
    client = serializers.CharField(required=False, allow_blank=True)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)


class ShippingSuggestionSerializer(serializers.Serializer):
    entries = serializers.SerializerMethodField()
    total = _money()
    stale = serializers.BooleanField(read_only=True)
    notes = serializers.ListField(child=serializers.CharField(), read_only=True)
    needs_manual_entry = serializers.BooleanField(read_only=True)

    def get_entries(self, obj):
        return [shipping_entry_to_dict(e) for e in obj["entries"]]
