# quotes/views.py
import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import CanApproveQuotes, CanViewQuote
from pricing.services.catalog import DatabaseCatalog
from pricing.services.commission import load_tiers
from pricing.services.financial import margin_band
from pricing.services.quote_totals import compute_quote_totals
from pricing.services.shipping import (
    collect_mapping_notes,
    generate_shipping_suggestion,
    is_suggestion_stale,
    shipping_total,
)
from pricing.services.slot_pricing import price_slot
from pricing.services.validation import can_submit, validate_quote, validate_roe_pair, validate_submission

from . import approval, commands
from .exceptions import ApprovalActionNotAllowed, InvalidApprovalTarget, QuoteError, QuoteNotFound
from .locking import LockCoordinator
from .models import Quote
from .repository import DjangoQuoteRepository
from .serialization import state_from_record
from .serializers import (
    ApplySuggestionSerializer,
    ApprovalActionSerializer,
    QuoteCreateSerializer,
    QuoteFilterSerializer,
    QuoteHeaderSerializer,
    QuoteStateSerializer,
    QuoteSummarySerializer,
    QuoteTotalsSerializer,
    ShippingEntryUpdateSerializer,
    ShippingSuggestionSerializer,
    SlotPricingSerializer,
    SlotUpdateSerializer,
    SubmitSerializer,
    ValidationIssueSerializer,
    VersionedSerializer,
)
from .state import new_quote

logger = logging.getLogger(__name__)


def _conflict(outcome):
    """409 payload for a refused save: {'detail', 'conflict': 'lock'|'version', 'version'}."""
    return Response(
        {"detail": outcome.error, "conflict": outcome.conflict.value, "version": outcome.version},
        status=status.HTTP_409_CONFLICT,
    )


def _user_can_see(user, quote) -> bool:
    if user.can_view_all_quotes:
        return True
    uid = str(user.pk)
    return uid in (quote.created_by, quote.assigned_to, quote.current_assignee_id)


class QuoteAPIView(APIView):
    """Shared plumbing: load the quote the caller may see, check edit rights, save with the client's version."""

    permission_classes = [IsAuthenticated, CanViewQuote]
    repository_class = DjangoQuoteRepository

    def get_repository(self):
        return self.repository_class()

    def get_quote(self, request, pk):
        record = get_object_or_404(Quote, pk=pk)
        self.check_object_permissions(request, record)
        return state_from_record(record)

    def can_edit(self, user, quote) -> bool:
        coordinator = LockCoordinator(quote)
        if user.can_edit_any_quote:
            return not coordinator.is_held_by_other(user.pk)
        return coordinator.can_edit(user.pk)

    def forbidden_edit(self, quote):
        return Response(
            {"detail": f"You cannot edit quote {quote.reference} in its current state."},
            status=status.HTTP_403_FORBIDDEN,
        )

    def save(self, request, quote, expected_version):
        """Persist `quote`; returns an error Response or None on success (quote.version updated)."""
        outcome = self.get_repository().save(quote, expected_version, actor_id=request.user.pk)
        if not outcome.success:
            return _conflict(outcome)
        quote.version = outcome.version
        return None

    def quote_response(self, quote, status_code=status.HTTP_200_OK):
        return Response(QuoteStateSerializer(quote).data, status=status_code)


# ---- List / create ----
class QuoteListCreateView(QuoteAPIView):
    def get(self, request):
        filters = QuoteFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        params = filters.validated_data
        quotes = self.get_repository().list_by_filter(
            status=params.get("status"),
            client_name=params.get("client"),
            date_from=params.get("date_from"),
            date_to=params.get("date_to"),
        )
        visible = [q for q in quotes if _user_can_see(request.user, q)]
        return Response(QuoteSummarySerializer(visible, many=True).data)

    def post(self, request):
        ser = QuoteCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        repository = self.get_repository()
        quote = new_quote(created_by=str(request.user.pk))
        if ser.validated_data.get("client_name"):
            commands.set_client_info(quote, client_name=ser.validated_data["client_name"])
        quote.reference = repository.next_reference_number()

        error = self.save(request, quote, quote.version)
        if error is not None:
            return error
        logger.info("User %s created quote %s", request.user.pk, quote.reference)
        return self.quote_response(quote, status.HTTP_201_CREATED)


class QuoteDetailView(QuoteAPIView):
    def get(self, request, pk):
        quote = self.get_quote(request, pk)
        payload = QuoteStateSerializer(quote).data
        payload["available_actions"] = approval.available_actions(quote, request.user)
        return Response(payload)

    def patch(self, request, pk):
        """Header fields: client/contact details, exchange rates, discount, interest, default term."""
        quote = self.get_quote(request, pk)
        if not self.can_edit(request.user, quote):
            return self.forbidden_edit(quote)

        ser = QuoteHeaderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        client = {k: data[k] for k in QuoteHeaderSerializer.CLIENT_FIELDS if k in data}
        if client:
            commands.set_client_info(quote, **client)
        ignored = []
        setters = (
            ("factory_roe", commands.set_factory_roe),
            ("customer_roe", commands.set_customer_roe),
            ("discount_pct", commands.set_discount),
            ("annual_interest_rate", commands.set_interest_rate),
            ("default_lease_term_months", commands.set_default_lease_term),
        )
        for name, setter in setters:
            if name in data and not setter(quote, data[name]):
                ignored.append(name)

        error = self.save(request, quote, data["version"])
        if error is not None:
            return error
        payload = QuoteStateSerializer(quote).data
        if ignored:
            payload["ignored_fields"] = ignored
        if "factory_roe" in data or "customer_roe" in data:
            payload["roe_warning"] = validate_roe_pair(quote.factory_roe, quote.customer_roe)
        return Response(payload)


# ---- Slots ----
class SlotView(QuoteAPIView):
    def patch(self, request, pk, index):
        quote = self.get_quote(request, pk)
        if not self.can_edit(request.user, quote):
            return self.forbidden_edit(quote)

        ser = SlotUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            commands.update_slot_fields(quote, index, ser.validated_data["changes"])
        except QuoteError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        error = self.save(request, quote, ser.validated_data["version"])
        return error or self.quote_response(quote)

    def delete(self, request, pk, index):
        """Reset the slot to empty. Expected version comes in the query string."""
        quote = self.get_quote(request, pk)
        if not self.can_edit(request.user, quote):
            return self.forbidden_edit(quote)

        ser = VersionedSerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        try:
            commands.clear_slot(quote, index)
        except QuoteError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        error = self.save(request, quote, ser.validated_data["version"])
        return error or self.quote_response(quote)


class SlotPricingView(QuoteAPIView):
    def get(self, request, pk, index):
        quote = self.get_quote(request, pk)
        try:
            slot = quote.slot(index)
        except QuoteError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        pricing = price_slot(slot, quote.factory_roe)
        if pricing is None:
            return Response({"slot_index": index, "active": False, "pricing": None})
        return Response({"slot_index": index, "active": True, "pricing": SlotPricingSerializer(pricing).data})


# ---- Derived figures ----
class QuoteTotalsView(QuoteAPIView):
    def get(self, request, pk):
        quote = self.get_quote(request, pk)
        totals = compute_quote_totals(quote, load_tiers())
        payload = QuoteTotalsSerializer(totals).data
        payload["shipping_total"] = str(shipping_total(quote.shipping_entries))
        payload["margin_band"] = margin_band(totals.average_margin)
        return Response(payload)


class QuoteValidationView(QuoteAPIView):
    def get(self, request, pk):
        issues = validate_quote(self.get_quote(request, pk))
        return Response({
            "can_submit": can_submit(issues),
            "issues": ValidationIssueSerializer(issues, many=True).data,
        })


# ---- Shipping ----
class ShippingSuggestionView(QuoteAPIView):
    def get(self, request, pk):
        quote = self.get_quote(request, pk)
        mappings = DatabaseCatalog().container_mappings()
        entries = generate_shipping_suggestion(quote.slots, mappings, quote.factory_roe)
        series = [code for e in entries for code in e.series_codes]
        return Response(ShippingSuggestionSerializer({
            "entries": entries,
            "total": shipping_total(entries),
            "stale": is_suggestion_stale(quote.shipping_entries, quote.slots, quote.factory_roe),
            "notes": collect_mapping_notes(mappings, series),
            "needs_manual_entry": any(e.needs_manual_entry for e in entries),
        }).data)


class ApplyShippingSuggestionView(QuoteAPIView):
    def post(self, request, pk):
        """Replace every shipping line with a fresh suggestion. Destructive, so `confirm` must be true."""
        quote = self.get_quote(request, pk)
        if not self.can_edit(request.user, quote):
            return self.forbidden_edit(quote)

        ser = ApplySuggestionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        entries = generate_shipping_suggestion(
            quote.slots, DatabaseCatalog().container_mappings(), quote.factory_roe
        )
        try:
            commands.apply_shipping_suggestion(quote, entries, confirm=ser.validated_data["confirm"])
        except QuoteError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        error = self.save(request, quote, ser.validated_data["version"])
        return error or self.quote_response(quote)


class ShippingEntryListView(QuoteAPIView):
    def post(self, request, pk):
        """Append a manual shipping line, optionally filled in from the request body."""
        quote = self.get_quote(request, pk)
        if not self.can_edit(request.user, quote):
            return self.forbidden_edit(quote)

        ser = ShippingEntryUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        entry = commands.add_shipping_entry(quote)
        updates = {k: v for k, v in ser.validated_data.items() if k != "version"}
        if updates:
            commands.update_shipping_entry(quote, entry.id, updates)

        error = self.save(request, quote, ser.validated_data["version"])
        return error or self.quote_response(quote, status.HTTP_201_CREATED)


class ShippingEntryView(QuoteAPIView):
    def delete(self, request, pk, entry_id):
        """Remove one line. The last line stays; removing it is a 400."""
        quote = self.get_quote(request, pk)
        if not self.can_edit(request.user, quote):
            return self.forbidden_edit(quote)

        ser = VersionedSerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        if not any(e.id == entry_id for e in quote.shipping_entries):
            return Response({"detail": "Shipping entry not found."}, status=status.HTTP_404_NOT_FOUND)
        if not commands.remove_shipping_entry(quote, entry_id):
            return Response({"detail": "A quote keeps at least one shipping line."},
                            status=status.HTTP_400_BAD_REQUEST)

        error = self.save(request, quote, ser.validated_data["version"])
        return error or self.quote_response(quote)

    def patch(self, request, pk, entry_id):
        quote = self.get_quote(request, pk)
        if not self.can_edit(request.user, quote):
            return self.forbidden_edit(quote)

        ser = ShippingEntryUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        updates = {k: v for k, v in ser.validated_data.items() if k != "version"}
        if commands.update_shipping_entry(quote, entry_id, updates) is None:
            return Response({"detail": "Shipping entry not found."}, status=status.HTTP_404_NOT_FOUND)

        error = self.save(request, quote, ser.validated_data["version"])
        return error or self.quote_response(quote)


# ---- Lock ----
class QuoteLockView(QuoteAPIView):
    def post(self, request, pk):
        quote = self.get_quote(request, pk)
        if not self.get_repository().acquire_lock(quote.id, request.user.pk):
            return Response(
                {"detail": "Quote is being edited by another user.", "conflict": "lock",
                 "locked_by": quote.locked_by, "locked_at": quote.locked_at},
                status=status.HTTP_409_CONFLICT,
            )
        return self.quote_response(self.get_quote(request, pk))

    def delete(self, request, pk):
        quote = self.get_quote(request, pk)
        released = self.get_repository().release_lock(quote.id, request.user.pk)
        return Response({"released": released})


# ---- Revisions / copies ----
class QuoteRevisionView(QuoteAPIView):
    def post(self, request, pk):
        self.get_quote(request, pk)
        try:
            revision = self.get_repository().create_revision(pk, actor_id=request.user.pk)
        except QuoteNotFound:
            return Response({"detail": "Quote not found."}, status=status.HTTP_404_NOT_FOUND)
        return self.quote_response(revision, status.HTTP_201_CREATED)


class QuoteDuplicateView(QuoteAPIView):
    def post(self, request, pk):
        self.get_quote(request, pk)
        try:
            copy_ = self.get_repository().duplicate(pk, actor_id=request.user.pk)
        except QuoteNotFound:
            return Response({"detail": "Quote not found."}, status=status.HTTP_404_NOT_FOUND)
        return self.quote_response(copy_, status.HTTP_201_CREATED)


# ---- Approval ----
def _action_refused(exc):
    return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)


class QuoteSubmitView(QuoteAPIView):
    def post(self, request, pk):
        """Hand the quote to an approver: pending-approval, with the approver as current assignee."""
        quote = self.get_quote(request, pk)
        if not self.can_edit(request.user, quote):
            return self.forbidden_edit(quote)

        ser = SubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        target = approval.find_user(ser.validated_data["target_id"])

        errors = validate_submission(quote, request.user.pk, target)
        issues = validate_quote(quote)
        if errors or not can_submit(issues):
            return Response({
                "detail": "Quote cannot be submitted.",
                "errors": errors,
                "issues": ValidationIssueSerializer(issues, many=True).data,
            }, status=status.HTTP_400_BAD_REQUEST)

        try:
            approval.apply_action(quote, request.user, approval.ApprovalAction.SUBMIT, target)
        except ApprovalActionNotAllowed as exc:
            return _action_refused(exc)
        except InvalidApprovalTarget as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        error = self.save(request, quote, ser.validated_data["version"])
        if error is not None:
            return error
        logger.info("Quote %s submitted by %s to %s", quote.reference, request.user.pk, target.pk)
        return self.quote_response(quote)


class QuoteStartReviewView(QuoteAPIView):
    permission_classes = [IsAuthenticated, CanApproveQuotes, CanViewQuote]

    def post(self, request, pk):
        """The designated approver takes a pending quote into review (and may then edit it)."""
        quote = self.get_quote(request, pk)
        ser = VersionedSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            approval.apply_action(quote, request.user, approval.ApprovalAction.EDIT)
        except ApprovalActionNotAllowed:
            return Response({"detail": "Quote is not waiting for your review."}, status=status.HTTP_403_FORBIDDEN)

        error = self.save(request, quote, ser.validated_data["version"])
        return error or self.quote_response(quote)


class QuoteApprovalActionView(QuoteAPIView):
    def post(self, request, pk):
        """
        Approve, reject, escalate or return a quote waiting on the caller.

        Escalate needs a `target_id` at a higher role. Return goes to `target_id`
        when given, otherwise back to the quote's creator.
        """
        quote = self.get_quote(request, pk)
        ser = ApprovalActionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        action = ser.validated_data["action"]

        target = None
        target_id = ser.validated_data.get("target_id")
        if target_id:
            target = approval.find_user(target_id)
            if target is None:
                return Response({"detail": "Selected user does not exist."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            approval.apply_action(quote, request.user, action, target)
        except ApprovalActionNotAllowed as exc:
            return _action_refused(exc)
        except InvalidApprovalTarget as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        error = self.save(request, quote, ser.validated_data["version"])
        return error or self.quote_response(quote)
