from django.urls import path

from .views import (
    ApplyShippingSuggestionView,
    QuoteApprovalActionView,
    QuoteDetailView,
    QuoteDuplicateView,
    QuoteListCreateView,
    QuoteLockView,
    QuoteRevisionView,
    QuoteStartReviewView,
    QuoteSubmitView,
    QuoteTotalsView,
    QuoteValidationView,
    ShippingEntryListView,
    ShippingEntryView,
    ShippingSuggestionView,
    SlotPricingView,
    SlotView,
)

urlpatterns = [
    path('quotes/', QuoteListCreateView.as_view(), name='quote-list'),
    path('quotes/<uuid:pk>/', QuoteDetailView.as_view(), name='quote-detail'),
    path('quotes/<uuid:pk>/slots/<int:index>/', SlotView.as_view(), name='quote-slot'),
    path('quotes/<uuid:pk>/slots/<int:index>/pricing/', SlotPricingView.as_view(), name='quote-slot-pricing'),
    path('quotes/<uuid:pk>/totals/', QuoteTotalsView.as_view(), name='quote-totals'),
    path('quotes/<uuid:pk>/validation/', QuoteValidationView.as_view(), name='quote-validation'),
    path('quotes/<uuid:pk>/shipping/suggestion/', ShippingSuggestionView.as_view(), name='quote-shipping-suggestion'),
    path('quotes/<uuid:pk>/shipping/apply/', ApplyShippingSuggestionView.as_view(), name='quote-shipping-apply'),
    path('quotes/<uuid:pk>/shipping/', ShippingEntryListView.as_view(), name='quote-shipping-list'),
    path('quotes/<uuid:pk>/shipping/<str:entry_id>/', ShippingEntryView.as_view(), name='quote-shipping-entry'),
    path('quotes/<uuid:pk>/lock/', QuoteLockView.as_view(), name='quote-lock'),
    path('quotes/<uuid:pk>/revisions/', QuoteRevisionView.as_view(), name='quote-revision'),
    path('quotes/<uuid:pk>/duplicate/', QuoteDuplicateView.as_view(), name='quote-duplicate'),
    path('quotes/<uuid:pk>/submit/', QuoteSubmitView.as_view(), name='quote-submit'),
    path('quotes/<uuid:pk>/review/', QuoteStartReviewView.as_view(), name='quote-start-review'),
    path('quotes/<uuid:pk>/approval/', QuoteApprovalActionView.as_view(), name='quote-approval'),
]
