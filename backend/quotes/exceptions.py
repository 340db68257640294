"""
Exceptions raised by the quote aggregate and its command handlers.

Pricing never raises for bad numbers and lock/version conflicts are returned as
results; these are for caller mistakes that should not be silently ignored.
"""


class QuoteError(Exception):
    """Base exception for quote related errors"""
    pass


class InvalidSlotIndex(QuoteError):
    """Raised when a slot index is outside 0..5"""
    pass


class UnknownSlotField(QuoteError):
    """Raised when an update names a field a slot does not have"""
    pass


class ConfirmationRequired(QuoteError):
    """Raised when a destructive command is issued without explicit confirmation"""
    pass


class QuoteNotFound(QuoteError):
    """Raised when the record store has no quote with the requested id"""
    pass


class InvalidFieldValue(QuoteError):
    """Raised when a value cannot be coerced to the field's type"""
    pass


class ApprovalActionNotAllowed(QuoteError):
    """Raised when a user asks for an approval step the quote's status and their role do not allow"""
    pass


class InvalidApprovalTarget(QuoteError):
    """Raised when an escalation or return names a user who cannot receive the quote"""
    pass
