"""
Exception hierarchy shared by extraction, aggregation and the stores.

Every error carries a ``retryable`` flag. Extraction and period errors are
final (the email needs manual review, or the caller passed a bad period);
configuration and store errors are transient and may be retried by the
caller with backoff. Nothing in this package retries on its own.
"""

from __future__ import annotations

from typing import Any, Optional


class CardSpendError(Exception):
    """Base exception for all domain errors."""

    retryable: bool = False

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ExtractionError(CardSpendError):
    """Raised when an email cannot be turned into a card usage."""

    pass


class UnrecognizedFormatError(ExtractionError):
    """Raised when no registered card company format matches an email."""

    pass


class FieldExtractionError(ExtractionError):
    """Raised when a field anchor is missing or its value does not parse."""

    def __init__(self, field: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)
        self.field = field


class EncodingNormalizationError(ExtractionError):
    """Raised when email content cannot be decoded or width-normalized."""

    pass


class InvalidPeriodError(CardSpendError):
    """Raised when a report period start is not aligned to a period boundary."""

    pass


class ThresholdConfigUnavailableError(CardSpendError):
    """Raised when a threshold table cannot be read or is incomplete."""

    retryable = True


class StoreUnavailableError(CardSpendError):
    """Raised when the backing store cannot be reached."""

    retryable = True


class NotFoundError(CardSpendError):
    """Raised when a requested record does not exist."""

    pass


class AlertDeliveryError(CardSpendError):
    """Raised when an alert was recorded but the notifier failed to deliver it."""

    retryable = True

    def __init__(self, message: str, event: Any = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)
        self.event = event
