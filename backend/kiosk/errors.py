from __future__ import annotations


class AppError(Exception):
    # Base class for domain errors (intended, meaningful failures).
    pass


class QuestionConfigError(AppError):
    # Raised when the survey definition breaks its invariants (empty, duplicate names, ...).
    pass


class PageOutOfRange(AppError):
    # Raised when a page index falls outside the question list.
    pass


class QueueCorrupted(AppError):
    # Raised when the persisted submission queue cannot be parsed.
    pass


class RelayTransportError(AppError):
    # Raised for network errors, non-2xx statuses and malformed relay responses.
    pass


class ConfirmationRequired(AppError):
    # Raised when a destructive admin action is requested without confirmation.
    pass


class AdminLocked(AppError):
    # Raised when an admin action is attempted while the panel is hidden.
    pass
