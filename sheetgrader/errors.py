"""
Error taxonomy for the Sheet Grader system.

Configuration and export errors block only the action that raised them.
Oracle errors are always scoped to a single batch item and recorded on it.
"""


class SheetGraderError(Exception):
    """Base class for all Sheet Grader errors."""


class ConfigurationError(SheetGraderError):
    """Raised before any oracle call when the answer key or config is unusable."""


class InvalidTransitionError(SheetGraderError):
    """Raised when a batch item is moved out of a terminal state."""


class ExportError(SheetGraderError):
    """Raised when an export has no completed evaluations to report on."""


class OracleError(SheetGraderError):
    """
    Failure of a single oracle call.

    Attributes:
        user_message: Actionable message safe to show next to the item.
        retryable: Whether the same request may succeed after a backoff.
    """

    user_message: str = "Failed to analyze answer sheet"
    retryable: bool = False

    def __init__(self, detail: str = "", user_message: str | None = None) -> None:
        super().__init__(detail or user_message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class InvalidImageError(OracleError):
    user_message = "The image could not be read. Retake the photo with the whole sheet in frame."


class RateLimitedError(OracleError):
    user_message = "Rate limit exceeded. Please try again later."
    retryable = True


class QuotaExhaustedError(OracleError):
    user_message = "Payment required. Please add credits to your workspace."


class OracleTransportError(OracleError):
    user_message = "Failed to analyze answer sheet. Check your connection and try again."


class OracleResponseError(OracleError):
    user_message = "The answer sheet could not be evaluated. Try again with a clearer photo."


class PersistenceWarning(UserWarning):
    """Non-fatal failure to save an evaluation record; the result still counts."""
