"""Error types for highlight-reels.

Provides:
- A categorized exception hierarchy
- Domain errors for segment validation, transcription and rendering
- Classification of provider failures into transcription failure kinds
- An error context manager with rollback support

Nothing here retries: a failed external call surfaces as a typed error and
the pipeline decides whether to degrade or fail the job.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

import openai

from highlight_reels.logging import get_logger

logger = get_logger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for handling decisions."""

    TRANSIENT = "transient"  # Network, timeout
    RATE_LIMIT = "rate_limit"  # Quota exhausted
    VALIDATION = "validation"  # Bad input
    CONFIGURATION = "configuration"  # Bad config
    RESOURCE = "resource"  # Missing or undeletable file
    EXTERNAL = "external"  # Provider or engine error
    INTERNAL = "internal"  # Bug in code


class HighlightReelsError(Exception):
    """Base exception for highlight-reels errors.

    Attributes:
        message: Human-readable error message
        category: Error category for handling
        context: Additional context information
        recoverable: Whether the pipeline may continue past this error
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class ValidationError(HighlightReelsError):
    """Input validation error."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ConfigurationError(HighlightReelsError):
    """Configuration error, e.g. a missing API key or binary."""

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ResourceError(HighlightReelsError):
    """Resource not found or unavailable, e.g. a missing source video."""

    category = ErrorCategory.RESOURCE

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ExternalServiceError(HighlightReelsError):
    """Error reported by an external collaborator (provider or engine)."""

    category = ErrorCategory.EXTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message, context, recoverable=recoverable)


class NoValidSegmentsError(ValidationError):
    """Every candidate segment was shorter than the minimum clip duration.

    Terminal for the whole request: no clips are rendered.
    """

    def __init__(self, candidate_count: int, min_duration: float):
        self.candidate_count = candidate_count
        self.min_duration = min_duration
        if candidate_count == 0:
            reason = "no candidate segments were provided"
        else:
            reason = "all candidate segments were shorter than the minimum"
        self.reason = reason
        super().__init__(
            f"No valid segments: {reason} ({min_duration:g}s)",
            context={"candidates": candidate_count, "min_duration": min_duration},
        )


class TranscriptionFailure(str, Enum):
    """Why a transcription call failed."""

    QUOTA = "quota"
    CONTENT_BLOCKED = "content_blocked"
    NETWORK = "network"
    MALFORMED = "malformed"
    TIMEOUT = "timeout"


class TranscriptionError(ExternalServiceError):
    """A transcriber could not produce word timings.

    Attributes:
        kind: Failure classification
    """

    category = ErrorCategory.EXTERNAL

    def __init__(
        self,
        message: str,
        kind: TranscriptionFailure,
        context: dict | None = None,
    ):
        super().__init__(
            message,
            context={"kind": kind.value, **(context or {})},
            recoverable=kind != TranscriptionFailure.CONTENT_BLOCKED,
        )
        self.kind = kind
        if kind == TranscriptionFailure.QUOTA:
            self.category = ErrorCategory.RATE_LIMIT
        elif kind in (TranscriptionFailure.NETWORK, TranscriptionFailure.TIMEOUT):
            self.category = ErrorCategory.TRANSIENT

    @property
    def exhausts_provider(self) -> bool:
        """True if further calls to the same provider in this request will fail too."""
        return self.kind in (TranscriptionFailure.QUOTA, TranscriptionFailure.CONTENT_BLOCKED)


class RenderFailure(str, Enum):
    """Why a rendering engine call failed."""

    ENGINE = "engine"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    MISSING_OUTPUT = "missing_output"


class RenderEngineError(ExternalServiceError):
    """The rendering engine failed to produce a clip.

    Attributes:
        kind: Failure classification
        diagnostic: Tail of the engine's own error output
        completed: Artifacts rendered before the failure, set by the pipeline
            when it aborts a request
    """

    # Lines of stderr kept in the diagnostic
    DIAGNOSTIC_LINES = 20

    def __init__(
        self,
        message: str,
        kind: RenderFailure = RenderFailure.ENGINE,
        diagnostic: str = "",
        context: dict | None = None,
    ):
        super().__init__(
            message,
            context={"kind": kind.value, **(context or {})},
            recoverable=False,
        )
        self.kind = kind
        self.diagnostic = "\n".join(diagnostic.strip().splitlines()[-self.DIAGNOSTIC_LINES:])
        self.completed: list[Any] = []
        if kind == RenderFailure.NOT_FOUND:
            self.category = ErrorCategory.CONFIGURATION


class FileSystemError(ResourceError):
    """A working file could not be removed. Always reported, never raised past cleanup."""


class ErrorContext:
    """Context manager that logs failures and runs an optional rollback.

    The exception is never suppressed.
    """

    def __init__(
        self,
        operation: str,
        rollback: Callable[[], None] | None = None,
        context: dict | None = None,
    ):
        self.operation = operation
        self.rollback = rollback
        self.context = context or {}
        self.error: Exception | None = None

    def __enter__(self) -> "ErrorContext":
        logger.debug(f"Starting operation: {self.operation}")
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> bool:
        if exc_val is None:
            logger.debug(f"Completed operation: {self.operation}")
            return False

        self.error = exc_val
        logger.error(
            f"Error in {self.operation}: {exc_val}",
            extra={
                "operation": self.operation,
                "error_type": type(exc_val).__name__,
                **self.context,
            },
        )

        if self.rollback:
            try:
                logger.info(f"Rolling back {self.operation}")
                self.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback failed for {self.operation}: {rollback_error}")

        return False


_QUOTA_PATTERNS = ("rate limit", "429", "quota", "insufficient_quota")
_BLOCKED_PATTERNS = ("content policy", "content_policy", "safety", "blocked", "flagged")
_TIMEOUT_PATTERNS = ("timeout", "timed out")
_NETWORK_PATTERNS = ("connection", "network", "temporarily unavailable", "502", "503", "504")


def classify_transcription_error(
    error: Exception,
    service: str,
) -> TranscriptionError:
    """Wrap a provider exception in a classified TranscriptionError.

    Known openai exception types are matched first; anything else is
    classified by message patterns and defaults to a network failure.
    MALFORMED is never produced here: only response parsing reports it.

    Args:
        error: Original error raised by the provider client
        service: Name of the provider, for the message and context

    Returns:
        TranscriptionError with the matching kind
    """
    if isinstance(error, TranscriptionError):
        return error

    kind: TranscriptionFailure | None = None

    if isinstance(error, openai.APITimeoutError):
        kind = TranscriptionFailure.TIMEOUT
    elif isinstance(error, openai.RateLimitError):
        kind = TranscriptionFailure.QUOTA
    elif isinstance(error, openai.APIConnectionError):
        kind = TranscriptionFailure.NETWORK

    if kind is None:
        error_str = str(error).lower()
        if any(p in error_str for p in _QUOTA_PATTERNS):
            kind = TranscriptionFailure.QUOTA
        elif any(p in error_str for p in _BLOCKED_PATTERNS):
            kind = TranscriptionFailure.CONTENT_BLOCKED
        elif isinstance(error, TimeoutError) or any(p in error_str for p in _TIMEOUT_PATTERNS):
            kind = TranscriptionFailure.TIMEOUT
        else:
            kind = TranscriptionFailure.NETWORK

    return TranscriptionError(
        f"Transcription failed ({kind.value}) from {service}: {error}",
        kind=kind,
        context={"service": service},
    )


def format_error_for_display(error: Exception) -> str:
    """Format an error message for user display."""
    if isinstance(error, HighlightReelsError):
        category = error.category.value
        base_message = error.message

        if error.context:
            context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
            base_message = f"{base_message} ({context_str})"

        if isinstance(error, RenderEngineError) and error.diagnostic:
            base_message += "\n" + error.diagnostic

        return f"[{category}] {base_message}"

    return f"[error] {type(error).__name__}: {error}"
