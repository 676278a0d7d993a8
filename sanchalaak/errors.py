"""Error taxonomy shared by keyword extraction, scoring and file parsing."""

from enum import Enum
from typing import Optional


class ErrorAction(str, Enum):
    """What the person seeing the error should do next."""
    RETRY = "retry"
    FIX_INPUT = "fix_input"
    CONTACT_SUPPORT = "contact_support"


class GradingError(Exception):
    """Base class for every failure the pipeline surfaces to callers."""

    action: ErrorAction = ErrorAction.RETRY

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


class MalformedResponse(GradingError):
    """The LLM response could not be parsed into the expected shape."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(
            message,
            "The AI service returned a response that could not be read. Please try again.",
        )
        self.raw_text = raw_text


class InsufficientKeywords(GradingError):
    """Keyword extraction produced fewer usable keywords than the configured floor."""

    action = ErrorAction.FIX_INPUT

    def __init__(self, found: int, minimum: int):
        super().__init__(
            f"Only {found} keywords extracted, at least {minimum} required",
            f"Only {found} keywords could be extracted from the problem statement "
            f"(at least {minimum} are needed). Add more detail to the problem and try again.",
        )
        self.found = found
        self.minimum = minimum


class EmptySubmission(GradingError):
    """A submission has no text to evaluate."""

    action = ErrorAction.FIX_INPUT

    def __init__(self, submission_id: str = ""):
        label = submission_id or "submission"
        super().__init__(
            f"Submission text is empty: {label}",
            "This submission has no text to evaluate. Upload a file with the written answer.",
        )
        self.submission_id = submission_id


class UpstreamReason(str, Enum):
    RATE_LIMIT = "rate_limit"
    QUOTA_EXHAUSTED = "quota_exhausted"
    AUTH_FAILURE = "auth_failure"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    CONFIGURATION_MISSING = "configuration_missing"


_UPSTREAM_MESSAGES = {
    UpstreamReason.RATE_LIMIT: "Rate limit exceeded. Please try again in a moment.",
    UpstreamReason.QUOTA_EXHAUSTED: "AI credits depleted. Please add credits to continue.",
    UpstreamReason.AUTH_FAILURE: "The AI service rejected our credentials. Please contact support.",
    UpstreamReason.SERVER_ERROR: "The AI service had an internal error. Please try again.",
    UpstreamReason.NETWORK: "Could not reach the AI service. Check the connection and try again.",
    UpstreamReason.CONFIGURATION_MISSING: "AI service is not configured. Please contact support.",
}

_UPSTREAM_ACTIONS = {
    UpstreamReason.RATE_LIMIT: ErrorAction.RETRY,
    UpstreamReason.QUOTA_EXHAUSTED: ErrorAction.CONTACT_SUPPORT,
    UpstreamReason.AUTH_FAILURE: ErrorAction.CONTACT_SUPPORT,
    UpstreamReason.SERVER_ERROR: ErrorAction.RETRY,
    UpstreamReason.NETWORK: ErrorAction.RETRY,
    UpstreamReason.CONFIGURATION_MISSING: ErrorAction.CONTACT_SUPPORT,
}


class UpstreamUnavailable(GradingError):
    """The LLM service could not serve the request."""

    def __init__(self, reason: UpstreamReason, detail: str = ""):
        message = f"LLM service unavailable ({reason.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, _UPSTREAM_MESSAGES[reason])
        self.reason = reason
        self.detail = detail
        self.action = _UPSTREAM_ACTIONS[reason]

    @property
    def retryable(self) -> bool:
        return self.action == ErrorAction.RETRY


class UnsupportedFormat(GradingError):
    """A submission file has an extension the parser does not handle."""

    action = ErrorAction.FIX_INPUT

    def __init__(self, filename: str, supported: tuple = ()):
        formats = ", ".join(supported)
        super().__init__(
            f"Unsupported file format: {filename}",
            f"{filename} is not a supported file type"
            + (f" (supported: {formats})." if formats else "."),
        )
        self.filename = filename


class ParseFailure(GradingError):
    """A submission file could not be turned into text."""

    action = ErrorAction.FIX_INPUT

    def __init__(self, filename: str, detail: str):
        super().__init__(
            f"Failed to parse {filename}: {detail}",
            f"{filename} could not be read. Please ensure it contains readable text.",
        )
        self.filename = filename
        self.detail = detail
