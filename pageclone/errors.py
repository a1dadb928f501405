"""Error taxonomy for the progress store and the cloning phases.

Progress store errors describe the state of a persisted record. Cloning
errors describe what went wrong inside a phase; the orchestrator classifies
any exception into one of them and picks a recovery strategy from it.
"""

from dataclasses import dataclass
from typing import Literal, Optional

# --- Progress store ---


class ProgressStoreError(Exception):
    """Base class for failures reading or writing a progress record."""

    code = "UNKNOWN"
    retryable = False

    def __init__(self, message: str, page_slug: str = ""):
        super().__init__(message)
        self.page_slug = page_slug


class ProgressNotFoundError(ProgressStoreError):
    code = "NOT_FOUND"


class ProgressParseError(ProgressStoreError):
    code = "PARSE_ERROR"


class ProgressValidationError(ProgressStoreError):
    code = "VALIDATION_ERROR"


class ProgressWriteError(ProgressStoreError):
    code = "WRITE_ERROR"
    retryable = True


class ProgressSourceMismatchError(ProgressStoreError):
    """An existing record for the slug belongs to a different source URL."""

    code = "SOURCE_MISMATCH"


# --- Cloning phases ---


class CloningError(Exception):
    """Base class for phase failures. ``code`` selects the recovery strategy."""

    kind = "cloning"

    def __init__(self, message: str, code: str, retryable: bool = False):
        super().__init__(message)
        self.code = code
        self.retryable = retryable

    def to_response(self) -> dict:
        return {
            "type": self.kind,
            "code": self.code,
            "message": str(self),
            "retryable": self.retryable,
        }


class ScrapingError(CloningError):
    """TIMEOUT, BLOCKED, NOT_FOUND, PARSE_ERROR, CAPTCHA or RATE_LIMITED."""

    kind = "scraping"

    def __init__(self, message: str, code: str, retryable: bool = False, url: str = "unknown"):
        super().__init__(message, code, retryable)
        self.url = url

    def to_response(self) -> dict:
        return {**super().to_response(), "url": self.url}


class ImplementationError(CloningError):
    """FILE_WRITE, TYPESCRIPT_ERROR, LINT_ERROR, BUILD_ERROR, PATTERN_MISMATCH,
    MISSING_INPUT or PROGRESS_STATE."""

    kind = "implementation"

    def __init__(self, message: str, code: str, file_path: str = "unknown", retryable: bool = False):
        super().__init__(message, code, retryable)
        self.file_path = file_path

    def to_response(self) -> dict:
        return {**super().to_response(), "filePath": self.file_path}


class VerificationError(CloningError):
    """VISUAL_MISMATCH, DATA_INCOMPLETE, LINK_BROKEN, TEST_FAILED or CONSOLE_ERROR."""

    kind = "verification"

    def __init__(self, message: str, code: str, details: Optional[list[str]] = None):
        super().__init__(message, code, retryable=True)
        self.details = details or []

    def to_response(self) -> dict:
        return {**super().to_response(), "details": self.details}


# --- Bot-wall detection ---

CAPTCHA_PATTERNS = (
    "captcha",
    "recaptcha",
    "hcaptcha",
    "verify you are human",
    "are you a robot",
    "human verification",
    "security check",
    "access denied",
    "cloudflare",
    "challenge-platform",
    "cf-browser-verification",
    "please wait while we verify",
    "checking your browser",
    "ddos protection",
    "bot detection",
    "unusual traffic",
    "automated access",
)


def detect_captcha(text: str) -> bool:
    """Return True if the text looks like a CAPTCHA or bot-protection page."""
    if not text:
        return False
    lowered = text.lower()
    return any(pattern in lowered for pattern in CAPTCHA_PATTERNS)


# --- Classification and recovery ---


def classify_error(
    error: BaseException,
    phase: Optional[str] = None,
    url: str = "unknown",
    file_path: str = "unknown",
) -> CloningError:
    """Map an arbitrary exception to a cloning error by inspecting its message.

    Cloning errors pass through unchanged. Anything unrecognised becomes a
    retryable scraping PARSE_ERROR.
    """
    if isinstance(error, CloningError):
        return error
    if isinstance(error, ProgressStoreError):
        code = "FILE_WRITE" if error.retryable else "PROGRESS_STATE"
        return ImplementationError(str(error), code, file_path, error.retryable)

    message = str(error) or type(error).__name__
    lowered = message.lower()

    if detect_captcha(message):
        return ScrapingError(message, "CAPTCHA", False, url)
    if "429" in lowered or "too many requests" in lowered or "rate limit" in lowered:
        return ScrapingError(message, "RATE_LIMITED", True, url)
    if isinstance(error, TimeoutError) or "timeout" in lowered or "timed out" in lowered:
        return ScrapingError(message, "TIMEOUT", True, url)
    if "404" in lowered or "not found" in lowered:
        return ScrapingError(message, "NOT_FOUND", False, url)
    if isinstance(error, OSError):
        return ImplementationError(message, "FILE_WRITE", file_path, True)
    if "typescript" in lowered or "ts(" in lowered or "type error" in lowered:
        return ImplementationError(message, "TYPESCRIPT_ERROR", file_path, True)
    if "build" in lowered or "compile" in lowered or "webpack" in lowered:
        return ImplementationError(message, "BUILD_ERROR", file_path)
    if "lint" in lowered:
        return ImplementationError(message, "LINT_ERROR", file_path, True)
    if "test" in lowered and ("fail" in lowered or "error" in lowered):
        return VerificationError(message, "TEST_FAILED", [message])

    if phase == "verify":
        if "mismatch" in lowered or "different" in lowered:
            return VerificationError(message, "VISUAL_MISMATCH", [message])
        if "incomplete" in lowered or "missing" in lowered:
            return VerificationError(message, "DATA_INCOMPLETE", [message])
        if "link" in lowered or "broken" in lowered:
            return VerificationError(message, "LINK_BROKEN", [message])

    return ScrapingError(message, "PARSE_ERROR", True, url)


RecoveryAction = Literal["retry", "skip", "pause", "fix", "abort"]


@dataclass(frozen=True)
class RecoveryStrategy:
    action: RecoveryAction
    user_message: str
    delay: Optional[float] = None
    max_attempts: Optional[int] = None


_STRATEGIES: dict[tuple[str, str], RecoveryStrategy] = {
    ("scraping", "TIMEOUT"): RecoveryStrategy("retry", "Page load timed out. Retrying with a longer timeout.", 5.0, 3),
    ("scraping", "RATE_LIMITED"): RecoveryStrategy("retry", "Rate limited. Waiting before retry.", 5.0, 5),
    ("scraping", "CAPTCHA"): RecoveryStrategy("pause", "CAPTCHA or bot detection encountered. Manual intervention required."),
    ("scraping", "BLOCKED"): RecoveryStrategy("pause", "Access blocked. Manual intervention required."),
    ("scraping", "NOT_FOUND"): RecoveryStrategy("skip", "Page not found. Skipping this URL."),
    ("scraping", "PARSE_ERROR"): RecoveryStrategy("retry", "Failed to parse page content. Retrying.", 2.0, 2),
    ("implementation", "TYPESCRIPT_ERROR"): RecoveryStrategy("fix", "TypeScript error detected. Attempting a fix."),
    ("implementation", "LINT_ERROR"): RecoveryStrategy("fix", "Lint error detected. Attempting a fix."),
    ("implementation", "BUILD_ERROR"): RecoveryStrategy("abort", "Build error detected. Manual review required."),
    ("implementation", "FILE_WRITE"): RecoveryStrategy("retry", "File write failed. Retrying.", 1.0, 2),
    ("implementation", "PATTERN_MISMATCH"): RecoveryStrategy("abort", "Code pattern mismatch. Manual review required."),
    ("implementation", "MISSING_INPUT"): RecoveryStrategy("abort", "A required earlier phase has not produced its output."),
    ("verification", "VISUAL_MISMATCH"): RecoveryStrategy("fix", "Differences detected. Attempting a fix.", None, 3),
    ("verification", "DATA_INCOMPLETE"): RecoveryStrategy("retry", "Data incomplete. Re-extracting.", 2.0, 2),
    ("verification", "LINK_BROKEN"): RecoveryStrategy("fix", "Broken links detected. Attempting a fix.", None, 2),
    ("verification", "TEST_FAILED"): RecoveryStrategy("fix", "Tests failed. Attempting a fix.", None, 2),
    ("verification", "CONSOLE_ERROR"): RecoveryStrategy("fix", "Console errors detected. Attempting a fix.", None, 2),
}

_DEFAULT_STRATEGY = RecoveryStrategy("abort", "Unknown error occurred. Manual review required.")


def get_recovery_strategy(error: BaseException) -> RecoveryStrategy:
    """Return the recovery strategy for a classified error."""
    if isinstance(error, CloningError):
        return _STRATEGIES.get((error.kind, error.code), _DEFAULT_STRATEGY)
    return _DEFAULT_STRATEGY


_FRIENDLY_MESSAGES = {
    ("scraping", "TIMEOUT"): "The page took too long to load. Check the connection and try again.",
    ("scraping", "BLOCKED"): "Access to the page was blocked. The website may have anti-bot protection.",
    ("scraping", "CAPTCHA"): "A CAPTCHA challenge was detected. Manual verification is required.",
    ("scraping", "NOT_FOUND"): "The page was not found. Verify the URL is correct.",
    ("scraping", "RATE_LIMITED"): "Too many requests. Wait a moment before trying again.",
    ("scraping", "PARSE_ERROR"): "Failed to parse the page content. The page structure may have changed.",
    ("implementation", "BUILD_ERROR"): "Build failed. Check the error details and fix manually.",
    ("implementation", "PATTERN_MISMATCH"): "The generated code does not match expected patterns.",
    ("verification", "VISUAL_MISMATCH"): "The cloned page differs from the source. Adjustments needed.",
    ("verification", "DATA_INCOMPLETE"): "Some data was not extracted completely. Re-extraction may be needed.",
    ("verification", "LINK_BROKEN"): "Some links are broken or point to the wrong destination.",
    ("verification", "TEST_FAILED"): "One or more tests failed. Review the test output.",
    ("verification", "CONSOLE_ERROR"): "Console errors were detected on the cloned page.",
}


def user_friendly_message(error: BaseException) -> str:
    """Human-readable description of an error for logs and summaries."""
    if isinstance(error, ImplementationError):
        if error.code in ("TYPESCRIPT_ERROR", "LINT_ERROR"):
            label = "TypeScript" if error.code == "TYPESCRIPT_ERROR" else "Lint"
            return f"{label} error in {error.file_path}. A fix may be available."
        if error.code == "FILE_WRITE":
            return f"Failed to write file {error.file_path}. Check file permissions."
        if error.code in ("MISSING_INPUT", "PROGRESS_STATE"):
            return str(error)
    if isinstance(error, CloningError):
        friendly = _FRIENDLY_MESSAGES.get((error.kind, error.code))
        if friendly:
            return friendly
    return str(error) or "An unexpected error occurred."
