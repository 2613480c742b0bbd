"""
Error taxonomy for the WordDex core.

Only two kinds are ever shown to the user:
- LanguageMismatchError: forced-language validation failed
- ProviderError: the external translator was unreachable or errored

StorageUnavailableError is raised only when a counter runs fail-closed.
Malformed annotations are never raised; see ``worddex.ruby.AnnotationIssue``.
"""

from __future__ import annotations


class WordDexError(Exception):
    """Base class for all WordDex errors."""


class LanguageMismatchError(WordDexError):
    """Input text does not contain the script of the forced language."""

    def __init__(self, expected: str, detected: str = "unknown"):
        self.expected = expected
        self.detected = detected
        super().__init__(
            f"Expected {expected} text but detected {detected}. "
            f"Edit the text or change the forced language."
        )


class ProviderError(WordDexError):
    """The translation provider failed or timed out."""

    def __init__(self, message: str, provider: str = "", retryable: bool = True):
        self.provider = provider
        self.retryable = retryable
        super().__init__(message)


class StorageUnavailableError(WordDexError):
    """Counter state could not be read or written."""

    def __init__(self, key: str, cause: Exception | None = None):
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Storage unavailable for '{key}'{detail}")
