"""Exception hierarchy for ingestion and question answering."""

from __future__ import annotations


class CodeQAError(Exception):
    """Base class for user-facing failures."""


class InvalidUrlError(CodeQAError):
    """Repository URL does not look like github.com/<owner>/<repo>."""


class InvalidArchiveError(CodeQAError):
    """Uploaded blob could not be opened as a ZIP archive."""


class RepoNotFoundError(CodeQAError):
    """Repository metadata lookup returned 404 (missing or private)."""


class RateLimitedError(CodeQAError):
    """Upstream refused the request with 403."""


class RemoteError(CodeQAError):
    """Any other upstream failure during metadata or tree lookup."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyCorpusError(CodeQAError):
    """Acquisition finished with zero usable files."""


class IngestionCancelledError(CodeQAError):
    """A newer ingestion superseded this one."""


class LLMError(CodeQAError):
    """Reasoning engine call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MissingApiKeyError(LLMError):
    """No API key is configured for a provider that needs one."""


class MalformedResponseError(CodeQAError):
    """Reasoning engine output could not be parsed as an answer."""
