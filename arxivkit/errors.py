# arxivkit/errors.py
"""Exceptions and warnings raised while querying arXiv."""


class ArxivError(Exception):
    """Base class for arxivkit errors."""


class TransportError(ArxivError):
    """Connection failure or timeout that survived every retry."""

    def __init__(self, url: str, attempts: int, cause: BaseException, timed_out: bool) -> None:
        self.url = url
        self.attempts = attempts
        self.cause = cause
        self.timed_out = timed_out
        kind = "timed out" if timed_out else "failed"
        super().__init__(f"Request to {url} {kind} after {attempts} attempt(s): {cause!r}")


class HttpStatusError(ArxivError):
    """arXiv answered with a non-success status."""

    BODY_EXCERPT = 500

    def __init__(self, url: str, status_code: int, reason: str, body: str) -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        self.body = body[: self.BODY_EXCERPT]
        super().__init__(
            f"arXiv API returned status {status_code} {reason} for URL: {url}. "
            f"Response: {self.body}"
        )


class EmptyResponseError(ArxivError):
    """Success status but nothing to parse."""

    def __init__(self, url: str, status_code: int) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"arXiv API returned empty response (status {status_code}) for URL: {url}")


class FeedParseError(ArxivError):
    """Response body is not a well-formed XML document."""


class MalformedFeedWarning(UserWarning):
    """A non-empty feed normalized to no entries and no total; likely an unexpected shape."""
