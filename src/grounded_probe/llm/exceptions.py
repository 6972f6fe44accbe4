"""
Custom exceptions for the LLM client layer.

The client never lets these escape ``call()``: every failure is turned into
a ClassifiedResult so the escalation ladder can decide what to do next.
They exist to carry structured details between the parsing helpers and the
classifier.
"""


class GenerativeClientError(Exception):
    """
    Base exception for all LLM client errors.

    All LLM-specific exceptions inherit from this to allow catching
    any LLM-related error with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MalformedResponseError(GenerativeClientError):
    """
    Raised when a 2xx response body cannot be used.

    Examples:
    - Body is not JSON
    - Body does not match the expected candidates structure
    - candidates[0].content.parts[0].text is absent or empty

    Classified as a terminal client error (not retried), distinguishable
    from upstream 4xx by the ``malformed`` flag.
    """
    pass
