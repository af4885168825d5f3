"""
Corpus Relations – Engine Errors
=================================
Configuration errors are raised before any computation starts.
Per-document anomalies are recovered by the caller's policy, and
degenerate correlations are resolved in-band (never raised).
"""


class TextEngineError(Exception):
    """Base class for all engine errors."""


class InvalidArgument(TextEngineError, ValueError):
    """Malformed configuration: n < 1, negative thresholds, unknown modes."""


class EmptyDocument(TextEngineError):
    """A document contributes no terms, so term frequency is undefined."""

    def __init__(self, document_id):
        self.document_id = document_id
        super().__init__(f"Document {document_id!r} has no terms after filtering")


class CapacityExceeded(TextEngineError):
    """Vocabulary too large for the pairwise step."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"{size} distinct items exceed the pairwise limit of {limit}; "
            "raise min_group_frequency or reduce the n-gram size"
        )
