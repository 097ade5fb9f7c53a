"""Exception classes for the rewrite pipeline."""


class DocRewriteError(Exception):
    """Base exception for the rewrite pipeline."""
    pass


class InputError(DocRewriteError):
    """Raised when caller input is rejected before any remote call.

    Covers a blank instruction, an empty or unordered selection and an
    invalid ``max_words``.
    """
    pass


class TransformError(DocRewriteError):
    """Raised when the rewrite service fails for a single chunk."""

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class ConsistencyError(DocRewriteError):
    """Raised when an internal invariant is violated."""
    pass
