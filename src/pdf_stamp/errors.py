"""Error types raised by the transform, compositing and rendering code."""

from __future__ import annotations

__all__ = [
    "CompositionError",
    "ConfigError",
    "InvalidGeometry",
    "MalformedPdf",
    "PageOutOfRange",
    "SerializationError",
    "StampError",
    "UnsupportedPayload",
]


class StampError(RuntimeError):
    """Base error for PDF stamping operations."""


class ConfigError(StampError):
    """Configuration value could not be parsed or is out of range."""


class InvalidGeometry(StampError):
    """Page geometry is unusable (missing or non-positive scale factor)."""


class CompositionError(StampError):
    """Raised when a signature cannot be composited onto a document."""


class MalformedPdf(CompositionError):
    """Source bytes do not parse as a PDF document."""


class PageOutOfRange(CompositionError):
    """Target page index is outside ``[0, page_count)``.

    Args:
        page_index: The rejected 0-based index.
        page_count: Number of pages in the document.
    """

    def __init__(self, page_index: int, page_count: int) -> None:
        super().__init__(
            f"Page {page_index} is out of range for document with {page_count} page(s)."
        )
        self.page_index = page_index
        self.page_count = page_count

    def __reduce__(self):
        return (type(self), (self.page_index, self.page_count))


class UnsupportedPayload(CompositionError):
    """Signature payload is neither a decodable image nor text."""


class SerializationError(CompositionError):
    """The modified document could not be written back to bytes."""
