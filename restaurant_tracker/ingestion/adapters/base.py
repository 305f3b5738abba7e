"""
Adapter Base Module
===================

Defines the abstract base class for format-specific adapters.
Adapters turn one upstream payload (an HTML page, an XML document, a CSV
file or a JSON response) into raw entries for the normalizer. They know
nothing about restaurant fields; the source's field mapping does.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

# A raw entry is either a row of cells or a mapping of key -> value
RawEntry = Sequence[Any] | Mapping[str, Any]


class BaseAdapter(ABC):
    """
    Abstract base class for format adapters.

    Subclasses must implement:
    - extract_entries: Parse a payload into raw entries
    """

    # Adapter identification (override in subclasses)
    ADAPTER_NAME: str = "base"
    ADAPTER_VERSION: str = "1.0.0"

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        """
        Initialize the adapter.

        Args:
            options: Adapter options from the source's `adapter_options`
        """
        self.options = options or {}

    @abstractmethod
    def extract_entries(self, content: bytes, mime_type: str = "") -> list[RawEntry]:
        """
        Extract raw entries from a payload.

        Args:
            content: Raw payload bytes
            mime_type: Content MIME type reported by the upstream

        Returns:
            Raw entries in document order (empty when the payload has none)

        Raises:
            PayloadParseError: If the payload is not of this adapter's shape
        """
        pass

    @staticmethod
    def decode(content: bytes) -> str:
        """Decode payload bytes, tolerating a UTF-8 BOM and stray bytes."""
        return content.decode("utf-8-sig", errors="replace")

    def get_info(self) -> dict[str, str]:
        """Get adapter information."""
        return {
            "name": self.ADAPTER_NAME,
            "version": self.ADAPTER_VERSION,
            "class": self.__class__.__name__,
        }
