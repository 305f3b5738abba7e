"""
Adapter Registry Module
=======================

Central registry for format adapters.
Provides factory functions for creating adapters by source format.
"""

from __future__ import annotations

from typing import Any, Type

from restaurant_tracker.core.enums import SourceFormat
from restaurant_tracker.ingestion.adapters.base import BaseAdapter, RawEntry
from restaurant_tracker.ingestion.adapters.csv_feed import CsvFeedAdapter
from restaurant_tracker.ingestion.adapters.html_table import HtmlTableAdapter
from restaurant_tracker.ingestion.adapters.json_feed import JsonFeedAdapter
from restaurant_tracker.ingestion.adapters.xml_feed import XmlFeedAdapter

# Registry mapping source formats to their adapter classes
ADAPTER_REGISTRY: dict[str, Type[BaseAdapter]] = {
    SourceFormat.HTML_TABLE.value: HtmlTableAdapter,
    SourceFormat.XML.value: XmlFeedAdapter,
    SourceFormat.CSV.value: CsvFeedAdapter,
    SourceFormat.JSON.value: JsonFeedAdapter,
}


def get_adapter(
    source_format: SourceFormat | str,
    options: dict[str, Any] | None = None,
) -> BaseAdapter | None:
    """
    Get an adapter instance for a source format.

    Args:
        source_format: Format name (e.g., "xml")
        options: Optional adapter options

    Returns:
        Adapter instance, or None if the format is unknown
    """
    key = source_format.value if isinstance(source_format, SourceFormat) else source_format
    adapter_class = ADAPTER_REGISTRY.get(key)
    if adapter_class is None:
        return None
    return adapter_class(options)


def list_adapters() -> list[str]:
    """
    List all registered adapter names.

    Returns:
        List of adapter format names
    """
    return list(ADAPTER_REGISTRY.keys())


def get_adapter_info(source_format: str) -> dict[str, str] | None:
    """
    Get information about an adapter.

    Args:
        source_format: Format name

    Returns:
        Dict with adapter info, or None if not found
    """
    adapter_class = ADAPTER_REGISTRY.get(source_format)
    if adapter_class is None:
        return None

    return {
        "name": adapter_class.ADAPTER_NAME,
        "version": adapter_class.ADAPTER_VERSION,
        "class": adapter_class.__name__,
    }


__all__ = [
    # Registry functions
    "get_adapter",
    "list_adapters",
    "get_adapter_info",
    "ADAPTER_REGISTRY",
    # Base classes
    "BaseAdapter",
    "RawEntry",
    # Concrete adapters
    "CsvFeedAdapter",
    "HtmlTableAdapter",
    "JsonFeedAdapter",
    "XmlFeedAdapter",
]
