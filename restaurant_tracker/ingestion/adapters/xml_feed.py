"""XML adapter: one raw entry per record element."""

from __future__ import annotations

from bs4 import BeautifulSoup

from restaurant_tracker.ingestion.adapters.base import BaseAdapter, RawEntry

DEFAULT_RECORD_TAGS = ["Restaurant", "RESTAURANT", "restaurant"]


class XmlFeedAdapter(BaseAdapter):
    """
    Extracts record elements from an XML document.

    Each record becomes a mapping of child tag name to its text. Tag names
    keep their case, so field mappings list every spelling seen upstream.

    Options:
        record_tags: Element names that denote one record
    """

    ADAPTER_NAME = "xml"
    ADAPTER_VERSION = "1.0.0"

    def extract_entries(self, content: bytes, mime_type: str = "") -> list[RawEntry]:
        soup = BeautifulSoup(content, "xml")
        record_tags = self.options.get("record_tags", DEFAULT_RECORD_TAGS)

        entries: list[RawEntry] = []
        for element in soup.find_all(record_tags):
            record: dict[str, str] = {}
            for child in element.find_all(recursive=False):
                # First occurrence wins for repeated tags
                record.setdefault(child.name, child.get_text(" ", strip=True))
            if record:
                entries.append(record)

        return entries
