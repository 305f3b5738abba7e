"""Enums for restaurant and ingestion fields."""

from enum import Enum


class IngestionState(str, Enum):
    """Lifecycle of the process-wide ingestion status flag."""

    NOT_STARTED = "not_started"
    PREVIEW_DONE = "preview_done"
    SEEDED = "seeded"
    TEST_DATA_LOADED = "test_data_loaded"


class SortOrder(str, Enum):
    """Orderings supported by the restaurant listing."""

    VALID_TIL = "valid_til"
    NEWEST = "newest"

    @classmethod
    def parse(cls, value: str | None) -> "SortOrder":
        """Parse a query value, falling back to NEWEST for unknown input."""
        if value:
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.NEWEST


class SourceFormat(str, Enum):
    """Upstream payload shapes understood by the adapters."""

    HTML_TABLE = "html_table"
    XML = "xml"
    CSV = "csv"
    JSON = "json"
