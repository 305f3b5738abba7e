"""CSV adapter: one raw entry per data line."""

from __future__ import annotations

import csv
import io

from restaurant_tracker.ingestion.adapters.base import BaseAdapter, RawEntry


class CsvFeedAdapter(BaseAdapter):
    """
    Extracts rows from delimited text, honouring quoted fields.

    Options:
        has_header: Skip the first row (default True)
        min_columns: Drop rows with fewer cells (default 1)
        delimiter: Field delimiter (default ",")
    """

    ADAPTER_NAME = "csv"
    ADAPTER_VERSION = "1.0.0"

    def extract_entries(self, content: bytes, mime_type: str = "") -> list[RawEntry]:
        has_header = bool(self.options.get("has_header", True))
        min_columns = int(self.options.get("min_columns", 1))
        delimiter = self.options.get("delimiter", ",")

        reader = csv.reader(io.StringIO(self.decode(content)), delimiter=delimiter)

        entries: list[RawEntry] = []
        for index, row in enumerate(reader):
            if has_header and index == 0:
                continue
            cells = [cell.strip() for cell in row]
            if not any(cells) or len(cells) < min_columns:
                continue
            entries.append(cells)

        return entries
