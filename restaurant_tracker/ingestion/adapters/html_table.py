"""HTML table adapter: one raw entry per data row."""

from __future__ import annotations

from bs4 import BeautifulSoup

from restaurant_tracker.ingestion.adapters.base import BaseAdapter, RawEntry


class HtmlTableAdapter(BaseAdapter):
    """
    Extracts table rows from an HTML page.

    Options:
        row_selector: CSS selector for candidate rows (default "table tr")
    """

    ADAPTER_NAME = "html_table"
    ADAPTER_VERSION = "1.0.0"

    def extract_entries(self, content: bytes, mime_type: str = "") -> list[RawEntry]:
        soup = BeautifulSoup(self.decode(content), "html.parser")
        selector = self.options.get("row_selector", "table tr")

        entries: list[RawEntry] = []
        for row in soup.select(selector):
            cells = row.find_all("td")
            # Header rows carry only <th>
            if not cells:
                continue
            values = [cell.get_text(" ", strip=True) for cell in cells]
            if not any(values):
                continue
            entries.append(values)

        return entries
