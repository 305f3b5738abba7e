"""JSON adapter: one raw entry per record object or array."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from restaurant_tracker.core.errors import PayloadParseError
from restaurant_tracker.ingestion.adapters.base import BaseAdapter, RawEntry

# Envelope keys tried when no records_path is configured
COMMON_RECORD_KEYS = ("data", "records", "rows", "aaData", "items")


class JsonFeedAdapter(BaseAdapter):
    """
    Extracts records from a JSON response.

    The payload may be a bare list, or an object whose records live under a
    dotted `records_path` (falling back to common envelope keys).

    Options:
        records_path: Dotted path to the record list, e.g. "result.data"
    """

    ADAPTER_NAME = "json"
    ADAPTER_VERSION = "1.0.0"

    def extract_entries(self, content: bytes, mime_type: str = "") -> list[RawEntry]:
        try:
            payload = json.loads(self.decode(content))
        except json.JSONDecodeError as e:
            raise PayloadParseError(f"Invalid JSON payload: {e}") from e

        records = self._locate_records(payload)
        entries: list[RawEntry] = []
        for record in records:
            if isinstance(record, Mapping):
                entries.append({str(k): self._to_text(v) for k, v in record.items()})
            elif isinstance(record, list):
                entries.append([self._to_text(v) for v in record])
            else:
                # Kept as a one-cell row so normalization rejects and counts it
                entries.append([self._to_text(record)])
        return entries

    def _locate_records(self, payload: Any) -> list[Any]:
        """Find the record list inside the payload."""
        if isinstance(payload, list):
            return payload
        if not isinstance(payload, Mapping):
            raise PayloadParseError(f"Unexpected JSON payload type: {type(payload).__name__}")

        path = self.options.get("records_path")
        if path:
            node: Any = payload
            for part in str(path).split("."):
                if not isinstance(node, Mapping) or part not in node:
                    # Missing path means an empty page, not a malformed one
                    return []
                node = node[part]
            return node if isinstance(node, list) else []

        for key in COMMON_RECORD_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
        return []

    @staticmethod
    def _to_text(value: Any) -> str:
        if value is None:
            return ""
        return str(value)
