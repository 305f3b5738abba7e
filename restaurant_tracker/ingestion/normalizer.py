"""
Record Normalizer Module
========================

Turns one raw upstream entry into a canonical restaurant record, using the
source's declarative field mapping. Pure transformation: no I/O.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from restaurant_tracker.ingestion.adapters.base import RawEntry
from restaurant_tracker.ingestion.registry import FieldKey, FieldMapping


@dataclass
class NormalizedRestaurant:
    """
    Cleaned restaurant data ready for identity resolution.

    Carries every mutable field of a stored restaurant; `id`, `first_seen`
    and `new_flag` belong to the store.
    """

    name: str
    district: str | None = None
    address: str | None = None
    licence_no: str = ""
    licence_type: str | None = None
    valid_til: date | None = None

    # Expiry text as found upstream (for debugging unparseable dates)
    raw_expiry: str | None = None


@dataclass
class NormalizationResult:
    """Outcome of normalizing one raw entry."""

    record: NormalizedRestaurant | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        """Check if the entry produced a usable record."""
        return self.record is not None and not self.errors


class Normalizer:
    """
    Normalizes raw entries into canonical restaurant records.

    Handles:
    - Field lookup through ordered candidate keys (column drift)
    - Combined "LICENCE (EXPIRY)" strings
    - Whitespace cleanup and licence number compaction
    - Expiry dates in several regional formats
    """

    # Tried in order; the first that yields a valid calendar date wins
    DATE_FORMATS: tuple[str, ...] = ("%d-%m-%Y", "%d/%m/%Y", "%Y-%m-%d", "%m/%d/%Y")

    # Prefix before the first parenthesis group, and the group's content
    COMBINED_LICENCE_PATTERN = re.compile(r"^(?P<licence>[^(]*)\((?P<expiry>[^)]*)\)")

    def __init__(self, mapping: FieldMapping) -> None:
        self.mapping = mapping

    def normalize(self, raw: RawEntry) -> NormalizationResult:
        """
        Normalize a raw entry.

        Args:
            raw: Row of cells or mapping of key -> value from an adapter

        Returns:
            NormalizationResult; rejected entries carry the reasons in `errors`
        """
        mapping = self.mapping

        name = self._lookup(raw, mapping.name)
        if not name:
            return NormalizationResult(errors=["Missing restaurant name"])

        licence_no = self.compact_licence(self._lookup(raw, mapping.licence_no))
        expiry_text = self._lookup(raw, mapping.valid_til)

        combined = self._lookup(raw, mapping.licence_with_expiry)
        if combined:
            combined_licence, combined_expiry = self.split_licence_and_expiry(combined)
            licence_no = licence_no or combined_licence
            expiry_text = expiry_text or combined_expiry

        if mapping.licence_required and not licence_no:
            return NormalizationResult(errors=[f"Missing licence number for '{name}'"])

        record = NormalizedRestaurant(
            name=name,
            district=self._lookup(raw, mapping.district),
            address=self._lookup(raw, mapping.address),
            licence_no=licence_no or "",
            licence_type=self._lookup(raw, mapping.licence_type) or mapping.default_licence_type,
            valid_til=self.parse_date(expiry_text),
            raw_expiry=expiry_text,
        )
        return NormalizationResult(record=record)

    def _lookup(self, raw: RawEntry, candidates: list[FieldKey]) -> str | None:
        """Return the first non-blank value among the candidate keys."""
        for key in candidates:
            value = self._get(raw, key)
            cleaned = self._clean_string(value)
            if cleaned:
                return cleaned
        return None

    @staticmethod
    def _get(raw: RawEntry, key: FieldKey) -> Any:
        if isinstance(raw, Mapping):
            return raw.get(str(key))
        if isinstance(key, int) and -len(raw) <= key < len(raw):
            return raw[key]
        return None

    @staticmethod
    def _clean_string(value: Any) -> str | None:
        """Clean and normalize a string value."""
        if value is None:
            return None
        s = str(value).strip()
        # Normalize whitespace
        s = re.sub(r"\s+", " ", s)
        return s if s else None

    @staticmethod
    def compact_licence(value: str | None) -> str | None:
        """Remove all whitespace from a licence number."""
        if value is None:
            return None
        compact = "".join(value.split())
        return compact or None

    def split_licence_and_expiry(self, value: str) -> tuple[str | None, str | None]:
        """
        Split a combined "LICENCE (EXPIRY)" string.

        Args:
            value: e.g. "2111 80 1234 (27-09-2025)"

        Returns:
            Tuple of (compacted licence number, expiry text); the expiry is
            None when the string has no parenthesis group
        """
        match = self.COMBINED_LICENCE_PATTERN.match(value)
        if match is None:
            return self.compact_licence(value), None
        expiry = self._clean_string(match.group("expiry"))
        return self.compact_licence(match.group("licence")), expiry

    def parse_date(self, value: str | None) -> date | None:
        """
        Parse an expiry date from the formats seen upstream.

        Args:
            value: Date text, e.g. "27-09-2025", "(27/09/2025)", "2025-09-27"

        Returns:
            The date, or None when no format matches
        """
        if not value:
            return None

        text = value.replace("(", "").replace(")", "").strip()
        for fmt in self.DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return None
