"""Semantic type inference for observed field values.

Classifies a JSON value into a semantic type tag:
- Primitive types (string, integer, float, boolean, null, object)
- Arrays, tagged with the type of their first element
- String formats (email, date, uuid, url, phone, color, ip)
- Numeric ranges (timestamp, year, currency, percentage)

The cascades are heuristic. Their ordering and thresholds are fixed; a price
of 1999 is reported as a year.
"""

import re
from datetime import date, datetime
from typing import Any

from .models import JsonValue


class TypeInferrer:
    """Infer semantic type tags from JSON values.

    Provides:
    - First-match string format cascade
    - Integral and fractional numeric range cascades
    - Recursive array element typing
    - JSON Schema fragments for semantic tags
    """

    PATTERNS = {
        "rfc3339": re.compile(
            r"^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$",
        ),
        "date": re.compile(r"^\d{4}-\d{2}-\d{2}$"),
        "phone": re.compile(r"^\+?[\d\s\-()]{10,}$"),
        "ip": re.compile(r"^(\d{1,3}\.){3}\d{1,3}$"),
    }

    TIMESTAMP_RANGE = (1_000_000_000, 2_000_000_000)
    YEAR_RANGE = (1900, 2100)
    CURRENCY_MAX = 1_000_000
    PERCENTAGE_RANGE = (0, 100)

    # Semantic tag -> JSON Schema fragment
    JSON_SCHEMA_TYPES: dict[str, dict[str, Any]] = {
        "string": {"type": "string"},
        "email": {"type": "string", "format": "email"},
        "date": {"type": "string", "format": "date"},
        "uuid": {"type": "string", "format": "uuid"},
        "url": {"type": "string", "format": "uri"},
        "phone": {"type": "string", "x-format": "phone"},
        "color": {"type": "string", "x-format": "color"},
        "ip": {"type": "string", "format": "ipv4"},
        "integer": {"type": "integer"},
        "timestamp": {"type": "integer", "x-format": "unix-timestamp"},
        "year": {"type": "integer", "x-format": "year"},
        "float": {"type": "number"},
        "currency": {"type": "number", "x-format": "currency"},
        "percentage": {"type": "number", "x-format": "percentage"},
        "boolean": {"type": "boolean"},
        "object": {"type": "object"},
        "array": {"type": "array"},
        "null": {"type": "null"},
    }

    def infer(self, value: JsonValue) -> str:
        """Infer the semantic type tag of a value.

        Args:
            value: Decoded JSON value

        Returns:
            Type tag, never raises
        """
        if value is None:
            return "null"

        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return "boolean"

        if isinstance(value, str):
            return self._infer_string(value)

        if isinstance(value, int):
            return self._infer_integral(value)

        if isinstance(value, float):
            if value.is_integer():
                return self._infer_integral(value)
            return self._infer_fractional(value)

        if isinstance(value, list):
            if not value:
                return "array"
            return f"array<{self.infer(value[0])}>"

        if isinstance(value, dict):
            return "object"

        return f"unknown/{type(value).__name__}"

    def _infer_string(self, value: str) -> str:
        """Run the string format cascade, first match wins."""
        if "@" in value and "." in value:
            return "email"
        if self._is_date(value):
            return "date"
        if len(value) == 36 and value.count("-") == 4:
            return "uuid"
        if value.lower().startswith("http"):
            return "url"
        if self.PATTERNS["phone"].match(value):
            return "phone"
        if value.lower().startswith(("#", "rgb", "hsl")):
            return "color"
        if self.PATTERNS["ip"].match(value):
            return "ip"
        return "string"

    def _is_date(self, value: str) -> bool:
        """Check for an RFC3339 timestamp or a plain YYYY-MM-DD date."""
        if self.PATTERNS["rfc3339"].match(value):
            normalized = value.replace("z", "Z").replace("Z", "+00:00").replace("t", "T")
            try:
                datetime.fromisoformat(normalized)
            except ValueError:
                return False
            return True

        if self.PATTERNS["date"].match(value):
            try:
                date.fromisoformat(value)
            except ValueError:
                return False
            return True

        return False

    def _infer_integral(self, value: float) -> str:
        low, high = self.TIMESTAMP_RANGE
        if low < value < high:
            return "timestamp"
        low, high = self.YEAR_RANGE
        if low <= value <= high:
            return "year"
        return "integer"

    def _infer_fractional(self, value: float) -> str:
        if 0 < value <= self.CURRENCY_MAX:
            return "currency"
        low, high = self.PERCENTAGE_RANGE
        if low <= value <= high:
            return "percentage"
        return "float"

    def to_json_schema(self, type_tag: str | None) -> dict[str, Any]:
        """Convert a semantic type tag to a JSON Schema fragment.

        Args:
            type_tag: Tag produced by ``infer`` (or None for unknown)

        Returns:
            JSON Schema dict, empty for unknown tags
        """
        if not type_tag:
            return {}

        if type_tag.startswith("array<") and type_tag.endswith(">"):
            items = self.to_json_schema(type_tag[len("array<") : -1])
            schema: dict[str, Any] = {"type": "array"}
            if items:
                schema["items"] = items
            return schema

        return dict(self.JSON_SCHEMA_TYPES.get(type_tag, {}))


_default_inferrer = TypeInferrer()


def infer_type(value: JsonValue) -> str:
    """Infer the semantic type of a value with the default inferrer."""
    return _default_inferrer.infer(value)
