"""Structured field collection.

The instrumentation layer hands over fields as `(name, value)` pairs with
arbitrary runtime types. `record_field` dispatches each value to the visitor
method for its kind; `FieldCollector` turns the visited fields into the
primary message plus a JSON object payload.
"""

from __future__ import annotations

import decimal
import json
import math
import numbers
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .models import Event


MESSAGE_FIELD = "message"


class FieldVisitor(Protocol):
    """Receives one call per field, by value kind."""

    def record_str(self, name: str, value: str) -> None:
        """Record a string field."""

    def record_int(self, name: str, value: int) -> None:
        """Record an integral field."""

    def record_float(self, name: str, value: float) -> None:
        """Record a real-valued field."""

    def record_bool(self, name: str, value: bool) -> None:
        """Record a boolean field."""

    def record_debug(self, name: str, value: Any) -> None:
        """Record any other value (rendered as text)."""


def record_field(visitor: FieldVisitor, name: str, value: Any) -> None:
    """Dispatch one field to the visitor method matching its type."""
    # bool is an Integral, so it must be checked first.
    if isinstance(value, bool):
        visitor.record_bool(name, value)
    elif isinstance(value, numbers.Integral):
        visitor.record_int(name, int(value))
    elif isinstance(value, (numbers.Real, decimal.Decimal)):
        try:
            number = float(value)
        except (ValueError, OverflowError):
            # Signaling NaN, or too large for a float.
            visitor.record_debug(name, value)
        else:
            visitor.record_float(name, number)
    elif isinstance(value, str):
        visitor.record_str(name, value)
    else:
        visitor.record_debug(name, value)


def storable_text(text: str) -> str:
    """Escape lone surrogates, which UTF-8 database drivers refuse to encode."""
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


def debug_text(value: Any) -> str:
    """Best-effort textual form of a value; never raises."""
    try:
        return repr(value)
    except Exception:  # noqa: BLE001 - a broken __repr__ must not break logging
        return f"<unrepresentable {type(value).__name__}>"


class FieldCollector:
    """Visitor that splits fields into a message and a JSON payload.

    Duplicate names are last-value-wins; the key keeps the position of its
    first occurrence.
    """

    def __init__(self) -> None:
        self.message = ""
        self.values: dict[str, Any] = {}

    def _put(self, name: str, value: Any, text: str) -> None:
        if name == MESSAGE_FIELD:
            self.message = storable_text(text)
        else:
            if isinstance(value, str):
                value = storable_text(value)
            self.values[storable_text(name)] = value

    def record_str(self, name: str, value: str) -> None:
        self._put(name, value, value)

    def record_int(self, name: str, value: int) -> None:
        self._put(name, value, str(value))

    def record_float(self, name: str, value: float) -> None:
        text = repr(value)
        # nan/inf have no JSON representation.
        self._put(name, value if math.isfinite(value) else text, text)

    def record_bool(self, name: str, value: bool) -> None:
        self._put(name, value, str(value))

    def record_debug(self, name: str, value: Any) -> None:
        if name == MESSAGE_FIELD and not isinstance(value, (bytes, bytearray)):
            try:
                text = str(value)
            except Exception:  # noqa: BLE001 - fall back to repr below
                text = debug_text(value)
        else:
            text = debug_text(value)
        self._put(name, text, text)

    def structured_json(self) -> str:
        """Serialize the collected fields as a compact JSON object."""
        return json.dumps(self.values, separators=(",", ":"), ensure_ascii=False)

    def finish(self) -> tuple[str, str]:
        """Return `(message, structured_json)`."""
        return self.message, self.structured_json()


def collect_fields(event: Event) -> tuple[str, str]:
    """Run a fresh collector over an event's fields."""
    collector = FieldCollector()
    event.record(collector)
    return collector.finish()
