"""
check_logstash/perfdata.py — Performance data rendering.

One entry renders as ``label=value[uom];[warn];[crit];[min];[max]``. Trailing
empty fields are dropped, empty fields in between are kept so every value
stays in its column, e.g. ``jvm.threads.count=50;;;;0``.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field

from check_logstash.threshold import Threshold

_QUOTE_CHARS = (" ", "=", "'")


def format_number(value: float) -> str:
    """Render a number the way monitoring systems parse it (no exponent, no trailing .0)."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, numbers.Integral):
        return str(int(value))
    value = float(value)
    if math.isinf(value) or math.isnan(value):
        return "U"
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        text = f"{value:.12f}".rstrip("0").rstrip(".")
    return text


def quote_label(label: str) -> str:
    if any(ch in label for ch in _QUOTE_CHARS):
        return "'" + label.replace("'", "''") + "'"
    return label


def _is_numeric(value: object) -> bool:
    return isinstance(value, numbers.Real)


@dataclass
class Perfdata:
    label: str
    value: object
    uom: str | None = None
    warn: Threshold | None = None
    crit: Threshold | None = None
    min: float | None = None
    max: float | None = None

    @property
    def renderable(self) -> bool:
        return _is_numeric(self.value)

    def __str__(self) -> str:
        if not self.renderable:
            raise ValueError(f"perfdata '{self.label}' has a non-numeric value: {self.value!r}")

        fields = [
            f"{format_number(self.value)}{self.uom or ''}",
            str(self.warn) if self.warn is not None else "",
            str(self.crit) if self.crit is not None else "",
            format_number(self.min) if self.min is not None else "",
            format_number(self.max) if self.max is not None else "",
        ]
        while len(fields) > 1 and fields[-1] == "":
            fields.pop()
        return f"{quote_label(self.label)}=" + ";".join(fields)


@dataclass
class PerfdataList:
    entries: list[Perfdata] = field(default_factory=list)

    def add(self, entry: Perfdata) -> None:
        self.entries.append(entry)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __str__(self) -> str:
        # Textual values (e.g. node status "green") have no perfdata form
        return " ".join(str(p) for p in self.entries if p.renderable)
