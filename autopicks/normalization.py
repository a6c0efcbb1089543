"""Canonical coercion helpers for loosely-typed listing payloads.

Data-source adapters hand over whatever their upstream returns ("$12,000",
"yes", " oh "); everything funnels through these helpers before a
:class:`~autopicks.models.RawListing` is built.
"""

from __future__ import annotations

from typing import Any

BODY_TYPE_MAP: dict[str, str] = {
    "sedan": "Sedan",
    "suv": "SUV",
    "crossover": "SUV",
    "sport utility": "SUV",
    "sport utility vehicle (suv)/multi-purpose vehicle (mpv)": "SUV",
    "hatchback": "Hatchback",
    "minivan": "Minivan",
    "truck": "Truck",
    "pickup": "Truck",
    "wagon": "Wagon",
    "coupe": "Coupe",
}

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "t"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", "f"})


def clean_numeric_string(raw: str) -> str:
    """Keep only digits, ``'.'``, and ``'-'``."""
    return "".join(c for c in raw if c.isdigit() or c in {".", "-"})


def parse_price(value: Any) -> float | None:
    """Best-effort price parsing.  Returns ``None`` for unparseable input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = clean_numeric_string(value.strip())
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def parse_int(value: Any) -> int | None:
    """Best-effort integer parsing ("12,345 mi" -> 12345)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    parsed = parse_price(value)
    return int(parsed) if parsed is not None else None


def parse_bool(value: Any) -> bool | None:
    """Map common truthy/falsy spellings; ``None`` when the flag is unknown."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def clean_text(value: Any) -> str | None:
    """Strip a string field; empty or non-string input becomes ``None``."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_state(value: Any) -> str | None:
    """Two-letter state code, upper-cased."""
    text = clean_text(value)
    return text.upper() if text else None


def normalize_vin(value: Any) -> str | None:
    """Upper-case and drop whitespace; syntax is checked by the VIN validator."""
    text = clean_text(value)
    if not text:
        return None
    return "".join(text.split()).upper()


def normalize_make(value: Any) -> str | None:
    """``"TOYOTA"``/``"toyota"`` -> ``"Toyota"``."""
    text = clean_text(value)
    return text.title() if text else None


def normalize_body_type(value: Any) -> str | None:
    """Map raw body-type strings onto a short display label."""
    text = clean_text(value)
    if not text:
        return None
    return BODY_TYPE_MAP.get(text.lower(), text)
