from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import date
from numbers import Number
from typing import Any

import pandas as pd
from markupsafe import Markup

LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
LEADING_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
TAG_RE = re.compile(r"<[A-Za-z/!][^>]*>")
IMAGE_URL_RE = re.compile(r"^(https?)://[^\s/$.?#].[^\s]*", re.IGNORECASE)

BIG_NUMBER_THRESHOLD = 1e6
BIG_NUMBER_UNITS = ((1e6, "M"), (1e9, "bn"), (1e12, "T"))
DATE_FORMAT = "%a %b %d %Y"


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if not pd.api.types.is_scalar(value):
        return False
    return bool(pd.isna(value))


def cell_text(value: Any) -> str:
    """Render a cell value as an identifier string; missing cells become ``""``."""
    if is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_count(value: Any) -> int:
    """Parse the leading integer of a count cell; anything unparsable counts as zero."""
    if is_missing(value):
        return 0
    if _is_number(value):
        number = float(value)
        return int(number) if math.isfinite(number) else 0
    match = LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else 0


def parse_link_weight(value: Any) -> float | None:
    if is_missing(value):
        return None
    if _is_number(value):
        number = float(value)
        return None if math.isnan(number) else number
    match = LEADING_FLOAT_RE.match(str(value))
    return float(match.group(1)) if match else None


def make_ref_id(group_id: str, bucket: Any, has_buckets: bool) -> str:
    if not has_buckets:
        return group_id
    return f"{group_id}_{cell_text(bucket)}"


def decode_text(text: str) -> str:
    """Drop embedded tags and decode HTML entities; other text, spacing included, is kept."""
    return Markup(TAG_RE.sub("", text)).unescape()


def _scaled(value: float, unit: int) -> float:
    return float(f"{value / BIG_NUMBER_UNITS[unit][0]:.3g}")


def _format_big_number(value: float) -> str:
    magnitude = abs(value)
    unit = max(index for index, (scale, _) in enumerate(BIG_NUMBER_UNITS) if magnitude >= scale)
    scaled = _scaled(value, unit)
    # 999.5M rounds up to 1000M; report it as 1bn instead.
    if abs(scaled) >= 1000 and unit + 1 < len(BIG_NUMBER_UNITS):
        unit += 1
        scaled = _scaled(value, unit)
    suffix = BIG_NUMBER_UNITS[unit][1]
    if abs(scaled) >= 1000:
        return f"{scaled:,.0f}{suffix}"
    return f"{scaled:,.3g}{suffix}"


def format_number(value: float | int) -> str:
    if -BIG_NUMBER_THRESHOLD < value < BIG_NUMBER_THRESHOLD:
        return f"{value:,.10g}"
    return _format_big_number(float(value))


def apply_format(value: Any, fmt: str | None) -> str | None:
    if not fmt:
        return None
    try:
        return format(value, fmt)
    except (TypeError, ValueError):
        return None


def format_name(value: Any, fmt: str | None = None) -> str:
    """Display name of an entity reference.

    Precedence: explicit column format, date formatting, scale-aware numeric
    formatting, then markup-stripped text.
    """
    if is_missing(value):
        return ""
    formatted = apply_format(value, fmt)
    if formatted is not None:
        return formatted
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if _is_number(value) and not is_missing(value):
        return format_number(value)
    return decode_text(cell_text(value))


def collect_image_urls(row: Sequence[Any], indices: Sequence[int]) -> tuple[str, ...]:
    urls: list[str] = []
    for index in indices:
        raw = row[index] if 0 <= index < len(row) else None
        url = cell_text(raw)
        if url and IMAGE_URL_RE.match(url):
            urls.append(url)
    return tuple(urls)
