"""Extraction-result adapter.

:func:`normalize` fills the floor height the extraction service commonly
leaves blank, inferring it from the floor count.  :func:`numeric_attributes`
produces the numeric view of a plan that cost formulas evaluate against.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Any

from planestimator.config import (
    DEFAULT_SINGLE_STORY_HEIGHT,
    DEFAULT_TWO_STORY_HEIGHT,
    SINGLE_STORY_MARKERS,
    TWO_STORY_MARKERS,
)
from planestimator.extraction.schema import FIELD_LABELS, ExtractedPlan

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
# "1階", "2F" style floor labels inside a height description
_FLOOR_LABEL_RE = re.compile(r"\d+\s*(?:階|[Ff](?![a-zA-Z]))")
_THOUSANDS_RE = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")

# Names derived from several fields rather than read from one
DERIVED_ATTRIBUTES = ("floors", "floorHeightTotal")


def _story_kind(floor_count: Any) -> int | None:
    """Return 2 for a two-story marker, 1 for single-story, else None."""
    if floor_count is None:
        return None
    if isinstance(floor_count, (int, float)):
        return int(floor_count) if int(floor_count) in (1, 2) else None
    text = str(floor_count)
    if any(marker in text for marker in TWO_STORY_MARKERS):
        return 2
    if any(marker in text for marker in SINGLE_STORY_MARKERS):
        return 1
    return None


def normalize(raw: ExtractedPlan) -> ExtractedPlan:
    """Fill an absent floor height from the floor count.

    Pure and idempotent: only a genuinely absent floor height is filled,
    every other field passes through unchanged.
    """
    if raw.floor_height is not None:
        return raw

    kind = _story_kind(raw.floor_count)
    if kind == 2:
        height = DEFAULT_TWO_STORY_HEIGHT
    elif kind == 1:
        height = DEFAULT_SINGLE_STORY_HEIGHT
    else:
        return raw

    logger.debug("Inferred floor height %r from floor count %r", height, raw.floor_count)
    return raw.model_copy(update={"floor_height": height})


def _clean(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    return _THOUSANDS_RE.sub("", text)


def parse_number(value: Any) -> float | None:
    """First number in *value*, tolerating full-width digits and units."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    m = _NUMBER_RE.search(_clean(str(value)))
    return float(m.group()) if m else None


def parse_heights(value: Any) -> list[float]:
    """Per-floor heights (mm) from a description such as '１階3000㎜, 2階2850㎜'."""
    if value is None:
        return []
    if isinstance(value, (int, float)):
        return [float(value)]
    text = _FLOOR_LABEL_RE.sub(" ", _clean(str(value)))
    return [float(n) for n in _NUMBER_RE.findall(text)]


def numeric_attributes(plan: ExtractedPlan) -> dict[str, float | None]:
    """Numeric view of *plan*, keyed by wire name.

    Every known attribute is present; ``None`` marks an attribute that is
    absent or carries no number.  Extra attributes are included when they
    parse as numbers.
    """
    attrs: dict[str, float | None] = {}
    for field, (wire, _label) in FIELD_LABELS.items():
        attrs[wire] = parse_number(getattr(plan, field))

    # A written number ("12階建て") wins; markers only cover "平屋" / "二階"
    floors = attrs["floorCount"]
    if floors is None:
        kind = _story_kind(plan.floor_count)
        floors = float(kind) if kind is not None else None
    attrs["floorCount"] = floors
    attrs["floors"] = floors

    heights = parse_heights(plan.floor_height)
    attrs["floorHeight"] = heights[0] if heights else None
    attrs["floorHeightTotal"] = sum(heights) if heights else None

    for key, value in plan.extras().items():
        if key in attrs:
            continue
        number = parse_number(value)
        if number is not None:
            attrs[key] = number
    return attrs
