"""ExtractedPlan — the attributes read from a floor-plan document.

Every field is optional: ``None`` means "not yet extracted" or "not
detected".  Values are kept verbatim (the extraction service returns text
such as ``"2階建て"`` or ``"62.5㎡"``); the numeric view used by formulas is
derived in :mod:`planestimator.extraction.normalize`.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

PlanValue = Optional[Union[float, str]]

# field name -> (wire name, Japanese label used in extraction prompts)
FIELD_LABELS: dict[str, tuple[str, str]] = {
    "floor_count": ("floorCount", "階数"),
    "floor_height": ("floorHeight", "階高"),
    "base_area": ("baseArea", "建築面積"),
    "total_floor_area": ("totalFloorArea", "延床面積"),
    "first_floor_area": ("firstFloorArea", "1階床面積"),
    "second_floor_area": ("secondFloorArea", "2階床面積"),
    "site_area": ("siteArea", "敷地面積"),
    "structure": ("structure", "構造"),
    "roof_shape": ("roofShape", "屋根形状"),
    "room_layout": ("roomLayout", "間取り"),
}

# Any accepted spelling -> field name
_NAME_LOOKUP: dict[str, str] = {}
for _field, (_wire, _label) in FIELD_LABELS.items():
    _NAME_LOOKUP[_field] = _field
    _NAME_LOOKUP[_wire] = _field
    _NAME_LOOKUP[_label] = _field


def resolve_field_name(key: str) -> str | None:
    """Map a field name, wire name or Japanese label to the field name."""
    return _NAME_LOOKUP.get(key.strip())


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ExtractedPlan(BaseModel):
    """Structured attributes of a floor plan.

    Unknown attributes returned by the extraction service are kept verbatim
    as extra fields.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    floor_count: PlanValue = Field(default=None, alias="floorCount")
    """Floor-count text, e.g. '2階建て' or '平屋'."""

    floor_height: PlanValue = Field(default=None, alias="floorHeight")
    """Per-floor height description, e.g. '１階3000㎜, 2階2850㎜'."""

    base_area: PlanValue = Field(default=None, alias="baseArea")
    total_floor_area: PlanValue = Field(default=None, alias="totalFloorArea")
    first_floor_area: PlanValue = Field(default=None, alias="firstFloorArea")
    second_floor_area: PlanValue = Field(default=None, alias="secondFloorArea")
    site_area: PlanValue = Field(default=None, alias="siteArea")
    structure: PlanValue = None
    roof_shape: PlanValue = Field(default=None, alias="roofShape")
    room_layout: PlanValue = Field(default=None, alias="roomLayout")

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> ExtractedPlan:
        """Build a plan from an extraction attribute bag.

        Keys may be field names, wire names or Japanese labels; blank
        strings are treated as absent.
        """
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            value = _blank_to_none(value)
            if isinstance(value, (dict, list)):
                value = str(value)
            name = resolve_field_name(str(key))
            kwargs[name or str(key)] = value
        return cls.model_validate(kwargs)

    def extras(self) -> dict[str, Any]:
        """Attributes outside the known schema."""
        return dict(self.model_extra or {})

    def is_empty(self) -> bool:
        """True when nothing has been extracted yet."""
        if any(getattr(self, name) is not None for name in FIELD_LABELS):
            return False
        return not any(v is not None for v in self.extras().values())

    def get(self, key: str) -> Any:
        """Look up a value by field name, wire name, label or extra key."""
        name = resolve_field_name(key)
        if name is not None:
            return getattr(self, name)
        return self.extras().get(key)

    def with_field(self, key: str, value: Any) -> ExtractedPlan:
        """Return a copy with one field replaced (user edit)."""
        data = self.model_dump()
        name = resolve_field_name(key) or key
        data[name] = _blank_to_none(value)
        return type(self).model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation without absent fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
