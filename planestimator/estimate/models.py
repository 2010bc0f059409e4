"""Estimate output models.

All models are frozen: an Estimate is produced whole by the engine and
replaced whole by the next calculation.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

LineStatus = Literal["ok", "error"]


class LineItem(BaseModel):
    """One priced (or failed) cost item.

    For quantity-priced items ``quantity`` is the formula value and
    ``unit_price`` comes from the catalog.  For amount-priced items the
    formula value is the cost itself, recorded as one unit at that price.
    """

    model_config = ConfigDict(frozen=True)

    cost_item_id: str
    name: str
    unit: str = ""
    pricing: str = "quantity"
    quantity: float = 0.0
    unit_price: float = 0.0
    base_cost: float = 0.0
    margin: float = 0.0
    sell_unit_price: float = 0.0
    sell_price: float = 0.0
    status: LineStatus = "ok"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def subtotal(self) -> float:
        """Contribution to the estimate total (zero for a failed item)."""
        return self.sell_price if self.ok else 0.0


class EstimateGroup(BaseModel):
    """Line items sharing a spec-category link."""

    model_config = ConfigDict(frozen=True)

    category_id: str
    name: str
    items: tuple[LineItem, ...] = ()
    subtotal: float = 0.0


class Estimate(BaseModel):
    """The itemized estimate returned by the engine."""

    model_config = ConfigDict(frozen=True)

    groups: tuple[EstimateGroup, ...] = ()
    total: float = 0.0

    @property
    def line_items(self) -> list[LineItem]:
        """All line items in catalog order within group order."""
        return [item for group in self.groups for item in group.items]

    @property
    def errors(self) -> list[LineItem]:
        """Line items excluded from the total because their formula failed."""
        return [item for item in self.line_items if not item.ok]

    def group(self, category_id: str) -> EstimateGroup | None:
        for g in self.groups:
            if g.category_id == category_id:
                return g
        return None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
