"""Catalog models — spec categories, option categories and priced cost items.

The persisted layout uses camelCase keys (``profitMargin``,
``specCategory``...).  Every model accepts both the field name and its alias
so records can be built from Python code or loaded from the stored blob.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from planestimator.config import CATALOG_SCHEMA_VERSION, DEFAULT_PROFIT_MARGIN

PricingMode = Literal["quantity", "amount"]


class _CatalogModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_dict(self) -> dict:
        """Return the persisted (camelCase) representation."""
        return self.model_dump(mode="json", by_alias=True)


class SpecOption(_CatalogModel):
    """One mutually exclusive choice inside a :class:`SpecCategory`."""

    id: str
    name: str
    adjustment_text: Optional[str] = Field(default=None, alias="adjustmentText")
    """Display note shown next to the choice, e.g. '+¥450,000'."""

    adjustment: float = 0.0
    """Value the category id takes in formulas while this option is selected."""


class SpecCategory(_CatalogModel):
    """A choice group where exactly one option may be selected."""

    id: str
    name: str
    options: list[SpecOption] = Field(default_factory=list)
    neutral_value: float = Field(default=0.0, alias="neutralValue")
    """Value the category id takes in formulas while nothing is selected."""

    def option(self, option_id: str) -> SpecOption | None:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    def has_option(self, option_id: str) -> bool:
        return self.option(option_id) is not None


class OptionToggle(_CatalogModel):
    """An independent add-on that is either checked or not."""

    id: str
    name: str
    cost_text: str = Field(default="", alias="costText")


class OptionCategory(_CatalogModel):
    """A display group of independent option toggles."""

    id: str
    name: str
    options: list[OptionToggle] = Field(default_factory=list)


class CostItem(_CatalogModel):
    """A priced line of the estimate, driven by a formula.

    ``pricing`` states what the formula yields:

    * ``"quantity"`` — an amount of ``unit``; the base cost is the quantity
      times ``unit_price`` (or the catalog's price for ``unit``).
    * ``"amount"`` — the base cost itself, in currency.
    """

    id: str
    name: str
    formula: str
    unit: str = ""
    profit_margin: float = Field(
        default=DEFAULT_PROFIT_MARGIN, ge=0.0, lt=1.0, alias="profitMargin",
    )
    spec_category: Optional[str] = Field(default=None, alias="specCategory")
    unit_price: Optional[float] = Field(default=None, alias="unitPrice")
    pricing: PricingMode = "quantity"


class Catalog(_CatalogModel):
    """The complete admin-editable catalog handed to the engine."""

    version: str = CATALOG_SCHEMA_VERSION
    cost_items: list[CostItem] = Field(default_factory=list, alias="costItems")
    spec_categories: list[SpecCategory] = Field(default_factory=list, alias="specCategories")
    option_categories: list[OptionCategory] = Field(default_factory=list, alias="optionCategories")
    unit_prices: dict[str, float] = Field(default_factory=dict, alias="unitPrices")

    def spec_category(self, category_id: str) -> SpecCategory | None:
        for cat in self.spec_categories:
            if cat.id == category_id:
                return cat
        return None

    def option_ids(self) -> list[str]:
        """All option-toggle ids, in catalog order."""
        return [opt.id for cat in self.option_categories for opt in cat.options]

    def spec_option_ids(self) -> list[str]:
        """All spec-option ids, in catalog order."""
        return [opt.id for cat in self.spec_categories for opt in cat.options]

    def unit_price_for(self, item: CostItem) -> float | None:
        """Resolve the unit price of *item*: its own override, else by unit label."""
        if item.unit_price is not None:
            return item.unit_price
        return self.unit_prices.get(item.unit)
