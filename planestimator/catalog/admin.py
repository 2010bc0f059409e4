"""Catalog administration — the passphrase gate and the catalog editor.

The gate compares a single shared passphrase in-process.  It is a UI
convenience that keeps casual users out of the editor; it is not part of any
trust model and protects nothing that the process itself can read.
"""

from __future__ import annotations

import hmac
import logging

from planestimator.catalog.models import Catalog, CostItem, OptionCategory, SpecCategory
from planestimator.errors import AuthFailure
from planestimator.estimate.context import check_formulas

logger = logging.getLogger(__name__)


class AdminGate:
    """Shared-passphrase gate in front of the catalog editor."""

    def __init__(self, passphrase: str) -> None:
        self._passphrase = passphrase

    def check(self, attempt: str) -> bool:
        return hmac.compare_digest(attempt.encode("utf-8"), self._passphrase.encode("utf-8"))

    def authenticate(self, attempt: str) -> None:
        """Raise :class:`AuthFailure` unless *attempt* matches the passphrase."""
        if not self.check(attempt):
            logger.info("Rejected admin passphrase")
            raise AuthFailure("パスワードが違います。")


class CatalogEditor:
    """Add / edit / remove catalog records on a private working copy.

    The source catalog is never mutated; :attr:`catalog` is the edited copy
    that the caller saves.

    Usage::

        editor = CatalogEditor(store.load())
        editor.add_cost_item(CostItem(id="x", name="X", formula="baseArea"))
        store.save(editor.catalog)
    """

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog.model_copy(deep=True)

    # -- cost items -----------------------------------------------------------

    def add_cost_item(self, item: CostItem) -> None:
        """Append *item*.  Duplicate ids are allowed and priced independently."""
        self.catalog.cost_items.append(item)

    def update_cost_item(self, item_id: str, item: CostItem) -> None:
        """Replace the first cost item with id *item_id*."""
        idx = self._index(self.catalog.cost_items, item_id)
        self.catalog.cost_items[idx] = item

    def remove_cost_item(self, item_id: str) -> CostItem:
        idx = self._index(self.catalog.cost_items, item_id)
        return self.catalog.cost_items.pop(idx)

    # -- spec categories ------------------------------------------------------

    def add_spec_category(self, category: SpecCategory) -> None:
        if any(c.id == category.id for c in self.catalog.spec_categories):
            raise ValueError(f"Spec category '{category.id}' already exists")
        self.catalog.spec_categories.append(category)

    def update_spec_category(self, category_id: str, category: SpecCategory) -> None:
        idx = self._index(self.catalog.spec_categories, category_id)
        self.catalog.spec_categories[idx] = category

    def remove_spec_category(self, category_id: str) -> SpecCategory:
        """Remove a spec category.

        Cost items still linked to it fall into the common group.
        """
        idx = self._index(self.catalog.spec_categories, category_id)
        return self.catalog.spec_categories.pop(idx)

    # -- option categories ----------------------------------------------------

    def add_option_category(self, category: OptionCategory) -> None:
        if any(c.id == category.id for c in self.catalog.option_categories):
            raise ValueError(f"Option category '{category.id}' already exists")
        self.catalog.option_categories.append(category)

    def update_option_category(self, category_id: str, category: OptionCategory) -> None:
        idx = self._index(self.catalog.option_categories, category_id)
        self.catalog.option_categories[idx] = category

    def remove_option_category(self, category_id: str) -> OptionCategory:
        idx = self._index(self.catalog.option_categories, category_id)
        return self.catalog.option_categories.pop(idx)

    # -- unit prices ----------------------------------------------------------

    def set_unit_price(self, unit: str, price: float) -> None:
        self.catalog.unit_prices[unit] = float(price)

    def remove_unit_price(self, unit: str) -> None:
        self.catalog.unit_prices.pop(unit, None)

    # -- checks ---------------------------------------------------------------

    def problems(self) -> dict[str, list[str]]:
        """Cost items whose formula would fail to parse or reference unknown
        names under the edited catalog, as ``{cost_item_id: [problem, ...]}``.
        """
        return check_formulas(self.catalog)

    @staticmethod
    def _index(records: list, record_id: str) -> int:
        for i, rec in enumerate(records):
            if rec.id == record_id:
                return i
        raise KeyError(f"No record with id '{record_id}'")
