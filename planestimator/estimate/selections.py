"""Selections — the user's spec choices and option toggles."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from planestimator.catalog.models import Catalog
from planestimator.errors import SelectionError


class Selections(BaseModel):
    """Two parallel mappings: ``specs`` (category id -> option id) and
    ``options`` (toggle id -> checked).

    A category missing from ``specs`` is unselected; a toggle missing from
    ``options`` is unchecked.  Mutators return a new instance.
    """

    model_config = ConfigDict(frozen=True)

    specs: dict[str, str] = Field(default_factory=dict)
    options: dict[str, bool] = Field(default_factory=dict)

    def selected(self, category_id: str) -> str | None:
        return self.specs.get(category_id)

    def is_checked(self, option_id: str) -> bool:
        return bool(self.options.get(option_id, False))

    def select_spec(self, catalog: Catalog, category_id: str, option_id: str | None) -> Selections:
        """Select *option_id* in *category_id* (``None`` clears the choice).

        Raises
        ------
        SelectionError
            Unknown category, or an option that is not a member of it.
        """
        category = catalog.spec_category(category_id)
        if category is None:
            raise SelectionError(f"Unknown spec category '{category_id}'")
        specs = dict(self.specs)
        if option_id is None:
            specs.pop(category_id, None)
        elif not category.has_option(option_id):
            raise SelectionError(
                f"Option '{option_id}' is not a member of spec category '{category_id}'"
            )
        else:
            specs[category_id] = option_id
        return self.model_copy(update={"specs": specs})

    def toggle_option(self, catalog: Catalog, option_id: str, checked: bool) -> Selections:
        """Set toggle *option_id* to *checked*."""
        if option_id not in catalog.option_ids():
            raise SelectionError(f"Unknown option '{option_id}'")
        options = dict(self.options)
        options[option_id] = bool(checked)
        return self.model_copy(update={"options": options})

    def reconcile(self, catalog: Catalog) -> Selections:
        """Drop entries the catalog no longer defines (after an admin save)."""
        specs: dict[str, str] = {}
        for cat_id, opt_id in self.specs.items():
            category = catalog.spec_category(cat_id)
            if category is not None and category.has_option(opt_id):
                specs[cat_id] = opt_id
        known = set(catalog.option_ids())
        options = {k: v for k, v in self.options.items() if k in known}
        return Selections(specs=specs, options=options)
