"""Evaluation context — the flat name -> number mapping formulas read.

Names come from three places, in this order:

1. plan attributes (wire names such as ``baseArea``, plus ``floors`` and
   ``floorHeightTotal``); ``None`` when the plan has no value;
2. spec categories: the category id maps to the selected option's
   ``adjustment`` or to the category's ``neutral_value`` when unselected, and
   every spec option id maps to 1 when selected, else 0;
3. option toggles: 1 when checked, else 0.

A later source shadows an earlier one with the same name.
"""

from __future__ import annotations

import logging

from planestimator.catalog.models import Catalog
from planestimator.errors import FormulaEvaluationError
from planestimator.estimate.formula import parse_formula
from planestimator.estimate.selections import Selections
from planestimator.extraction.normalize import DERIVED_ATTRIBUTES, numeric_attributes
from planestimator.extraction.schema import FIELD_LABELS, ExtractedPlan

logger = logging.getLogger(__name__)


def build_context(
    plan: ExtractedPlan,
    selections: Selections,
    catalog: Catalog,
) -> dict[str, float | None]:
    """Build the evaluation context for one calculation."""
    context: dict[str, float | None] = dict(numeric_attributes(plan))

    def _put(name: str, value: float) -> None:
        if name in context:
            logger.debug("Context name '%s' shadowed by catalog entry", name)
        context[name] = value

    for category in catalog.spec_categories:
        chosen = category.option(selections.selected(category.id) or "")
        _put(category.id, chosen.adjustment if chosen is not None else category.neutral_value)
        for opt in category.options:
            _put(opt.id, 1.0 if chosen is not None and chosen.id == opt.id else 0.0)

    for option_id in catalog.option_ids():
        _put(option_id, 1.0 if selections.is_checked(option_id) else 0.0)

    return context


def context_names(catalog: Catalog) -> set[str]:
    """Every name a formula may reference under *catalog*."""
    names = {wire for wire, _label in FIELD_LABELS.values()}
    names.update(DERIVED_ATTRIBUTES)
    names.update(cat.id for cat in catalog.spec_categories)
    names.update(catalog.spec_option_ids())
    names.update(catalog.option_ids())
    return names


def check_formulas(catalog: Catalog) -> dict[str, list[str]]:
    """Static check of every cost-item formula.

    Returns ``{cost_item_id: [problem, ...]}`` for items whose formula does
    not parse or references unknown names.  Extra plan attributes are not
    known ahead of extraction, so they are reported here as well.
    """
    known = context_names(catalog)
    problems: dict[str, list[str]] = {}
    for item in catalog.cost_items:
        try:
            formula = parse_formula(item.formula)
        except FormulaEvaluationError as exc:
            problems.setdefault(item.id, []).append(str(exc))
            continue
        for name in sorted(formula.names() - known):
            problems.setdefault(item.id, []).append(f"Unknown name '{name}'")
    return problems
