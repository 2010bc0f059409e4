"""Estimate calculation engine.

Usage::

    from planestimator.estimate import calculate

    estimate = calculate(plan, selections, catalog)
    estimate.total

Every call recomputes the whole estimate from its inputs; nothing is cached
between calls and none of the inputs is modified.
"""

from __future__ import annotations

import logging

from planestimator.catalog.models import Catalog, CostItem
from planestimator.config import COMMON_GROUP_ID, COMMON_GROUP_NAME
from planestimator.errors import FormulaEvaluationError, PricingError
from planestimator.estimate.context import build_context
from planestimator.estimate.formula import parse_formula
from planestimator.estimate.models import Estimate, EstimateGroup, LineItem
from planestimator.estimate.selections import Selections
from planestimator.extraction.schema import ExtractedPlan

logger = logging.getLogger(__name__)


def _money(value: float) -> float:
    return round(value, 2)


def sell_price(base_cost: float, margin: float) -> float:
    """Markup-on-sell: *margin* is the fraction of the sell price that is profit."""
    if not 0.0 <= margin < 1.0:
        raise PricingError(f"Profit margin {margin} must be in [0, 1)")
    return base_cost / (1.0 - margin)


def _price_item(item: CostItem, context: dict[str, float | None], catalog: Catalog) -> LineItem:
    """Evaluate one cost item.  Raises FormulaEvaluationError on failure."""
    value = parse_formula(item.formula).evaluate(context)

    if item.pricing == "amount":
        quantity = 1.0
        unit_price = value
    else:
        price = catalog.unit_price_for(item)
        if price is None:
            raise PricingError(f"No unit price for unit '{item.unit}'")
        quantity = value
        unit_price = float(price)

    base_cost = quantity * unit_price
    sell = sell_price(base_cost, item.profit_margin)

    return LineItem(
        cost_item_id=item.id,
        name=item.name,
        unit=item.unit,
        pricing=item.pricing,
        quantity=round(quantity, 4),
        unit_price=_money(unit_price),
        base_cost=_money(base_cost),
        margin=item.profit_margin,
        sell_unit_price=_money(sell_price(unit_price, item.profit_margin)),
        sell_price=_money(sell),
    )


def _failed_item(item: CostItem, exc: FormulaEvaluationError) -> LineItem:
    return LineItem(
        cost_item_id=item.id,
        name=item.name,
        unit=item.unit,
        pricing=item.pricing,
        margin=item.profit_margin,
        status="error",
        error=str(exc),
    )


def calculate(
    plan: ExtractedPlan,
    selections: Selections,
    catalog: Catalog,
) -> Estimate:
    """Price every cost item of *catalog* against *plan* and *selections*.

    A cost item whose formula fails is kept in its group with
    ``status="error"`` and contributes nothing to the total; the rest of the
    estimate is still computed.

    Returns
    -------
    Estimate
        Groups in spec-category order followed by the common group.
    """
    context = build_context(plan, selections, catalog)
    category_ids = [cat.id for cat in catalog.spec_categories]

    # None keys the common group; no catalog id can collide with it
    grouped: dict[str | None, list[LineItem]] = {}
    for item in catalog.cost_items:
        try:
            line = _price_item(item, context, catalog)
        except FormulaEvaluationError as exc:
            logger.debug("Cost item '%s' failed: %s", item.id, exc)
            line = _failed_item(item, exc)

        group_key = item.spec_category or None
        if group_key is not None and group_key not in category_ids:
            logger.warning(
                "Cost item '%s' links to unknown spec category '%s'",
                item.id, item.spec_category,
            )
            group_key = None
        grouped.setdefault(group_key, []).append(line)

    groups: list[EstimateGroup] = []
    for cat in catalog.spec_categories:
        if cat.id in grouped:
            groups.append(_make_group(cat.id, cat.name, grouped[cat.id]))
    if None in grouped:
        groups.append(_make_group(COMMON_GROUP_ID, COMMON_GROUP_NAME, grouped[None]))

    total = sum(item.subtotal for group in groups for item in group.items)
    return Estimate(groups=tuple(groups), total=_money(total))


def _make_group(category_id: str, name: str, items: list[LineItem]) -> EstimateGroup:
    return EstimateGroup(
        category_id=category_id,
        name=name,
        items=tuple(items),
        subtotal=_money(sum(item.subtotal for item in items)),
    )


class EstimateEngine:
    """Stateless façade over :func:`calculate` with summary logging."""

    def estimate(
        self,
        plan: ExtractedPlan,
        selections: Selections,
        catalog: Catalog,
    ) -> Estimate:
        result = calculate(plan, selections, catalog)
        failed = result.errors
        if failed:
            logger.info(
                "Estimate computed with %d failed item(s): %s",
                len(failed), ", ".join(item.cost_item_id for item in failed),
            )
        else:
            logger.debug("Estimate computed: total=%.2f", result.total)
        return result
