"""Tests for the estimate engine, selections, context and report."""

from __future__ import annotations

import json

import pytest

from planestimator.catalog.models import Catalog, CostItem, OptionCategory, OptionToggle, SpecCategory, SpecOption
from planestimator.catalog.seed_data import default_catalog
from planestimator.config import COMMON_GROUP_ID
from planestimator.errors import PricingError, SelectionError
from planestimator.estimate import EstimateEngine, EstimateReport, Selections, calculate
from planestimator.estimate.context import build_context, check_formulas
from planestimator.estimate.engine import sell_price
from planestimator.extraction import ExtractedPlan, normalize


def _roof_category() -> SpecCategory:
    return SpecCategory(
        id="roof",
        name="屋根材",
        options=[
            SpecOption(id="roof_slate", name="スレート", adjustment=0),
            SpecOption(id="roof_tile", name="陶器瓦", adjustmentText="+¥6,000/㎡", adjustment=6000),
        ],
    )


def _catalog(*items: CostItem, **kwargs) -> Catalog:
    return Catalog(cost_items=list(items), **kwargs)


# ── Pricing ──────────────────────────────────────────────────────────────────

class TestPricing:

    def test_basic_scenario(self):
        item = CostItem(id="a", name="A", formula="baseArea * 2", unit="㎡", profit_margin=0.2, unit_price=1000)
        estimate = calculate(ExtractedPlan(base_area=50), Selections(), _catalog(item))
        line = estimate.line_items[0]
        assert line.quantity == pytest.approx(100.0)
        assert line.base_cost == pytest.approx(100_000.0)
        assert line.sell_price == pytest.approx(125_000.0)
        assert line.sell_unit_price == pytest.approx(1250.0)
        assert estimate.total == pytest.approx(125_000.0)

    def test_zero_margin_passes_cost_through(self):
        item = CostItem(id="a", name="A", formula="10", unit_price=300, profit_margin=0.0)
        estimate = calculate(ExtractedPlan(base_area=1), Selections(), _catalog(item))
        assert estimate.total == pytest.approx(3000.0)

    def test_default_margin(self):
        item = CostItem(id="a", name="A", formula="1", unit_price=1000)
        assert item.profit_margin == 0.35
        estimate = calculate(ExtractedPlan(base_area=1), Selections(), _catalog(item))
        assert estimate.total == pytest.approx(1538.46, abs=0.01)

    def test_unit_price_by_label(self):
        item = CostItem(id="a", name="A", formula="baseArea", unit="㎡", profit_margin=0.0)
        catalog = _catalog(item, unit_prices={"㎡": 3500})
        estimate = calculate(ExtractedPlan(base_area=10), Selections(), catalog)
        assert estimate.total == pytest.approx(35_000.0)

    def test_item_price_overrides_label(self):
        item = CostItem(id="a", name="A", formula="baseArea", unit="㎡", unit_price=100, profit_margin=0.0)
        catalog = _catalog(item, unit_prices={"㎡": 3500})
        estimate = calculate(ExtractedPlan(base_area=10), Selections(), catalog)
        assert estimate.total == pytest.approx(1000.0)

    def test_missing_unit_price_flags_item(self):
        item = CostItem(id="a", name="A", formula="baseArea", unit="坪")
        estimate = calculate(ExtractedPlan(base_area=10), Selections(), _catalog(item))
        assert estimate.errors[0].cost_item_id == "a"
        assert estimate.total == 0.0

    def test_amount_pricing(self):
        item = CostItem(id="k", name="K", formula="850000 + 150000", unit="式", pricing="amount", profit_margin=0.0)
        line = calculate(ExtractedPlan(base_area=1), Selections(), _catalog(item)).line_items[0]
        assert line.quantity == 1.0
        assert line.base_cost == pytest.approx(1_000_000.0)

    @pytest.mark.parametrize("margin", [-0.1, 1.0, 1.5])
    def test_sell_price_rejects_bad_margin(self, margin):
        with pytest.raises(PricingError):
            sell_price(100.0, margin)

    @pytest.mark.parametrize("margin", [-0.1, 1.0])
    def test_cost_item_rejects_bad_margin(self, margin):
        with pytest.raises(ValueError):
            CostItem(id="a", name="A", formula="1", profit_margin=margin)


# ── Failure isolation ────────────────────────────────────────────────────────

class TestFailures:

    def _catalog(self) -> Catalog:
        return _catalog(
            CostItem(id="good", name="Good", formula="baseArea", unit_price=100, profit_margin=0.0),
            CostItem(id="unknown", name="Unknown", formula="nonexistent * 2", unit_price=100),
            CostItem(id="divzero", name="DivZero", formula="baseArea / (baseArea - baseArea)", unit_price=100),
            CostItem(id="missing", name="Missing", formula="siteArea * 2", unit_price=100),
        )

    def test_failed_items_flagged_and_excluded(self):
        estimate = calculate(ExtractedPlan(base_area=10), Selections(), self._catalog())
        assert {item.cost_item_id for item in estimate.errors} == {"unknown", "divzero", "missing"}
        assert estimate.total == pytest.approx(1000.0)
        assert all(item.error for item in estimate.errors)

    def test_failed_items_stay_in_group(self):
        estimate = calculate(ExtractedPlan(base_area=10), Selections(), self._catalog())
        group = estimate.group(COMMON_GROUP_ID)
        assert [item.cost_item_id for item in group.items] == ["good", "unknown", "divzero", "missing"]
        assert group.subtotal == pytest.approx(1000.0)

    def test_duplicate_ids_priced_independently(self):
        catalog = _catalog(
            CostItem(id="dup", name="First", formula="1", unit_price=100, profit_margin=0.0),
            CostItem(id="dup", name="Second", formula="2", unit_price=100, profit_margin=0.0),
        )
        estimate = calculate(ExtractedPlan(base_area=1), Selections(), catalog)
        assert [item.name for item in estimate.line_items] == ["First", "Second"]
        assert estimate.total == pytest.approx(300.0)

    def test_long_formula_priced_beside_others(self):
        catalog = _catalog(
            CostItem(id="long", name="Long", formula=" + ".join(["1"] * 3000), pricing="amount", profit_margin=0.0),
            CostItem(id="short", name="Short", formula="2", pricing="amount", profit_margin=0.0),
        )
        estimate = calculate(ExtractedPlan(base_area=1), Selections(), catalog)
        assert estimate.errors == []
        assert estimate.total == pytest.approx(3002.0)

    def test_deeply_nested_formula_flagged(self):
        catalog = _catalog(
            CostItem(id="deep", name="Deep", formula="(" * 3000 + "1" + ")" * 3000, pricing="amount"),
            CostItem(id="short", name="Short", formula="2", pricing="amount", profit_margin=0.0),
        )
        estimate = calculate(ExtractedPlan(base_area=1), Selections(), catalog)
        assert [item.cost_item_id for item in estimate.errors] == ["deep"]
        assert estimate.total == pytest.approx(2.0)


# ── Selections ───────────────────────────────────────────────────────────────

class TestSelections:

    def _catalog(self) -> Catalog:
        return _catalog(
            CostItem(
                id="roofing", name="屋根", formula="baseArea * (7500 + roof)",
                unit="式", pricing="amount", profit_margin=0.0, spec_category="roof",
            ),
            CostItem(
                id="solar", name="太陽光", formula="solar_panel * 1200000",
                unit="式", pricing="amount", profit_margin=0.0,
            ),
            spec_categories=[_roof_category()],
            option_categories=[
                OptionCategory(id="equipment", name="設備", options=[OptionToggle(id="solar_panel", name="太陽光")]),
            ],
        )

    def test_unselected_is_neutral(self):
        estimate = calculate(ExtractedPlan(base_area=10), Selections(), self._catalog())
        assert estimate.group("roof").subtotal == pytest.approx(75_000.0)

    def test_selected_adjustment(self):
        catalog = self._catalog()
        selections = Selections().select_spec(catalog, "roof", "roof_tile")
        estimate = calculate(ExtractedPlan(base_area=10), selections, catalog)
        assert estimate.group("roof").subtotal == pytest.approx(135_000.0)

    def test_toggle(self):
        catalog = self._catalog()
        plan = ExtractedPlan(base_area=10)
        off = calculate(plan, Selections(), catalog)
        on = calculate(plan, Selections().toggle_option(catalog, "solar_panel", True), catalog)
        assert on.total - off.total == pytest.approx(1_200_000.0)

    def test_select_is_exclusive(self):
        catalog = self._catalog()
        selections = Selections().select_spec(catalog, "roof", "roof_tile")
        selections = selections.select_spec(catalog, "roof", "roof_slate")
        assert selections.selected("roof") == "roof_slate"
        assert selections.select_spec(catalog, "roof", None).selected("roof") is None

    def test_select_returns_new_instance(self):
        catalog = self._catalog()
        original = Selections()
        original.select_spec(catalog, "roof", "roof_tile")
        assert original.selected("roof") is None

    def test_option_must_belong_to_category(self):
        catalog = self._catalog()
        with pytest.raises(SelectionError):
            Selections().select_spec(catalog, "roof", "solar_panel")
        with pytest.raises(SelectionError):
            Selections().select_spec(catalog, "walls", "roof_tile")
        with pytest.raises(SelectionError):
            Selections().toggle_option(catalog, "roof_tile", True)

    def test_reconcile_drops_removed_entries(self):
        catalog = self._catalog()
        selections = Selections().select_spec(catalog, "roof", "roof_tile")
        selections = selections.toggle_option(catalog, "solar_panel", True)
        reconciled = selections.reconcile(_catalog())
        assert reconciled.specs == {}
        assert reconciled.options == {}


# ── Context ──────────────────────────────────────────────────────────────────

class TestContext:

    def test_context_values(self):
        catalog = _catalog(spec_categories=[_roof_category()])
        selections = Selections().select_spec(catalog, "roof", "roof_tile")
        context = build_context(ExtractedPlan(base_area="62.5㎡"), selections, catalog)
        assert context["baseArea"] == pytest.approx(62.5)
        assert context["siteArea"] is None
        assert context["roof"] == 6000.0
        assert context["roof_tile"] == 1.0
        assert context["roof_slate"] == 0.0

    def test_neutral_value(self):
        category = _roof_category().model_copy(update={"neutral_value": 1500.0})
        context = build_context(ExtractedPlan(), Selections(), _catalog(spec_categories=[category]))
        assert context["roof"] == 1500.0

    def test_check_formulas(self):
        catalog = _catalog(
            CostItem(id="ok", name="OK", formula="baseArea * 2"),
            CostItem(id="typo", name="Typo", formula="baseAria * 2"),
            CostItem(id="broken", name="Broken", formula="(baseArea"),
        )
        problems = check_formulas(catalog)
        assert set(problems) == {"typo", "broken"}
        assert "baseAria" in problems["typo"][0]

    def test_seed_catalog_formulas_check_clean(self):
        assert check_formulas(default_catalog()) == {}


# ── Grouping and determinism ─────────────────────────────────────────────────

class TestEstimate:

    def _plan(self) -> ExtractedPlan:
        return normalize(ExtractedPlan(floor_count="2階建て", base_area="62.5㎡", total_floor_area="115.9㎡"))

    def test_group_order(self):
        catalog = default_catalog()
        estimate = calculate(self._plan(), Selections(), catalog)
        ids = [g.category_id for g in estimate.groups]
        assert ids[-1] == COMMON_GROUP_ID
        linked = [cat.id for cat in catalog.spec_categories if cat.id in ids]
        assert ids[:-1] == linked

    def test_dangling_link_goes_to_common(self):
        item = CostItem(id="a", name="A", formula="1", unit_price=1, spec_category="gone")
        estimate = calculate(ExtractedPlan(base_area=1), Selections(), _catalog(item))
        assert [g.category_id for g in estimate.groups] == [COMMON_GROUP_ID]

    def test_category_named_common_kept_apart(self):
        catalog = _catalog(
            CostItem(id="linked", name="Linked", formula="1", unit_price=10, profit_margin=0.0, spec_category="common"),
            CostItem(id="free", name="Free", formula="1", unit_price=20, profit_margin=0.0),
            spec_categories=[SpecCategory(id="common", name="共用部")],
        )
        estimate = calculate(ExtractedPlan(base_area=1), Selections(), catalog)
        assert [(g.name, [i.cost_item_id for i in g.items]) for g in estimate.groups] == [
            ("共用部", ["linked"]),
            ("共通工事", ["free"]),
        ]
        assert estimate.total == pytest.approx(30.0)

    def test_total_is_sum_of_groups(self):
        estimate = calculate(self._plan(), Selections(), default_catalog())
        assert estimate.total == pytest.approx(sum(g.subtotal for g in estimate.groups), abs=0.05)
        assert estimate.errors == []
        assert estimate.total > 0

    def test_deterministic_and_pure(self):
        catalog = default_catalog()
        plan = self._plan()
        selections = Selections().select_spec(catalog, "kitchen", "kitchen_high")
        before = catalog.model_dump()
        first = calculate(plan, selections, catalog)
        second = calculate(plan, selections, catalog)
        assert first == second
        assert catalog.model_dump() == before

    def test_upgrade_raises_total(self):
        catalog = default_catalog()
        plan = self._plan()
        base = calculate(plan, Selections(), catalog)
        upgraded = calculate(plan, Selections().select_spec(catalog, "roof", "roof_tile"), catalog)
        assert upgraded.total > base.total

    def test_engine_facade(self):
        estimate = EstimateEngine().estimate(self._plan(), Selections(), default_catalog())
        assert estimate == calculate(self._plan(), Selections(), default_catalog())


# ── Report ───────────────────────────────────────────────────────────────────

class TestReport:

    def _report(self) -> EstimateReport:
        catalog = _catalog(
            CostItem(id="a", name="基礎工事", formula="baseArea", unit="㎡", unit_price=1000, profit_margin=0.0),
            CostItem(id="b", name="壊れた項目", formula="oops", unit_price=1),
            spec_categories=[_roof_category()],
        )
        plan = ExtractedPlan(floor_count="平屋", base_area=50)
        estimate = calculate(plan, Selections(), catalog)
        return EstimateReport(estimate, plan, Selections(), catalog)

    def test_markdown(self):
        md = self._report().to_markdown()
        assert md.startswith("# 概算見積")
        assert "| 階数 | 平屋 |" in md
        assert "- **屋根材:** 未選択" in md
        assert "基礎工事" in md
        assert "**合計:** ¥50,000" in md
        assert "## 計算できなかった項目" in md

    def test_json(self):
        data = json.loads(self._report().to_json())
        assert data["plan"]["floorCount"] == "平屋"
        assert data["estimate"]["total"] == pytest.approx(50_000.0)
        assert data["selections"] == {"specs": {}, "options": {}}
