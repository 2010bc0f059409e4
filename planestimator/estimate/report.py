"""EstimateReport — Markdown and JSON rendering of an Estimate."""

from __future__ import annotations

import json
from typing import Any

from planestimator.catalog.models import Catalog
from planestimator.estimate.models import Estimate
from planestimator.estimate.selections import Selections
from planestimator.extraction.schema import FIELD_LABELS, ExtractedPlan


def _yen(value: float) -> str:
    return f"¥{value:,.0f}"


class EstimateReport:
    """Read-only view of an estimate together with the inputs behind it."""

    def __init__(
        self,
        estimate: Estimate,
        plan: ExtractedPlan | None = None,
        selections: Selections | None = None,
        catalog: Catalog | None = None,
        *,
        hide_zero: bool = True,
    ) -> None:
        self.estimate = estimate
        self.plan = plan
        self.selections = selections or Selections()
        self.catalog = catalog
        self.hide_zero = hide_zero

    def to_markdown(self) -> str:
        """Generate the itemized estimate as Markdown."""
        lines: list[str] = []

        lines.append("# 概算見積")
        lines.append("")

        if self.plan is not None and not self.plan.is_empty():
            lines.append("## 図面情報")
            lines.append("")
            lines.append("| 項目 | 値 |")
            lines.append("|------|----|")
            for field, (_wire, label) in FIELD_LABELS.items():
                value = getattr(self.plan, field)
                if value is not None:
                    lines.append(f"| {label} | {value} |")
            for key, value in self.plan.extras().items():
                if value is not None:
                    lines.append(f"| {key} | {value} |")
            lines.append("")

        if self.catalog is not None:
            chosen = self._chosen_specs()
            if chosen:
                lines.append("## 仕様")
                lines.append("")
                for category_name, option_name in chosen:
                    lines.append(f"- **{category_name}:** {option_name}")
                lines.append("")

        for group in self.estimate.groups:
            items = [
                item for item in group.items
                if not (self.hide_zero and item.ok and item.sell_price == 0)
            ]
            if not items:
                continue
            lines.append(f"## {group.name}")
            lines.append("")
            lines.append("| 項目 | 数量 | 単価 | 原価 | 利益率 | 金額 |")
            lines.append("|------|------|------|------|--------|------|")
            for item in items:
                if not item.ok:
                    lines.append(f"| {item.name} | — | — | — | — | 計算エラー: {item.error} |")
                    continue
                lines.append(
                    f"| {item.name} | {item.quantity:g} {item.unit} | {_yen(item.sell_unit_price)} "
                    f"| {_yen(item.base_cost)} | {item.margin:.0%} | {_yen(item.sell_price)} |"
                )
            lines.append(f"| **小計** | | | | | **{_yen(group.subtotal)}** |")
            lines.append("")

        lines.append(f"**合計:** {_yen(self.estimate.total)}")
        lines.append("")

        if self.estimate.errors:
            lines.append("## 計算できなかった項目")
            lines.append("")
            for item in self.estimate.errors:
                lines.append(f"- {item.name} (`{item.cost_item_id}`): {item.error}")
            lines.append("")

        return "\n".join(lines)

    def _chosen_specs(self) -> list[tuple[str, str]]:
        chosen: list[tuple[str, str]] = []
        for category in self.catalog.spec_categories:
            option = category.option(self.selections.selected(category.id) or "")
            chosen.append((category.name, option.name if option is not None else "未選択"))
        for category in self.catalog.option_categories:
            for opt in category.options:
                if self.selections.is_checked(opt.id):
                    chosen.append((category.name, opt.name))
        return chosen

    def to_json(self) -> str:
        """Return structured JSON of the estimate and its inputs."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2, default=str)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan": self.plan.to_dict() if self.plan is not None else {},
            "selections": self.selections.model_dump(),
            "estimate": self.estimate.to_dict(),
        }
