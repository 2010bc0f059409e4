"""Built-in default catalog — used on first start and whenever the
persisted catalog cannot be read.

Prices are JPY for a typical two-story timber-frame house.  The data is
stored in the persisted (camelCase) layout so it travels through the same
loader as an admin-saved blob.
"""

from __future__ import annotations

import copy
from typing import Any

from planestimator.catalog.models import Catalog

# Price per unit label, used by quantity-priced items without an override
UNIT_PRICES: dict[str, float] = {
    "㎡": 3500.0,
    "式": 1.0,
}

SPEC_CATEGORIES: list[dict[str, Any]] = [
    {
        "id": "roof",
        "name": "屋根材",
        "options": [
            {"id": "roof_slate", "name": "化粧スレート", "adjustmentText": "標準", "adjustment": 0},
            {"id": "roof_galvalume", "name": "ガルバリウム鋼板", "adjustmentText": "+¥2,500/㎡", "adjustment": 2500},
            {"id": "roof_tile", "name": "陶器瓦", "adjustmentText": "+¥6,000/㎡", "adjustment": 6000},
        ],
    },
    {
        "id": "exterior",
        "name": "外壁材",
        "options": [
            {"id": "wall_siding", "name": "窯業系サイディング", "adjustmentText": "標準", "adjustment": 0},
            {"id": "wall_galvalume", "name": "ガルバリウム鋼板", "adjustmentText": "+¥1,500/㎡", "adjustment": 1500},
            {"id": "wall_plaster", "name": "塗り壁", "adjustmentText": "+¥4,000/㎡", "adjustment": 4000},
        ],
    },
    {
        "id": "insulation",
        "name": "断熱等級",
        "options": [
            {"id": "insulation_g5", "name": "断熱等級5", "adjustmentText": "標準", "adjustment": 0},
            {"id": "insulation_g6", "name": "断熱等級6", "adjustmentText": "+¥3,000/㎡", "adjustment": 3000},
            {"id": "insulation_g7", "name": "断熱等級7", "adjustmentText": "+¥6,500/㎡", "adjustment": 6500},
        ],
    },
    {
        "id": "kitchen",
        "name": "キッチン",
        "options": [
            {"id": "kitchen_standard", "name": "標準グレード", "adjustmentText": "標準", "adjustment": 0},
            {"id": "kitchen_middle", "name": "ミドルグレード", "adjustmentText": "+¥300,000", "adjustment": 300000},
            {"id": "kitchen_high", "name": "ハイグレード", "adjustmentText": "+¥800,000", "adjustment": 800000},
        ],
    },
]

OPTION_CATEGORIES: list[dict[str, Any]] = [
    {
        "id": "equipment",
        "name": "設備オプション",
        "options": [
            {"id": "solar_panel", "name": "太陽光パネル (5kW)", "costText": "+¥1,200,000"},
            {"id": "storage_battery", "name": "家庭用蓄電池", "costText": "+¥1,500,000"},
            {"id": "floor_heating", "name": "床暖房 (LDK)", "costText": "+¥450,000"},
        ],
    },
    {
        "id": "exterior_works",
        "name": "外構オプション",
        "options": [
            {"id": "carport", "name": "カーポート (2台用)", "costText": "+¥350,000"},
        ],
    },
]

# Quantity-priced items multiply the formula by a unit price; amount-priced
# items carry the price inside the formula.
COST_ITEMS: list[dict[str, Any]] = [
    {"id": "temporary", "name": "仮設工事", "formula": "totalFloorArea * 1.1", "unit": "㎡", "profitMargin": 0.2},
    {"id": "foundation", "name": "基礎工事", "formula": "baseArea", "unit": "㎡", "unitPrice": 28000},
    {"id": "framing", "name": "木工事", "formula": "totalFloorArea", "unit": "㎡", "unitPrice": 65000},
    {
        "id": "roofing", "name": "屋根工事", "formula": "baseArea * 1.3 * (7500 + roof)",
        "unit": "式", "pricing": "amount", "specCategory": "roof",
    },
    {
        "id": "exterior_wall", "name": "外壁工事", "formula": "totalFloorArea * 1.2 * (9000 + exterior)",
        "unit": "式", "pricing": "amount", "specCategory": "exterior",
    },
    {
        "id": "insulation_work", "name": "断熱工事", "formula": "totalFloorArea * (4000 + insulation)",
        "unit": "式", "pricing": "amount", "specCategory": "insulation",
    },
    {
        "id": "kitchen_unit", "name": "キッチン設備", "formula": "850000 + kitchen",
        "unit": "式", "pricing": "amount", "specCategory": "kitchen",
    },
    {"id": "solar", "name": "太陽光パネル", "formula": "solar_panel * 1200000", "unit": "式", "pricing": "amount"},
    {"id": "battery", "name": "家庭用蓄電池", "formula": "storage_battery * 1500000", "unit": "式", "pricing": "amount"},
    {"id": "floor_heating_work", "name": "床暖房工事", "formula": "floor_heating * 450000", "unit": "式", "pricing": "amount"},
    {"id": "carport_work", "name": "カーポート", "formula": "carport * 350000", "unit": "式", "pricing": "amount"},
    {"id": "site_management", "name": "現場管理費", "formula": "1", "unit": "式", "unitPrice": 500000, "profitMargin": 0.0},
]

DEFAULT_CATALOG_DATA: dict[str, Any] = {
    "version": "2",
    "costItems": COST_ITEMS,
    "specCategories": SPEC_CATEGORIES,
    "optionCategories": OPTION_CATEGORIES,
    "unitPrices": UNIT_PRICES,
}


def default_catalog() -> Catalog:
    """Return a fresh copy of the built-in catalog."""
    return Catalog.model_validate(copy.deepcopy(DEFAULT_CATALOG_DATA))
