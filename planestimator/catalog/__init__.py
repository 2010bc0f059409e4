"""Catalog model, built-in data, persistence and admin editing."""

from planestimator.catalog.admin import AdminGate, CatalogEditor
from planestimator.catalog.models import (
    Catalog,
    CostItem,
    OptionCategory,
    OptionToggle,
    SpecCategory,
    SpecOption,
)
from planestimator.catalog.seed_data import default_catalog
from planestimator.catalog.store import CatalogStore

__all__ = [
    "AdminGate",
    "Catalog",
    "CatalogEditor",
    "CatalogStore",
    "CostItem",
    "OptionCategory",
    "OptionToggle",
    "SpecCategory",
    "SpecOption",
    "default_catalog",
]
