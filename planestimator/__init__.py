"""Plan Estimator — floor-plan extraction and formula-driven cost estimates."""

__version__ = "1.0.0"

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
from planestimator.config_manager import ConfigManager, configure_logging
from planestimator.errors import (
    AuthFailure,
    CatalogLoadError,
    ExtractionFailure,
    FormulaEvaluationError,
    PlanEstimatorError,
    SelectionError,
)
from planestimator.estimate.engine import EstimateEngine, calculate
from planestimator.estimate.models import Estimate, EstimateGroup, LineItem
from planestimator.estimate.report import EstimateReport
from planestimator.estimate.selections import Selections
from planestimator.extraction.normalize import normalize, numeric_attributes
from planestimator.extraction.schema import ExtractedPlan
from planestimator.extraction.service import PlanExtractor
from planestimator.session.controller import EstimatorSession

__all__ = [
    "__version__",
    # Catalog
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
    # Extraction
    "ExtractedPlan",
    "PlanExtractor",
    "normalize",
    "numeric_attributes",
    # Estimate
    "Estimate",
    "EstimateEngine",
    "EstimateGroup",
    "EstimateReport",
    "LineItem",
    "Selections",
    "calculate",
    # Session
    "EstimatorSession",
    # Config
    "ConfigManager",
    "configure_logging",
    # Errors
    "AuthFailure",
    "CatalogLoadError",
    "ExtractionFailure",
    "FormulaEvaluationError",
    "PlanEstimatorError",
    "SelectionError",
]
