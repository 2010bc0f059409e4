"""Estimate calculation — formula language, context, engine and report."""

from planestimator.estimate.engine import EstimateEngine, calculate
from planestimator.estimate.models import Estimate, EstimateGroup, LineItem
from planestimator.estimate.report import EstimateReport
from planestimator.estimate.selections import Selections

__all__ = [
    "Estimate",
    "EstimateEngine",
    "EstimateGroup",
    "EstimateReport",
    "LineItem",
    "Selections",
    "calculate",
]
