"""Plan extraction — provider boundary, result schema and normalization."""

from planestimator.extraction.normalize import normalize, numeric_attributes
from planestimator.extraction.schema import ExtractedPlan
from planestimator.extraction.service import PlanExtractor

__all__ = ["ExtractedPlan", "PlanExtractor", "normalize", "numeric_attributes"]
