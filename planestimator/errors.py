"""Exception hierarchy shared by the extraction, catalog and estimate layers."""

from __future__ import annotations


class PlanEstimatorError(Exception):
    """Base class for all planestimator errors."""


class ExtractionFailure(PlanEstimatorError):
    """The extraction service was unreachable, rejected the document, or
    returned a response that could not be parsed."""


class CatalogLoadError(PlanEstimatorError):
    """A persisted catalog blob is corrupt or does not match the schema."""


class AuthFailure(PlanEstimatorError):
    """Wrong admin passphrase."""


class SelectionError(PlanEstimatorError):
    """A selection references an option outside its category."""


class FormulaEvaluationError(PlanEstimatorError):
    """A cost-item formula could not be evaluated.

    The engine catches this per line item; it never aborts a whole estimate.
    """


class FormulaSyntaxError(FormulaEvaluationError):
    """The formula text does not match the expression grammar."""

    def __init__(self, message: str, position: int = -1) -> None:
        super().__init__(message)
        self.position = position


class UnknownNameError(FormulaEvaluationError):
    """The formula references a name absent from the evaluation context."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown name '{name}'")
        self.name = name


class MissingValueError(FormulaEvaluationError):
    """The formula references a plan attribute that has no numeric value."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Attribute '{name}' has no numeric value")
        self.name = name


class DivisionByZeroError(FormulaEvaluationError):
    """The formula divides by zero."""


class PricingError(FormulaEvaluationError):
    """No unit price is available for a quantity-priced cost item."""
