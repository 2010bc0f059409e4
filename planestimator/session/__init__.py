"""Presentation/session layer."""

from planestimator.session.controller import EstimatorSession, build_provider

__all__ = ["EstimatorSession", "build_provider"]
