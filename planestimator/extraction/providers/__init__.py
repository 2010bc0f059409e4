"""Extraction provider system — abstract base + concrete providers."""

from planestimator.extraction.providers.base import ExtractionProvider
from planestimator.extraction.providers.gemini import GeminiProvider
from planestimator.extraction.providers.ollama import OllamaProvider
from planestimator.extraction.providers.static import StaticProvider

__all__ = ["ExtractionProvider", "GeminiProvider", "OllamaProvider", "StaticProvider"]
