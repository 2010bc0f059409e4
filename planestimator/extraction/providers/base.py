"""Abstract extraction provider interface."""

from __future__ import annotations

import abc


class ExtractionProvider(abc.ABC):
    """Base class for vision/language services that read plan documents.

    Implementations must override :meth:`generate`, which sends one document
    plus an instruction and returns the raw response text.
    """

    @abc.abstractmethod
    def generate(
        self,
        document: bytes,
        mime_type: str,
        prompt: str,
        *,
        json_output: bool = False,
    ) -> str:
        """Send *document* with *prompt* and return the response text.

        Raises :class:`~planestimator.errors.ExtractionFailure` if the
        service is unreachable or rejects the document.
        """

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Return *True* if the provider is ready to serve requests."""
