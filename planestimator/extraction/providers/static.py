"""Static provider — canned responses, no external service."""

from __future__ import annotations

import json
from typing import Any

from planestimator.extraction.providers.base import ExtractionProvider


class StaticProvider(ExtractionProvider):
    """Provider that answers every request with the same response.

    Used for offline demos and tests.  Every call is recorded in
    :attr:`calls` as ``(mime_type, prompt, json_output)``.
    """

    def __init__(
        self,
        attributes: dict[str, Any] | None = None,
        *,
        text: str | None = None,
    ) -> None:
        self.attributes = attributes or {}
        self.text = text
        self.calls: list[tuple[str, str, bool]] = []

    def is_available(self) -> bool:
        return True

    def generate(
        self,
        document: bytes,
        mime_type: str,
        prompt: str,
        *,
        json_output: bool = False,
    ) -> str:
        self.calls.append((mime_type, prompt, json_output))
        if self.text is not None:
            return self.text
        return json.dumps(self.attributes, ensure_ascii=False)
