"""Ollama/local vision-model provider."""

from __future__ import annotations

import base64
import json
import logging
import urllib.error
import urllib.request

from planestimator.errors import ExtractionFailure
from planestimator.extraction.providers.base import ExtractionProvider

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434"
_DEFAULT_MODEL = "llava"

# Ollama only takes raster images
_IMAGE_TYPES = ("image/png", "image/jpeg", "image/webp")


class OllamaProvider(ExtractionProvider):
    """Provider that calls a local Ollama instance running a vision model."""

    def __init__(
        self,
        *,
        base_url: str = _DEFAULT_BASE_URL,
        model: str = _DEFAULT_MODEL,
        timeout: float = 120.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if Ollama is running by hitting the tags endpoint."""
        try:
            req = urllib.request.Request(f"{self.base_url}/api/tags")
            with urllib.request.urlopen(req, timeout=2) as resp:
                return resp.status == 200
        except (urllib.error.URLError, OSError, TimeoutError):
            return False

    def generate(
        self,
        document: bytes,
        mime_type: str,
        prompt: str,
        *,
        json_output: bool = False,
    ) -> str:
        if mime_type not in _IMAGE_TYPES:
            raise ExtractionFailure(f"Ollama cannot read '{mime_type}' documents.")

        body: dict = {
            "model": self.model,
            "prompt": prompt,
            "images": [base64.b64encode(document).decode("ascii")],
            "stream": False,
            "options": {
                "temperature": 0.1,
            },
        }
        if json_output:
            body["format"] = "json"

        req = urllib.request.Request(
            f"{self.base_url}/api/generate",
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                payload = json.loads(resp.read().decode("utf-8"))
        except (urllib.error.URLError, OSError, TimeoutError, json.JSONDecodeError) as exc:
            logger.debug("Ollama call failed: %s", exc)
            raise ExtractionFailure(f"Ollama call failed: {exc}") from exc

        text = payload.get("response") if isinstance(payload, dict) else None
        if not text:
            raise ExtractionFailure("Ollama returned an empty response.")
        return text
