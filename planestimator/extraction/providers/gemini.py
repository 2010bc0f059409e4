"""Gemini provider — Google's multimodal models via the google-genai SDK."""

from __future__ import annotations

import logging
import os

import httpx
from google import genai
from google.genai import errors as gerrors
from google.genai import types

from planestimator.errors import ExtractionFailure
from planestimator.extraction.providers.base import ExtractionProvider

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gemini-2.5-flash"


class GeminiProvider(ExtractionProvider):
    """Provider that sends the document inline to a Gemini model.

    Parameters
    ----------
    api_key:
        Gemini API key.  Defaults to the ``GEMINI_API_KEY`` environment
        variable.
    model:
        Model name.
    client:
        Pre-built ``genai.Client`` (mainly for tests).
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = _DEFAULT_MODEL,
        client: genai.Client | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.environ.get("GEMINI_API_KEY", "")
        self.model = model
        self._client = client

    def is_available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise ExtractionFailure(
                    "The GEMINI_API_KEY environment variable is not set. "
                    "Please ensure it is configured."
                )
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate(
        self,
        document: bytes,
        mime_type: str,
        prompt: str,
        *,
        json_output: bool = False,
    ) -> str:
        client = self._get_client()
        config = None
        if json_output:
            config = types.GenerateContentConfig(response_mime_type="application/json")

        try:
            response = client.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=document, mime_type=mime_type),
                    prompt,
                ],
                config=config,
            )
        except gerrors.APIError as exc:
            logger.debug("Gemini call failed", exc_info=True)
            raise ExtractionFailure(f"Gemini API Error: {exc}") from exc
        except (httpx.HTTPError, OSError) as exc:
            logger.debug("Gemini unreachable", exc_info=True)
            raise ExtractionFailure(f"Gemini API unreachable: {exc}") from exc

        text = response.text
        if not text or not text.strip():
            raise ExtractionFailure("Gemini returned an empty response.")
        return text
