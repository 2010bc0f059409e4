"""PlanExtractor — main entry point for reading a plan document.

Usage::

    from planestimator.extraction import PlanExtractor

    extractor = PlanExtractor()
    plan = extractor.extract(pdf_bytes, "application/pdf")
    plan = await extractor.extract_async(png_bytes, "image/png", on_progress=print)
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from planestimator.config import SUPPORTED_MEDIA_TYPES
from planestimator.errors import ExtractionFailure
from planestimator.extraction.normalize import normalize
from planestimator.extraction.progress import ProgressCallback, ProgressReporter
from planestimator.extraction.providers.base import ExtractionProvider
from planestimator.extraction.providers.gemini import GeminiProvider
from planestimator.extraction.schema import FIELD_LABELS, ExtractedPlan

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _build_prompt(instruction: str | None = None) -> str:
    lines = [
        "あなたは住宅の間取り図・平面図を読み取るアシスタントです。",
        "添付の図面から以下の項目を読み取り、JSONオブジェクトのみを返してください。",
        "読み取れない項目は null にしてください。単位は図面の表記のまま文字列で返してください。",
        "",
    ]
    for wire, label in FIELD_LABELS.values():
        lines.append(f'- "{wire}": {label}')
    if instruction:
        lines.extend(["", f"追加の指示: {instruction}"])
    return "\n".join(lines)


def parse_attributes(raw: str) -> dict[str, Any]:
    """Decode the attribute bag from a model response.

    Accepts bare JSON or JSON wrapped in a Markdown code fence.

    Raises
    ------
    ExtractionFailure
        If the response is not a JSON object.
    """
    text = raw.strip()
    m = _FENCE_RE.match(text)
    if m:
        text = m.group(1)
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.debug("Extraction returned invalid JSON: %s", raw[:200])
        raise ExtractionFailure("抽出結果を解析できませんでした。") from exc

    if isinstance(data, list) and len(data) == 1:
        data = data[0]
    if not isinstance(data, dict):
        raise ExtractionFailure("抽出結果を解析できませんでした。")
    return data


class PlanExtractor:
    """Read plan documents through an :class:`ExtractionProvider`.

    Parameters
    ----------
    provider:
        The service to call.  Defaults to :class:`GeminiProvider`.
    """

    def __init__(self, provider: ExtractionProvider | None = None) -> None:
        self._provider = provider if provider is not None else GeminiProvider()

    @property
    def provider(self) -> ExtractionProvider:
        return self._provider

    @staticmethod
    def _check_document(document: bytes, mime_type: str) -> None:
        if mime_type not in SUPPORTED_MEDIA_TYPES:
            raise ExtractionFailure(f"Unsupported document type '{mime_type}'.")
        if not document:
            raise ExtractionFailure("The document is empty.")

    def extract(
        self,
        document: bytes,
        mime_type: str,
        *,
        instruction: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ExtractedPlan:
        """Extract structured attributes from *document*.

        The returned plan is already normalized (missing floor height
        inferred where possible).

        Raises
        ------
        ExtractionFailure
            On an unsupported or empty document, a service error, or an
            unparseable response.
        """
        progress = ProgressReporter(on_progress)
        progress.report(0)
        self._check_document(document, mime_type)
        progress.report(10)

        raw = self._provider.generate(
            document, mime_type, _build_prompt(instruction), json_output=True,
        )
        progress.report(80)

        data = parse_attributes(raw)
        try:
            plan = ExtractedPlan.from_response(data)
        except ValidationError as exc:
            raise ExtractionFailure("抽出結果の形式が不正です。") from exc

        plan = normalize(plan)
        progress.done()
        logger.debug("Extracted %d attributes", len(plan.to_dict()))
        return plan

    def analyze(
        self,
        document: bytes,
        mime_type: str,
        instruction: str,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Free-text variant: answer *instruction* about *document*."""
        progress = ProgressReporter(on_progress)
        progress.report(0)
        self._check_document(document, mime_type)
        progress.report(10)
        text = self._provider.generate(document, mime_type, instruction)
        progress.done()
        return text

    async def extract_async(
        self,
        document: bytes,
        mime_type: str,
        *,
        instruction: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ExtractedPlan:
        """Run :meth:`extract` in a worker thread.

        Progress callbacks are delivered on the calling event loop.
        """
        callback = _loop_callback(on_progress)
        return await asyncio.to_thread(
            self.extract, document, mime_type,
            instruction=instruction, on_progress=callback,
        )

    async def analyze_async(
        self,
        document: bytes,
        mime_type: str,
        instruction: str,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        callback = _loop_callback(on_progress)
        return await asyncio.to_thread(
            self.analyze, document, mime_type, instruction, on_progress=callback,
        )


def _loop_callback(on_progress: ProgressCallback | None) -> ProgressCallback | None:
    if on_progress is None:
        return None
    loop = asyncio.get_running_loop()
    return lambda pct: loop.call_soon_threadsafe(on_progress, pct)
