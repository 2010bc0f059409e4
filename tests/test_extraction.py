"""Tests for plan extraction — schema, normalization, providers and service.

All tests use the StaticProvider or mocked clients.  No external service
required.
"""

from __future__ import annotations

import asyncio
import json
from unittest.mock import MagicMock

import pytest

from planestimator.config import DEFAULT_SINGLE_STORY_HEIGHT, DEFAULT_TWO_STORY_HEIGHT
from planestimator.errors import ExtractionFailure
from planestimator.extraction import ExtractedPlan, PlanExtractor, normalize, numeric_attributes
from planestimator.extraction.normalize import parse_heights, parse_number
from planestimator.extraction.progress import ProgressReporter
from planestimator.extraction.providers.gemini import GeminiProvider
from planestimator.extraction.providers.ollama import OllamaProvider
from planestimator.extraction.providers.static import StaticProvider
from planestimator.extraction.service import parse_attributes


# ── ExtractedPlan ────────────────────────────────────────────────────────────

class TestExtractedPlan:

    def test_empty_by_default(self):
        assert ExtractedPlan().is_empty()

    def test_from_response_japanese_labels(self):
        plan = ExtractedPlan.from_response({"階数": "2階建て", "延床面積": "115.9㎡"})
        assert plan.floor_count == "2階建て"
        assert plan.total_floor_area == "115.9㎡"
        assert not plan.is_empty()

    def test_from_response_wire_names_and_extras(self):
        plan = ExtractedPlan.from_response({"baseArea": 62.5, "parking": "2台"})
        assert plan.base_area == pytest.approx(62.5)
        assert plan.extras() == {"parking": "2台"}
        assert plan.get("parking") == "2台"

    def test_blank_strings_are_absent(self):
        plan = ExtractedPlan.from_response({"階高": "  ", "階数": "平屋"})
        assert plan.floor_height is None

    def test_with_field_returns_copy(self):
        plan = ExtractedPlan(floor_count="平屋")
        edited = plan.with_field("延床面積", "80㎡")
        assert edited.total_floor_area == "80㎡"
        assert plan.total_floor_area is None

    def test_with_field_blank_clears(self):
        plan = ExtractedPlan(base_area="50")
        assert plan.with_field("baseArea", "").base_area is None

    def test_to_dict_uses_wire_names(self):
        plan = ExtractedPlan(floor_count="2階建て", base_area=50)
        assert plan.to_dict() == {"floorCount": "2階建て", "baseArea": 50.0}


# ── normalize ────────────────────────────────────────────────────────────────

class TestNormalize:

    def test_two_story_default(self):
        plan = normalize(ExtractedPlan(floor_count="2階建て"))
        assert plan.floor_height == "１階3000㎜, 2階2850㎜"
        assert plan.floor_height == DEFAULT_TWO_STORY_HEIGHT

    @pytest.mark.parametrize("floor_count", ["平屋", "1階建て", "平屋建て"])
    def test_single_story_default(self, floor_count):
        plan = normalize(ExtractedPlan(floor_count=floor_count))
        assert plan.floor_height == DEFAULT_SINGLE_STORY_HEIGHT

    def test_unknown_floor_count_left_absent(self):
        assert normalize(ExtractedPlan(floor_count="3階建て")).floor_height is None
        assert normalize(ExtractedPlan()).floor_height is None

    def test_existing_height_kept(self):
        plan = ExtractedPlan(floor_count="2階建て", floor_height="1F 2900mm")
        assert normalize(plan) is plan

    @pytest.mark.parametrize("floor_count", ["2階建て", "木造2階", "平屋", "3階建て", None])
    def test_idempotent(self, floor_count):
        once = normalize(ExtractedPlan(floor_count=floor_count, base_area="50㎡"))
        assert normalize(once) == once

    def test_other_fields_pass_through(self):
        raw = ExtractedPlan(floor_count="2階建て", base_area="62.5㎡", room_layout="4LDK")
        plan = normalize(raw)
        assert plan.base_area == "62.5㎡"
        assert plan.room_layout == "4LDK"
        assert raw.floor_height is None


# ── numeric view ─────────────────────────────────────────────────────────────

class TestNumericAttributes:

    def test_parse_number(self):
        assert parse_number("62.5㎡") == pytest.approx(62.5)
        assert parse_number("１２０㎡") == pytest.approx(120.0)
        assert parse_number("1,234.5 m2") == pytest.approx(1234.5)
        assert parse_number("不明") is None
        assert parse_number(None) is None

    def test_parse_heights(self):
        assert parse_heights(DEFAULT_TWO_STORY_HEIGHT) == [3000.0, 2850.0]
        assert parse_heights("1F: 2900mm / 2F: 2700mm") == [2900.0, 2700.0]
        assert parse_heights("3000㎜") == [3000.0]

    def test_all_known_names_present(self):
        attrs = numeric_attributes(ExtractedPlan())
        assert "baseArea" in attrs
        assert attrs["baseArea"] is None
        assert "floors" in attrs
        assert "floorHeightTotal" in attrs

    def test_derived_values(self):
        plan = normalize(ExtractedPlan(floor_count="2階建て", total_floor_area="115.9㎡"))
        attrs = numeric_attributes(plan)
        assert attrs["floors"] == 2.0
        assert attrs["floorCount"] == 2.0
        assert attrs["floorHeight"] == pytest.approx(3000.0)
        assert attrs["floorHeightTotal"] == pytest.approx(5850.0)
        assert attrs["totalFloorArea"] == pytest.approx(115.9)

    @pytest.mark.parametrize("floor_count, floors", [
        ("2階建て", 2.0),
        ("12階建て", 12.0),
        ("11階", 11.0),
        ("二階建て", 2.0),
        ("平屋", 1.0),
        ("不明", None),
    ])
    def test_floors(self, floor_count, floors):
        attrs = numeric_attributes(ExtractedPlan(floor_count=floor_count))
        assert attrs["floors"] == floors
        assert attrs["floorCount"] == floors

    def test_numeric_extras_included(self):
        plan = ExtractedPlan.from_response({"parkingSpaces": "2台", "note": "南向き"})
        attrs = numeric_attributes(plan)
        assert attrs["parkingSpaces"] == 2.0
        assert "note" not in attrs


# ── Progress ─────────────────────────────────────────────────────────────────

class TestProgressReporter:

    def test_never_decreases(self):
        seen: list[int] = []
        reporter = ProgressReporter(seen.append)
        for pct in (0, 30, 20, 150, -5):
            reporter.report(pct)
        assert seen == [0, 30, 30, 100, 100]

    def test_failing_callback_ignored(self):
        reporter = ProgressReporter(MagicMock(side_effect=RuntimeError("boom")))
        assert reporter.done() == 100


# ── Service ──────────────────────────────────────────────────────────────────

class TestParseAttributes:

    def test_bare_json(self):
        assert parse_attributes('{"階数": "平屋"}') == {"階数": "平屋"}

    def test_fenced_json(self):
        raw = '```json\n{"floorCount": "2階建て"}\n```'
        assert parse_attributes(raw) == {"floorCount": "2階建て"}

    def test_single_element_list(self):
        assert parse_attributes('[{"baseArea": 50}]') == {"baseArea": 50}

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"text"'])
    def test_unparseable(self, raw):
        with pytest.raises(ExtractionFailure):
            parse_attributes(raw)


class TestPlanExtractor:

    def test_extract_normalizes(self):
        provider = StaticProvider({"階数": "2階建て", "建築面積": "62.5㎡"})
        plan = PlanExtractor(provider).extract(b"png-bytes", "image/png")
        assert plan.floor_height == DEFAULT_TWO_STORY_HEIGHT
        assert plan.base_area == "62.5㎡"
        mime, prompt, json_output = provider.calls[0]
        assert mime == "image/png"
        assert json_output is True
        assert "floorCount" in prompt

    def test_instruction_added_to_prompt(self):
        provider = StaticProvider({})
        PlanExtractor(provider).extract(b"x", "application/pdf", instruction="2階の面積も")
        assert "2階の面積も" in provider.calls[0][1]

    def test_progress_sequence(self):
        seen: list[int] = []
        PlanExtractor(StaticProvider({"階数": "平屋"})).extract(
            b"x", "image/jpeg", on_progress=seen.append,
        )
        assert seen == sorted(seen)
        assert seen[0] == 0
        assert seen[-1] == 100

    def test_unsupported_media_type(self):
        with pytest.raises(ExtractionFailure):
            PlanExtractor(StaticProvider()).extract(b"x", "text/plain")

    def test_empty_document(self):
        with pytest.raises(ExtractionFailure):
            PlanExtractor(StaticProvider()).extract(b"", "image/png")

    def test_unparseable_response(self):
        with pytest.raises(ExtractionFailure):
            PlanExtractor(StaticProvider(text="I could not read the plan")).extract(b"x", "image/png")

    def test_analyze_returns_text(self):
        extractor = PlanExtractor(StaticProvider(text="南向きの4LDKです。"))
        assert extractor.analyze(b"x", "image/png", "間取りを説明して") == "南向きの4LDKです。"

    def test_extract_async(self):
        seen: list[int] = []
        extractor = PlanExtractor(StaticProvider({"階数": "平屋"}))
        plan = asyncio.run(extractor.extract_async(b"x", "image/webp", on_progress=seen.append))
        assert plan.floor_height == DEFAULT_SINGLE_STORY_HEIGHT
        assert seen[-1] == 100


# ── Providers ────────────────────────────────────────────────────────────────

class TestGeminiProvider:

    def test_generate_uses_client(self):
        client = MagicMock()
        client.models.generate_content.return_value.text = json.dumps({"階数": "2階建て"})
        provider = GeminiProvider(api_key="k", client=client)
        text = provider.generate(b"img", "image/png", "prompt", json_output=True)
        assert json.loads(text) == {"階数": "2階建て"}
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["contents"][1] == "prompt"

    def test_empty_response(self):
        client = MagicMock()
        client.models.generate_content.return_value.text = ""
        with pytest.raises(ExtractionFailure):
            GeminiProvider(api_key="k", client=client).generate(b"img", "image/png", "p")

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        provider = GeminiProvider()
        assert not provider.is_available()
        with pytest.raises(ExtractionFailure):
            provider.generate(b"img", "image/png", "p")


class TestOllamaProvider:

    def test_pdf_rejected(self):
        with pytest.raises(ExtractionFailure):
            OllamaProvider().generate(b"%PDF", "application/pdf", "p")

    def test_unreachable(self):
        provider = OllamaProvider(base_url="http://127.0.0.1:9", timeout=0.5)
        assert not provider.is_available()
        with pytest.raises(ExtractionFailure):
            provider.generate(b"img", "image/png", "p")
