"""Tests for prompt building, the Gemini client and analysis parsing."""

from __future__ import annotations

import asyncio
import json
from datetime import date

import httpx
import pytest

from fitassess.errors import MalformedAnalysisError, ReportGenerationError
from fitassess.gemini_client import GeminiClient
from fitassess.report import (
	ANALYSIS_SCHEMA,
	ReportClient,
	build_comparative_prompt,
	build_initial_prompt,
	format_prompt_date,
	parse_analysis,
)
from fitassess.settings import settings


@pytest.fixture(autouse=True)
def ai_studio(monkeypatch):
	monkeypatch.setattr(settings, "gemini_provider", "ai_studio")
	monkeypatch.setattr(settings, "gemini_base_url", None)
	monkeypatch.setattr(settings, "gemini_model", "gemini-2.5-flash")


def gemini_envelope(text: str) -> dict:
	return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def report_client(handler) -> ReportClient:
	transport = httpx.MockTransport(handler)
	return ReportClient(lambda: GeminiClient(api_key="test-key", transport=transport), temperature=0.5)


# ── Prompts ─────────────────────────────────────────────────


class TestPrompts:
	def test_initial_prompt_describes_member(self, make_measurement):
		prompt = build_initial_prompt(make_measurement(instructor_name="Coach Lee", supplements="whey"))
		assert "Name: Ana" in prompt
		assert "Weight: 62.5 kg" in prompt
		assert "Body fat: 27.4%" in prompt
		assert "Assessed by: Coach Lee" in prompt
		assert "Current supplements: whey" in prompt
		assert "Weight loss" in prompt
		assert "comparativeAnalysis" not in prompt

	def test_optional_lines_are_left_out(self, make_measurement):
		prompt = build_initial_prompt(make_measurement(activity_level=None))
		assert "Assessed by" not in prompt
		assert "Physical activity level" not in prompt
		assert "Health conditions" not in prompt

	def test_action_plan_date_defaults_to_today(self, make_measurement):
		assert "(today)" in build_initial_prompt(make_measurement())
		assert "(today)" in build_initial_prompt(make_measurement(assessment_date="not a date"))

	def test_action_plan_uses_assessment_date(self, make_measurement):
		assert "(01 February 2024)" in build_initial_prompt(make_measurement(assessment_date="2024-02-01"))

	def test_comparative_prompt_has_both_columns(self, make_measurement):
		prompt = build_comparative_prompt(make_measurement(weight_kg=70), make_measurement(weight_kg=72))
		assert "| Body weight | 72.0 kg | 70.0 kg |" in prompt
		assert "comparativeAnalysis" in prompt
		assert "actionPlan" in prompt

	def test_format_prompt_date(self):
		assert format_prompt_date(None) == "today"
		assert format_prompt_date(date(2025, 7, 4)) == "04 July 2025"

	def test_schema_requires_action_plan_but_not_comparison(self):
		assert "actionPlan" in ANALYSIS_SCHEMA["required"]
		assert "comparativeAnalysis" not in ANALYSIS_SCHEMA["required"]


# ── Parsing ─────────────────────────────────────────────────


class TestParseAnalysis:
	def test_plain_json(self, analysis_data):
		result = parse_analysis(json.dumps(analysis_data))
		assert result.summary == analysis_data["summary"]
		assert result.analysis[1].status == "caution"
		assert result.action_plan.focus_areas[0].title == "Nutrition"

	def test_fenced_json(self, analysis_data):
		text = "Here you go:\n```json\n" + json.dumps(analysis_data) + "\n```"
		assert parse_analysis(text).diet_plan.meals[0].name == "Breakfast"

	@pytest.mark.parametrize("text", ["", "no json here", "[1, 2, 3]"])
	def test_not_an_object(self, text):
		with pytest.raises(MalformedAnalysisError):
			parse_analysis(text)

	def test_schema_mismatch(self, analysis_data):
		analysis_data["analysis"][0]["status"] = "excellent"
		with pytest.raises(MalformedAnalysisError):
			parse_analysis(json.dumps(analysis_data))

	def test_missing_required_section(self, analysis_data):
		del analysis_data["dietPlan"]
		with pytest.raises(MalformedAnalysisError):
			parse_analysis(json.dumps(analysis_data))


# ── ReportClient over HTTP ──────────────────────────────────


class TestReportClient:
	def test_sends_schema_and_returns_result(self, make_measurement, analysis_data):
		seen = {}

		def handler(request: httpx.Request) -> httpx.Response:
			seen["url"] = request.url
			seen["body"] = json.loads(request.content)
			return httpx.Response(200, json=gemini_envelope(json.dumps(analysis_data)))

		result = asyncio.run(report_client(handler).analyze(make_measurement()))

		assert result.summary == analysis_data["summary"]
		assert seen["url"].params["key"] == "test-key"
		assert "gemini-2.5-flash:generateContent" in seen["url"].path
		config = seen["body"]["generationConfig"]
		assert config["responseMimeType"] == "application/json"
		assert config["responseSchema"] == ANALYSIS_SCHEMA
		assert config["temperature"] == 0.5

	def test_uses_comparative_prompt_with_previous(self, make_measurement, analysis_data):
		prompts = []

		def handler(request: httpx.Request) -> httpx.Response:
			prompts.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
			return httpx.Response(200, json=gemini_envelope(json.dumps(analysis_data)))

		asyncio.run(report_client(handler).analyze(make_measurement(), make_measurement(weight_kg=70)))
		assert "PREVIOUS" in prompts[0]

	def test_comparison_without_previous_is_dropped(self, make_measurement, analysis_data):
		analysis_data["comparativeAnalysis"] = {"summary": "made up", "changes": []}

		def handler(request: httpx.Request) -> httpx.Response:
			return httpx.Response(200, json=gemini_envelope(json.dumps(analysis_data)))

		result = asyncio.run(report_client(handler).analyze(make_measurement()))
		assert result.comparative_analysis is None

	def test_http_error_is_report_generation_error(self, make_measurement):
		def handler(request: httpx.Request) -> httpx.Response:
			return httpx.Response(503, json={"error": "overloaded"})

		with pytest.raises(ReportGenerationError):
			asyncio.run(report_client(handler).analyze(make_measurement()))

	def test_network_error_is_report_generation_error(self, make_measurement):
		def handler(request: httpx.Request) -> httpx.Response:
			raise httpx.ConnectError("unreachable", request=request)

		with pytest.raises(ReportGenerationError):
			asyncio.run(report_client(handler).analyze(make_measurement()))

	def test_unexpected_envelope_is_report_generation_error(self, make_measurement):
		def handler(request: httpx.Request) -> httpx.Response:
			return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

		with pytest.raises(ReportGenerationError):
			asyncio.run(report_client(handler).analyze(make_measurement()))

	def test_garbage_text_is_malformed(self, make_measurement):
		def handler(request: httpx.Request) -> httpx.Response:
			return httpx.Response(200, json=gemini_envelope("Sorry, I cannot help with that."))

		with pytest.raises(MalformedAnalysisError):
			asyncio.run(report_client(handler).analyze(make_measurement()))

	def test_missing_api_key(self, make_measurement, monkeypatch):
		monkeypatch.setattr(settings, "gemini_api_key", None)
		with pytest.raises(ReportGenerationError, match="GEMINI_API_KEY"):
			asyncio.run(ReportClient().analyze(make_measurement()))


class TestGeminiClient:
	def test_vertex_sends_key_in_header(self, monkeypatch):
		monkeypatch.setattr(settings, "gemini_provider", "vertex")
		monkeypatch.setattr(settings, "vertex_project", "demo")
		seen = {}

		def handler(request: httpx.Request) -> httpx.Response:
			seen["request"] = request
			return httpx.Response(200, json=gemini_envelope("hello"))

		async def call():
			client = GeminiClient(api_key="k", transport=httpx.MockTransport(handler))
			try:
				return await client.generate("hi")
			finally:
				await client.aclose()

		assert asyncio.run(call()) == "hello"
		request = seen["request"]
		assert request.headers["x-goog-api-key"] == "k"
		assert "key" not in request.url.params
		assert "/projects/demo/" in request.url.path
		assert "generationConfig" not in json.loads(request.content)
