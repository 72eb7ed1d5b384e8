from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from .errors import MalformedAnalysisError, ReportGenerationError
from .gemini_client import GeminiClient
from .schemas import AnalysisResult, MeasurementSample
from .settings import settings


logger = logging.getLogger(__name__)


GOAL_TEXT: Dict[str, str] = {
	"lose_weight": "Weight loss",
	"gain_muscle": "Muscle gain",
	"maintain": "Weight maintenance",
	"muscle_definition": "Muscle definition",
	"improve_endurance": "Improve endurance",
	"general_health": "General health and well-being",
}

ACTIVITY_TEXT: Dict[str, str] = {
	"sedentary": "Sedentary (little or no exercise)",
	"light": "Lightly active (light exercise 1-3 days/week)",
	"moderate": "Moderately active (moderate exercise 3-5 days/week)",
	"active": "Active (hard exercise 6-7 days/week)",
	"very_active": "Very active (very hard exercise, physical job)",
}

ACTION_PLAN_DAYS = 60


def _string(description: Optional[str] = None, enum: Optional[list] = None) -> Dict[str, Any]:
	node: Dict[str, Any] = {"type": "STRING"}
	if description:
		node["description"] = description
	if enum:
		node["enum"] = enum
	return node


def _string_list(description: Optional[str] = None) -> Dict[str, Any]:
	node: Dict[str, Any] = {"type": "ARRAY", "items": {"type": "STRING"}}
	if description:
		node["description"] = description
	return node


ANALYSIS_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"summary": _string("Overall summary of the assessment in 2-3 sentences."),
		"analysis": {
			"type": "ARRAY",
			"items": {
				"type": "OBJECT",
				"properties": {
					"metric": _string(),
					"value": _string(),
					"idealRange": _string(),
					"assessment": _string(),
					"status": _string(enum=["good", "caution", "needs_improvement"]),
				},
				"required": ["metric", "value", "idealRange", "assessment", "status"],
			},
		},
		"strengths": _string_list("2 to 3 strengths."),
		"areasForImprovement": _string_list("2 to 3 areas that need attention."),
		"recommendations": _string_list("3 to 4 practical recommendations."),
		"dietPlan": {
			"type": "OBJECT",
			"properties": {
				"title": _string(),
				"meals": {
					"type": "ARRAY",
					"items": {
						"type": "OBJECT",
						"properties": {
							"name": _string(),
							"time": _string("Suggested time slot, e.g. '07:00 - 08:00'."),
							"suggestions": _string_list(),
						},
						"required": ["name", "time", "suggestions"],
					},
				},
				"disclaimer": _string(),
			},
			"required": ["title", "meals", "disclaimer"],
		},
		"comparativeAnalysis": {
			"type": "OBJECT",
			"nullable": True,
			"properties": {
				"summary": _string("Summary of progress since the previous assessment."),
				"changes": {
					"type": "ARRAY",
					"items": {
						"type": "OBJECT",
						"properties": {
							"metric": _string(),
							"previousValue": _string(),
							"currentValue": _string(),
							"change": _string(),
							"assessment": _string(),
							"status": _string(enum=["positive", "negative", "neutral"]),
						},
						"required": ["metric", "previousValue", "currentValue", "change", "assessment", "status"],
					},
				},
			},
			"required": ["summary", "changes"],
		},
		"actionPlan": {
			"type": "OBJECT",
			"description": f"Personal action plan for the next {ACTION_PLAN_DAYS} days.",
			"properties": {
				"nextAssessmentDate": _string(f"Date of the next assessment, {ACTION_PLAN_DAYS} days out."),
				"focusAreas": {
					"type": "ARRAY",
					"items": {
						"type": "OBJECT",
						"properties": {
							"title": _string("Focus area, e.g. Nutrition."),
							"goals": _string_list("Goals for this area."),
						},
						"required": ["title", "goals"],
					},
				},
				"motivationalMessage": _string(),
			},
			"required": ["nextAssessmentDate", "focusAreas", "motivationalMessage"],
		},
	},
	"required": ["summary", "analysis", "strengths", "areasForImprovement", "recommendations", "dietPlan", "actionPlan"],
}


def format_prompt_date(day: Optional[date]) -> str:
	if day is None:
		return "today"
	return f"{day.day:02d} {day.strftime('%B')} {day.year}"


def _profile_lines(m: MeasurementSample) -> str:
	lines = [
		f"- Name: {m.name}",
		f"- Age: {m.age:g} years",
		f"- Sex: {m.sex}",
		f"- Height: {m.height_cm:g} cm",
		f"- Main goal: {GOAL_TEXT.get(m.goal, m.goal)}",
	]
	if m.instructor_name:
		lines.append(f"- Assessed by: {m.instructor_name}")
	if m.activity_level:
		lines.append(f"- Physical activity level: {ACTIVITY_TEXT.get(m.activity_level, m.activity_level)}")
	if m.health_conditions:
		lines.append(f"- Health conditions: {m.health_conditions}")
	if m.medical_restrictions:
		lines.append(f"- Medical/dietary restrictions: {m.medical_restrictions}")
	if m.supplements:
		lines.append(f"- Current supplements: {m.supplements}")
	return "\n".join(lines)


def _action_plan_instructions(number: int, m: MeasurementSample) -> str:
	return (
		f"{number}. Personal action plan (REQUIRED): fill the 'actionPlan' section.\n"
		f"   - nextAssessmentDate: the exact date {ACTION_PLAN_DAYS} days after the current assessment date "
		f"({format_prompt_date(m.calendar_date())}), formatted as \"DD Month YYYY\".\n"
		"   - focusAreas: 2 to 3 focus areas (e.g. Nutrition, Strength training, Cardio, Consistency and habits), "
		f"each with 2-3 specific, measurable goals for the next {ACTION_PLAN_DAYS} days based on the areas for improvement.\n"
		"   - motivationalMessage: a short personal message encouraging the student to follow the plan.\n"
	)


def build_initial_prompt(m: MeasurementSample) -> str:
	return (
		"Analyse the following gym member's body-composition data and produce a HOLISTIC, ACTIONABLE and detailed "
		"assessment plus a sample diet plan with several options. Use ALL of the profile information to personalise "
		"the analysis and recommendations.\n\n"
		"Member profile:\n"
		f"{_profile_lines(m)}\n"
		f"- Weight: {m.weight_kg:g} kg\n\n"
		"Bioimpedance data:\n"
		f"- Body fat: {m.body_fat_pct:g}%\n"
		f"- Muscle mass: {m.muscle_mass_kg:g} kg\n"
		f"- Visceral fat: level {m.visceral_fat_level:g}\n"
		f"- Body water: {m.body_water_pct:g}%\n"
		f"- Basal metabolic rate: {m.basal_metabolic_rate:g} kcal\n\n"
		"Instructions:\n"
		"1. Compute the BMI as weight (kg) / height (m)^2.\n"
		"2. For each metric (BMI, body fat, muscle mass, visceral fat, body water, BMR) give the value, an ideal range "
		"SPECIFIC to this member's age, height, weight and sex, and a concise assessment. Status is 'good' (within the "
		"ideal range), 'caution' (slightly outside) or 'needs_improvement' (well outside).\n"
		"3. Write a motivating 2-3 sentence summary.\n"
		"4. List 2-3 strengths, 2-3 areas for improvement (briefly explaining why) and 3-4 practical recommendations "
		"beyond diet (training, hydration, lifestyle).\n"
		f"{_action_plan_instructions(5, m)}"
		"6. Sample diet plan: THREE simple, different suggestions for each main meal (breakfast, lunch, dinner, snacks) "
		"plus an optional late-evening snack with 1-2 light suggestions, aligned with the goal. Give each meal a time "
		"slot such as \"07:00 - 08:00\".\n"
		"7. Include a disclaimer recommending the member consult a nutritionist.\n"
		"8. Answer strictly in the specified JSON format."
	)


def build_comparative_prompt(m: MeasurementSample, previous: MeasurementSample) -> str:
	rows = [
		("Body weight", f"{previous.weight_kg:.1f} kg", f"{m.weight_kg:.1f} kg"),
		("Body fat", f"{previous.body_fat_pct:.1f}%", f"{m.body_fat_pct:.1f}%"),
		("Muscle mass", f"{previous.muscle_mass_kg:.1f} kg", f"{m.muscle_mass_kg:.1f} kg"),
		("Visceral fat", f"level {previous.visceral_fat_level:g}", f"level {m.visceral_fat_level:g}"),
		("Body water", f"{previous.body_water_pct:.1f}%", f"{m.body_water_pct:.1f}%"),
		("Basal metabolic rate", f"{previous.basal_metabolic_rate:g} kcal", f"{m.basal_metabolic_rate:g} kcal"),
	]
	table = "| Metric | Previous assessment | Current assessment |\n|---|---|---|\n"
	table += "\n".join(f"| {name} | {before} | {after} |" for name, before, after in rows)
	return (
		"Analyse the PROGRESS of a gym member by comparing the CURRENT assessment with the PREVIOUS one. Produce a "
		"HOLISTIC, ACTIONABLE and COMPARATIVE assessment plus a sample diet plan.\n\n"
		"Member profile:\n"
		f"{_profile_lines(m)}\n\n"
		"Bioimpedance data (comparison):\n"
		f"{table}\n\n"
		"Instructions:\n"
		"1. Main analysis (current data): compute the BMI and, for each metric, give the value, the ideal range, an "
		"assessment and a status ('good', 'caution', 'needs_improvement').\n"
		"2. Comparative analysis (REQUIRED): fill the 'comparativeAnalysis' section.\n"
		"   - summary: a motivating 2-4 sentence paragraph on overall progress since the last assessment, tied to the goal.\n"
		"   - changes: one entry per metric in the table with 'metric', 'previousValue', 'currentValue', 'change' "
		"(e.g. \"+1.2 kg\" or \"-0.8%\"), a concise 'assessment' and a 'status' ('positive', 'negative', 'neutral') "
		"judged against the member's goal.\n"
		"3. Summary, strengths, areas for improvement and recommendations describe the CURRENT data but are INFORMED "
		"BY THE COMPARISON.\n"
		f"{_action_plan_instructions(4, m)}"
		"5. Diet plan and disclaimer as usual, aligned with the goal and the current data.\n"
		"6. Answer strictly in the specified JSON format."
	)


def _extract_json_object(text: str) -> Any:
	try:
		return json.loads(text)
	except ValueError:
		pass
	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			return json.loads(code_block.group(1))
		except ValueError:
			pass
	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last != -1 and last > first:
		try:
			return json.loads(text[first : last + 1])
		except ValueError:
			pass
	raise MalformedAnalysisError("model did not return valid JSON")


def parse_analysis(text: str) -> AnalysisResult:
	data = _extract_json_object(text or "")
	if not isinstance(data, dict):
		raise MalformedAnalysisError("model returned JSON that is not an object")
	try:
		return AnalysisResult.model_validate(data)
	except ValidationError as err:
		raise MalformedAnalysisError(f"analysis does not match the schema ({err.error_count()} errors)") from err


class ReportClient:
	def __init__(self, client_factory: Callable[[], GeminiClient] = GeminiClient, *, temperature: Optional[float] = None) -> None:
		self._client_factory = client_factory
		self.temperature = settings.gemini_temperature if temperature is None else temperature

	async def analyze(self, measurement: MeasurementSample, previous: Optional[MeasurementSample] = None) -> AnalysisResult:
		if previous is not None:
			prompt = build_comparative_prompt(measurement, previous)
		else:
			prompt = build_initial_prompt(measurement)
		try:
			client = self._client_factory()
		except ValueError as err:
			raise ReportGenerationError(str(err)) from err
		try:
			text = await client.generate(prompt, response_schema=ANALYSIS_SCHEMA, temperature=self.temperature)
		except (httpx.HTTPError, RuntimeError) as err:
			logger.error("Report generation failed for %r: %s", measurement.name, err)
			raise ReportGenerationError("failed to get an analysis from the model") from err
		finally:
			await client.aclose()
		result = parse_analysis(text)
		if previous is None and result.comparative_analysis is not None:
			# No previous measurement to compare against
			result = result.model_copy(update={"comparative_analysis": None})
		return result
