"""
Test fixtures for the fitness assessment API.

Every test gets its own in-memory SQLite roster slot. The model is never
called: a FakeAnalyzer stands in for the report client and records what it
was asked.
"""

from __future__ import annotations

import copy

import pytest
from fastapi.testclient import TestClient

from fitassess import models  # noqa: F401
from fitassess.db import Base, make_engine, make_session_factory
from fitassess.deps import get_pipeline, get_repository
from fitassess.main import app
from fitassess.pipeline import AssessmentPipeline
from fitassess.routers import auth
from fitassess.schemas import AnalysisResult, MeasurementSample
from fitassess.settings import settings
from fitassess.storage import RosterRepository


ANALYSIS = {
	"summary": "Solid starting point with room to cut visceral fat.",
	"analysis": [
		{"metric": "BMI", "value": "22.9", "idealRange": "18.5 - 24.9", "assessment": "Within the healthy range.", "status": "good"},
		{"metric": "Visceral fat", "value": "level 9", "idealRange": "1 - 9", "assessment": "At the upper limit.", "status": "caution"},
	],
	"strengths": ["Good hydration", "Healthy BMI"],
	"areasForImprovement": ["Visceral fat close to the limit"],
	"recommendations": ["Strength training three times a week", "Drink 2.5 L of water a day"],
	"dietPlan": {
		"title": "Sample plan",
		"meals": [
			{"name": "Breakfast", "time": "07:00 - 08:00", "suggestions": ["Oats with fruit", "Eggs on toast", "Greek yogurt"]},
		],
		"disclaimer": "Consult a nutritionist before changing your diet.",
	},
	"actionPlan": {
		"nextAssessmentDate": "01 April 2024",
		"focusAreas": [{"title": "Nutrition", "goals": ["Protein at every meal"]}],
		"motivationalMessage": "Keep going!",
	},
}

COMPARATIVE = {
	"summary": "Two kilos down and muscle kept.",
	"changes": [
		{
			"metric": "Body weight",
			"previousValue": "72.0 kg",
			"currentValue": "70.0 kg",
			"change": "-2.0 kg",
			"assessment": "On track.",
			"status": "positive",
		},
	],
}


def analysis_payload(**overrides) -> dict:
	data = copy.deepcopy(ANALYSIS)
	data.update(overrides)
	return data


class FakeAnalyzer:
	def __init__(self) -> None:
		self.calls = []
		self.error: Exception | None = None

	async def analyze(self, measurement, previous=None):
		self.calls.append((measurement, previous))
		if self.error is not None:
			raise self.error
		payload = analysis_payload()
		if previous is not None:
			payload["comparativeAnalysis"] = copy.deepcopy(COMPARATIVE)
		return AnalysisResult.model_validate(payload)


@pytest.fixture
def analysis_data():
	return analysis_payload()


@pytest.fixture
def analyzer():
	return FakeAnalyzer()


@pytest.fixture
def engine():
	eng = make_engine("sqlite://")
	Base.metadata.create_all(bind=eng)
	yield eng
	eng.dispose()


@pytest.fixture
def repository(engine):
	return RosterRepository(make_session_factory(engine), key="test-roster")


@pytest.fixture
def pipeline(repository, analyzer):
	return AssessmentPipeline(repository, analyzer)


@pytest.fixture
def make_measurement():
	def factory(**overrides) -> MeasurementSample:
		data = {
			"name": "Ana",
			"age": 30,
			"height_cm": 165,
			"weight_kg": 62.5,
			"sex": "female",
			"body_fat_pct": 27.4,
			"muscle_mass_kg": 24.1,
			"visceral_fat_level": 6,
			"body_water_pct": 52.3,
			"basal_metabolic_rate": 1380,
			"goal": "lose_weight",
			"activity_level": "moderate",
		}
		data.update(overrides)
		return MeasurementSample(**data)
	return factory


@pytest.fixture
def client(repository, pipeline):
	app.dependency_overrides[get_repository] = lambda: repository
	app.dependency_overrides[get_pipeline] = lambda: pipeline
	yield TestClient(app)
	app.dependency_overrides.clear()
	auth._sessions.clear()


@pytest.fixture
def login_as(client):
	def do_login(username, password) -> dict:
		r = client.post("/auth/token", data={"username": username, "password": password})
		assert r.status_code == 200, r.text
		return {"Authorization": f"Bearer {r.json()['access_token']}"}
	return do_login


@pytest.fixture
def admin_headers(login_as):
	return login_as(settings.admin_username, settings.admin_password)
