from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


Sex = Literal["male", "female"]
Goal = Literal[
	"lose_weight",
	"gain_muscle",
	"maintain",
	"muscle_definition",
	"improve_endurance",
	"general_health",
]
ActivityLevel = Literal["sedentary", "light", "moderate", "active", "very_active"]
MetricStatus = Literal["good", "caution", "needs_improvement"]
ChangeStatus = Literal["positive", "negative", "neutral"]
Role = Literal["admin", "client"]


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _require_name(value: str) -> str:
	value = (value or "").strip()
	if not value:
		raise ValueError("name is required")
	return value


# ---- measurement ----


class MeasurementSample(FrozenCamelModel):
	name: str
	age: float
	height_cm: float
	weight_kg: float
	sex: Sex
	body_fat_pct: float
	muscle_mass_kg: float
	visceral_fat_level: float
	body_water_pct: float
	basal_metabolic_rate: float
	goal: Goal
	activity_level: Optional[ActivityLevel] = None
	health_conditions: Optional[str] = None
	medical_restrictions: Optional[str] = None
	supplements: Optional[str] = None
	assessment_date: Optional[str] = None
	instructor_name: Optional[str] = None

	@field_validator("name")
	@classmethod
	def _check_name(cls, value: str) -> str:
		return _require_name(value)

	def calendar_date(self) -> Optional[date]:
		"""The assessment date, or None when it is absent or not a valid ISO date."""
		raw = (self.assessment_date or "").strip()
		if not raw:
			return None
		try:
			return datetime.fromisoformat(raw).date()
		except ValueError:
			return None


# ---- analysis result (the model's output contract) ----


class MetricAssessment(FrozenCamelModel):
	metric: str
	value: str
	ideal_range: str
	assessment: str
	status: MetricStatus


class Meal(FrozenCamelModel):
	name: str
	time: str
	suggestions: List[str]


class DietPlan(FrozenCamelModel):
	title: str
	meals: List[Meal]
	disclaimer: str


class ComparativeChange(FrozenCamelModel):
	metric: str
	previous_value: str
	current_value: str
	change: str
	assessment: str
	status: ChangeStatus


class ComparativeAnalysis(FrozenCamelModel):
	summary: str
	changes: List[ComparativeChange]


class FocusArea(FrozenCamelModel):
	title: str
	goals: List[str]


class ActionPlan(FrozenCamelModel):
	next_assessment_date: str
	focus_areas: List[FocusArea]
	motivational_message: str


class AnalysisResult(FrozenCamelModel):
	summary: str
	analysis: List[MetricAssessment]
	strengths: List[str]
	areas_for_improvement: List[str]
	recommendations: List[str]
	diet_plan: DietPlan
	comparative_analysis: Optional[ComparativeAnalysis] = None
	action_plan: Optional[ActionPlan] = None


# ---- roster ----


class Assessment(FrozenCamelModel):
	id: str
	timestamp: datetime
	measurement: MeasurementSample
	result: AnalysisResult


PROFILE_FIELDS = (
	"age",
	"height_cm",
	"sex",
	"goal",
	"activity_level",
	"health_conditions",
	"medical_restrictions",
	"supplements",
)


class Student(FrozenCamelModel):
	id: str
	name: str
	password: Optional[str] = None
	age: Optional[float] = None
	height_cm: Optional[float] = None
	sex: Optional[Sex] = None
	goal: Optional[Goal] = None
	activity_level: Optional[ActivityLevel] = None
	health_conditions: Optional[str] = None
	medical_restrictions: Optional[str] = None
	supplements: Optional[str] = None
	# Most recent first
	assessments: List[Assessment] = Field(default_factory=list)


Roster = List[Student]
RosterAdapter: TypeAdapter[List[Student]] = TypeAdapter(List[Student])


# ---- request / response payloads ----


class StudentRegistration(CamelModel):
	name: str
	password: Optional[str] = None
	confirm_password: Optional[str] = None
	age: Optional[float] = None
	height_cm: Optional[float] = None
	sex: Optional[Sex] = None
	goal: Optional[Goal] = None
	activity_level: Optional[ActivityLevel] = None
	health_conditions: Optional[str] = None
	medical_restrictions: Optional[str] = None
	supplements: Optional[str] = None


class ProfileUpdate(StudentRegistration):
	"""Same fields as a registration; a blank password leaves it unchanged."""


class StudentSummary(CamelModel):
	id: str
	name: str
	goal: Optional[Goal] = None
	assessment_count: int
	last_assessment_at: Optional[datetime] = None


class StudentOut(CamelModel):
	id: str
	name: str
	age: Optional[float] = None
	height_cm: Optional[float] = None
	sex: Optional[Sex] = None
	goal: Optional[Goal] = None
	activity_level: Optional[ActivityLevel] = None
	health_conditions: Optional[str] = None
	medical_restrictions: Optional[str] = None
	supplements: Optional[str] = None
	assessments: List[Assessment] = Field(default_factory=list)

	@classmethod
	def from_student(cls, student: Student) -> "StudentOut":
		return cls.model_validate(student.model_dump(exclude={"password"}))


class ProgressPoint(CamelModel):
	assessment_id: str
	timestamp: datetime
	weight_kg: float
	body_fat_pct: float
	muscle_mass_kg: float


class CurrentUser(BaseModel):
	role: Role
	name: str
	student_id: Optional[str] = None
