from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Set, Tuple

from .errors import StorageError, SubmissionInProgressError
from .roster import find_by_name, new_student_id, normalize_name, replace_student
from .schemas import PROFILE_FIELDS, AnalysisResult, Assessment, MeasurementSample, Student
from .storage import RosterRepository


logger = logging.getLogger(__name__)

STORAGE_WARNING = "The assessment was generated but could not be saved; it will be lost on restart."


class Analyzer(Protocol):
	async def analyze(self, measurement: MeasurementSample, previous: Optional[MeasurementSample] = None) -> AnalysisResult:
		...


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def new_assessment_id() -> str:
	return f"ass_{uuid.uuid4().hex}"


def assessment_timestamp(measurement: MeasurementSample, now: datetime) -> datetime:
	day = measurement.calendar_date()
	if day is None:
		return now
	return datetime.combine(day, now.timetz())


def sort_assessments(assessments: List[Assessment]) -> List[Assessment]:
	# Stable: among equal timestamps the earlier position (the newer insert) wins
	return sorted(assessments, key=lambda a: a.timestamp, reverse=True)


def previous_measurement(roster: List[Student], name: str) -> Optional[MeasurementSample]:
	existing = find_by_name(roster, name)
	if existing is None or not existing.assessments:
		return None
	return existing.assessments[0].measurement


def record_assessment(
	measurement: MeasurementSample,
	result: AnalysisResult,
	roster: List[Student],
	*,
	now: datetime,
	assessment_id_factory: Callable[[], str] = new_assessment_id,
	student_id_factory: Callable[[], str] = new_student_id,
) -> Tuple[List[Student], Student, Assessment]:
	existing = find_by_name(roster, measurement.name)
	assessment = Assessment(
		id=assessment_id_factory(),
		timestamp=assessment_timestamp(measurement, now),
		measurement=measurement,
		result=result,
	)
	profile = {field: getattr(measurement, field) for field in PROFILE_FIELDS}

	if existing is None:
		student = Student(id=student_id_factory(), name=measurement.name, assessments=[assessment], **profile)
		logger.info("Created student %s for %r", student.id, student.name, extra={"student_id": student.id})
	else:
		student = existing.model_copy(update={
			**profile,
			"assessments": sort_assessments([assessment, *existing.assessments]),
		})

	return replace_student(roster, student), student, assessment


async def submit_assessment(
	measurement: MeasurementSample,
	roster: List[Student],
	analyzer: Analyzer,
	*,
	now: Optional[datetime] = None,
	assessment_id_factory: Callable[[], str] = new_assessment_id,
	student_id_factory: Callable[[], str] = new_student_id,
) -> Tuple[List[Student], Student, Assessment]:
	"""Return ``(updated_roster, student, assessment)``; ``roster`` itself is never mutated."""
	result = await analyzer.analyze(measurement, previous_measurement(roster, measurement.name))
	return record_assessment(
		measurement, result, roster,
		now=now or utcnow(),
		assessment_id_factory=assessment_id_factory,
		student_id_factory=student_id_factory,
	)


@dataclass
class SubmissionOutcome:
	roster: List[Student]
	student: Student
	assessment: Assessment
	is_new_student: bool
	persisted: bool = True
	warning: Optional[str] = None


class AssessmentPipeline:
	def __init__(self, repository: RosterRepository, analyzer: Analyzer, *, clock: Callable[[], datetime] = utcnow) -> None:
		self.repository = repository
		self.analyzer = analyzer
		self._clock = clock
		self._in_flight: Set[str] = set()

	def is_busy(self, name: str) -> bool:
		return normalize_name(name) in self._in_flight

	async def submit(self, measurement: MeasurementSample) -> SubmissionOutcome:
		key = normalize_name(measurement.name)
		if key in self._in_flight:
			raise SubmissionInProgressError(f"an assessment for {measurement.name!r} is already being generated")
		self._in_flight.add(key)
		try:
			previous = previous_measurement(self.repository.load(), measurement.name)
			result = await self.analyzer.analyze(measurement, previous)
		finally:
			self._in_flight.discard(key)

		# Other writes may have landed while the model was working; record on top of them.
		# No await between this load and the save below.
		current = self.repository.load()
		is_new = find_by_name(current, measurement.name) is None
		updated, student, assessment = record_assessment(measurement, result, current, now=self._clock())

		outcome = SubmissionOutcome(roster=updated, student=student, assessment=assessment, is_new_student=is_new)
		try:
			self.repository.save(updated)
		except StorageError:
			logger.error("Roster not persisted after assessment %s", assessment.id, exc_info=True, extra={"assessment_id": assessment.id})
			outcome.persisted = False
			outcome.warning = STORAGE_WARNING
		logger.info(
			"Recorded assessment %s for student %s (%d on file)",
			assessment.id, student.id, len(student.assessments),
			extra={"student_id": student.id, "assessment_id": assessment.id},
		)
		return outcome
