from __future__ import annotations
import uuid
from typing import List, Optional, Tuple

from .errors import DuplicateStudentNameError, RegistrationError, StudentNotFoundError, AssessmentNotFoundError
from .schemas import PROFILE_FIELDS, Assessment, ProfileUpdate, ProgressPoint, Student, StudentRegistration


MIN_PASSWORD_LENGTH = 6


def normalize_name(name: str) -> str:
	return (name or "").strip().casefold()


def new_student_id() -> str:
	return f"stu_{uuid.uuid4().hex}"


def find_by_name(roster: List[Student], name: str) -> Optional[Student]:
	key = normalize_name(name)
	for student in roster:
		if normalize_name(student.name) == key:
			return student
	return None


def find_by_id(roster: List[Student], student_id: str) -> Student:
	for student in roster:
		if student.id == student_id:
			return student
	raise StudentNotFoundError(student_id)


def find_assessment(student: Student, assessment_id: str) -> Assessment:
	for assessment in student.assessments:
		if assessment.id == assessment_id:
			return assessment
	raise AssessmentNotFoundError(assessment_id)


def replace_student(roster: List[Student], student: Student) -> List[Student]:
	"""Return a new roster with ``student`` swapped in by id, or appended if new."""
	replaced = False
	updated: List[Student] = []
	for existing in roster:
		if existing.id == student.id:
			updated.append(student)
			replaced = True
		else:
			updated.append(existing)
	if not replaced:
		updated.append(student)
	return updated


def _check_password(password: Optional[str], confirm: Optional[str]) -> Optional[str]:
	if not password:
		return None
	if password != (confirm or ""):
		raise RegistrationError("passwords do not match")
	if len(password) < MIN_PASSWORD_LENGTH:
		raise RegistrationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
	return password


def _check_name_free(roster: List[Student], name: str, *, except_id: Optional[str] = None) -> None:
	key = normalize_name(name)
	for student in roster:
		if student.id != except_id and normalize_name(student.name) == key:
			raise DuplicateStudentNameError(name)


def register_student(roster: List[Student], registration: StudentRegistration) -> Tuple[List[Student], Student]:
	name = (registration.name or "").strip()
	if not name:
		raise RegistrationError("name is required")
	password = _check_password(registration.password, registration.confirm_password)
	_check_name_free(roster, name)
	profile = {field: getattr(registration, field) for field in PROFILE_FIELDS}
	student = Student(id=new_student_id(), name=name, password=password, assessments=[], **profile)
	return [*roster, student], student


def update_profile(roster: List[Student], student_id: str, update: ProfileUpdate) -> Tuple[List[Student], Student]:
	current = find_by_id(roster, student_id)
	name = (update.name or "").strip()
	if not name:
		raise RegistrationError("name is required")
	password = _check_password(update.password, update.confirm_password)
	_check_name_free(roster, name, except_id=student_id)
	changes = {field: getattr(update, field) for field in PROFILE_FIELDS}
	changes["name"] = name
	if password is not None:
		changes["password"] = password
	student = current.model_copy(update=changes)
	return replace_student(roster, student), student


def progress_series(student: Student) -> List[ProgressPoint]:
	"""Weight / body fat / muscle mass per assessment, oldest first.

	A single point is not a trend, so fewer than two assessments yields [].
	"""
	if len(student.assessments) < 2:
		return []
	points = []
	for assessment in reversed(student.assessments):
		m = assessment.measurement
		points.append(ProgressPoint(
			assessment_id=assessment.id,
			timestamp=assessment.timestamp,
			weight_kg=m.weight_kg,
			body_fat_pct=m.body_fat_pct,
			muscle_mass_kg=m.muscle_mass_kg,
		))
	return points
