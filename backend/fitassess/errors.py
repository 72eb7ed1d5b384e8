from __future__ import annotations


class FitAssessError(Exception):
	"""Base class for every error raised by the assessment service."""


class RegistrationError(FitAssessError):
	"""Invalid registration or profile-edit input (nothing was changed)."""


class DuplicateStudentNameError(RegistrationError):
	def __init__(self, name: str) -> None:
		super().__init__(f"another student is already registered as {name!r}")
		self.name = name


class StudentNotFoundError(FitAssessError):
	def __init__(self, student_id: str) -> None:
		super().__init__(f"student {student_id!r} not found")
		self.student_id = student_id


class AssessmentNotFoundError(FitAssessError):
	def __init__(self, assessment_id: str) -> None:
		super().__init__(f"assessment {assessment_id!r} not found")
		self.assessment_id = assessment_id


class AnalysisError(FitAssessError):
	"""The report could not be produced; the roster was left untouched."""


class ReportGenerationError(AnalysisError):
	"""Network, HTTP or configuration failure talking to the model."""


class MalformedAnalysisError(AnalysisError):
	"""The model answered, but not with JSON matching the analysis schema."""


class StorageError(FitAssessError):
	"""The roster could not be written back to the key-value slot."""


class InvalidTransitionError(FitAssessError):
	def __init__(self, state: str, action: str) -> None:
		super().__init__(f"action {action!r} is not allowed from the {state!r} screen")
		self.state = state
		self.action = action


class SubmissionInProgressError(FitAssessError):
	"""A submission for the same student is still waiting on the report."""
