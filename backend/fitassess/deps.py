from __future__ import annotations
from typing import Optional

from .db import SessionLocal
from .pipeline import AssessmentPipeline
from .report import ReportClient
from .storage import RosterRepository


_repository: Optional[RosterRepository] = None
_pipeline: Optional[AssessmentPipeline] = None


def get_repository() -> RosterRepository:
	global _repository
	if _repository is None:
		_repository = RosterRepository(SessionLocal)
	return _repository


def get_pipeline() -> AssessmentPipeline:
	# One shared instance: it tracks which students have a submission in flight
	global _pipeline
	if _pipeline is None:
		_pipeline = AssessmentPipeline(get_repository(), ReportClient())
	return _pipeline
