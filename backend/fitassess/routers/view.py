from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_repository
from ..errors import AssessmentNotFoundError, InvalidTransitionError, StudentNotFoundError, SubmissionInProgressError
from ..schemas import CamelModel
from ..storage import RosterRepository
from .auth import Session, get_current_session


router = APIRouter(prefix="/view", tags=["view"])


class ViewAction(CamelModel):
	student_id: Optional[str] = None
	assessment_id: Optional[str] = None


def _describe(session: Session, repo: RosterRepository) -> dict:
	try:
		return session.view.describe(repo.load())
	except StudentNotFoundError as err:
		raise HTTPException(status_code=404, detail=str(err))


@router.get("")
async def current_view(session: Session = Depends(get_current_session), repo: RosterRepository = Depends(get_repository)):
	return _describe(session, repo)


@router.post("/{action}")
async def perform(
	action: str,
	body: Optional[ViewAction] = None,
	session: Session = Depends(get_current_session),
	repo: RosterRepository = Depends(get_repository),
):
	body = body or ViewAction()
	view = session.view
	try:
		if action == "select":
			if not body.student_id:
				raise HTTPException(status_code=400, detail="studentId is required")
			view.select(body.student_id, repo.load())
		elif action == "add-student":
			view.add_student()
		elif action == "add-assessment":
			view.add_assessment()
		elif action == "edit-profile":
			view.edit_profile()
		elif action == "open-assessment":
			if not body.assessment_id:
				raise HTTPException(status_code=400, detail="assessmentId is required")
			view.open_assessment(body.assessment_id, repo.load())
		elif action == "cancel":
			view.cancel()
		elif action == "back":
			view.back()
		else:
			raise HTTPException(status_code=404, detail=f"unknown action {action!r}")
	except (StudentNotFoundError, AssessmentNotFoundError) as err:
		raise HTTPException(status_code=404, detail=str(err))
	except (InvalidTransitionError, SubmissionInProgressError) as err:
		raise HTTPException(status_code=409, detail=str(err))
	return _describe(session, repo)
