from __future__ import annotations
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_repository
from ..errors import AssessmentNotFoundError, DuplicateStudentNameError, RegistrationError, StorageError, StudentNotFoundError
from ..roster import find_assessment, find_by_id, progress_series, register_student, update_profile
from ..schemas import Assessment, CurrentUser, ProfileUpdate, ProgressPoint, StudentOut, StudentRegistration, StudentSummary
from ..storage import RosterRepository
from ..views import EditProfileScreen
from .auth import Session, ensure_can_view, get_current_user, require_admin


router = APIRouter(prefix="/students", tags=["students"])

logger = logging.getLogger(__name__)


def _save_or_fail(repo: RosterRepository, roster) -> None:
	try:
		repo.save(roster)
	except StorageError as err:
		logger.error("Roster save failed: %s", err)
		raise HTTPException(status_code=503, detail="Changes could not be saved. Try again.")


def _load_student(repo: RosterRepository, student_id: str):
	try:
		return find_by_id(repo.load(), student_id)
	except StudentNotFoundError as err:
		raise HTTPException(status_code=404, detail=str(err))


@router.get("", response_model=List[StudentSummary])
async def list_students(session: Session = Depends(require_admin), repo: RosterRepository = Depends(get_repository)):
	return [
		StudentSummary(
			id=s.id,
			name=s.name,
			goal=s.goal,
			assessment_count=len(s.assessments),
			last_assessment_at=s.assessments[0].timestamp if s.assessments else None,
		)
		for s in repo.load()
	]


@router.post("", response_model=StudentOut, status_code=201)
async def register(req: StudentRegistration, session: Session = Depends(require_admin), repo: RosterRepository = Depends(get_repository)):
	try:
		roster, student = register_student(repo.load(), req)
	except DuplicateStudentNameError:
		raise HTTPException(status_code=409, detail="A student with this name already exists. Choose another name.")
	except RegistrationError as err:
		raise HTTPException(status_code=400, detail=str(err))
	_save_or_fail(repo, roster)
	logger.info("Registered student %s", student.id, extra={"student_id": student.id})
	return StudentOut.from_student(student)


@router.get("/{student_id}", response_model=StudentOut)
async def get_student(student_id: str, user: CurrentUser = Depends(get_current_user), repo: RosterRepository = Depends(get_repository)):
	ensure_can_view(user, student_id)
	return StudentOut.from_student(_load_student(repo, student_id))


@router.patch("/{student_id}", response_model=StudentOut)
async def edit_student(
	student_id: str,
	req: ProfileUpdate,
	session: Session = Depends(require_admin),
	repo: RosterRepository = Depends(get_repository),
):
	try:
		roster, student = update_profile(repo.load(), student_id, req)
	except StudentNotFoundError as err:
		raise HTTPException(status_code=404, detail=str(err))
	except DuplicateStudentNameError:
		raise HTTPException(status_code=409, detail="Another student already has this name. Choose another one.")
	except RegistrationError as err:
		raise HTTPException(status_code=400, detail=str(err))
	_save_or_fail(repo, roster)
	state = session.view.state
	if isinstance(state, EditProfileScreen) and state.student_id == student_id:
		session.view.profile_saved()
	return StudentOut.from_student(student)


@router.get("/{student_id}/progress", response_model=List[ProgressPoint])
async def student_progress(student_id: str, user: CurrentUser = Depends(get_current_user), repo: RosterRepository = Depends(get_repository)):
	ensure_can_view(user, student_id)
	return progress_series(_load_student(repo, student_id))


@router.get("/{student_id}/assessments/{assessment_id}", response_model=Assessment)
async def get_assessment(
	student_id: str,
	assessment_id: str,
	user: CurrentUser = Depends(get_current_user),
	repo: RosterRepository = Depends(get_repository),
):
	ensure_can_view(user, student_id)
	student = _load_student(repo, student_id)
	try:
		return find_assessment(student, assessment_id)
	except AssessmentNotFoundError as err:
		raise HTTPException(status_code=404, detail=str(err))
