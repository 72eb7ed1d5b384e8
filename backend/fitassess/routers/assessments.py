from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_pipeline
from ..errors import AnalysisError, InvalidTransitionError, SubmissionInProgressError
from ..pipeline import AssessmentPipeline
from ..schemas import Assessment, CamelModel, MeasurementSample, StudentOut
from .auth import Session, require_admin


router = APIRouter(prefix="/assessments", tags=["assessments"])

logger = logging.getLogger(__name__)

ANALYSIS_FAILED = "An error occurred while analysing the data. Check the values and try again."


class SubmissionResponse(CamelModel):
	student: StudentOut
	assessment: Assessment
	is_new_student: bool
	persisted: bool = True
	warning: Optional[str] = None
	screen: str = "result"


@router.post("", response_model=SubmissionResponse)
async def submit(
	measurement: MeasurementSample,
	session: Session = Depends(require_admin),
	pipeline: AssessmentPipeline = Depends(get_pipeline),
):
	view = session.view
	try:
		view.begin_save()
	except InvalidTransitionError as err:
		raise HTTPException(status_code=409, detail=str(err))
	except SubmissionInProgressError as err:
		raise HTTPException(status_code=409, detail=str(err))
	try:
		outcome = await pipeline.submit(measurement)
	except SubmissionInProgressError as err:
		view.save_failed()
		raise HTTPException(status_code=409, detail=str(err))
	except AnalysisError:
		# The form stays open with its input so the coach can retry
		view.save_failed()
		logger.warning("Assessment for %r not recorded: analysis failed", measurement.name, exc_info=True)
		raise HTTPException(status_code=502, detail=ANALYSIS_FAILED)
	except Exception:
		view.save_failed()
		raise
	screen = view.save_succeeded(outcome.student, outcome.assessment, persisted=outcome.persisted)
	return SubmissionResponse(
		student=StudentOut.from_student(outcome.student),
		assessment=outcome.assessment,
		is_new_student=outcome.is_new_student,
		persisted=outcome.persisted,
		warning=outcome.warning,
		screen=screen.name,
	)
