from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, ClassVar, Dict, List, Literal, Optional, Union

from .errors import InvalidTransitionError, SubmissionInProgressError
from .roster import find_assessment, find_by_id
from .schemas import Assessment, CurrentUser, Student


@dataclass(frozen=True)
class HomeScreen:
	name: ClassVar[str] = "home"


@dataclass(frozen=True)
class LoginScreen:
	name: ClassVar[str] = "login"


@dataclass(frozen=True)
class ListScreen:
	name: ClassVar[str] = "list"


@dataclass(frozen=True)
class FormScreen:
	name: ClassVar[str] = "form"
	# None means "register a new student through their first assessment"
	student_id: Optional[str] = None
	busy: bool = False


@dataclass(frozen=True)
class HistoryScreen:
	name: ClassVar[str] = "history"
	student_id: str


@dataclass(frozen=True)
class ResultScreen:
	name: ClassVar[str] = "result"
	student_id: str
	assessment_id: str
	return_to: Literal["history", "list"] = "history"


@dataclass(frozen=True)
class EditProfileScreen:
	name: ClassVar[str] = "edit-profile"
	student_id: str


Screen = Union[HomeScreen, LoginScreen, ListScreen, FormScreen, HistoryScreen, ResultScreen, EditProfileScreen]


class ViewController:
	def __init__(self) -> None:
		self.state: Screen = HomeScreen()
		self.user: Optional[CurrentUser] = None
		# A student recorded but not written to storage, shown until the result is left
		self._unsaved: Optional[Student] = None

	# ---- helpers ----

	def _expect(self, action: str, *types: type) -> Any:
		if not isinstance(self.state, types):
			raise InvalidTransitionError(self.state.name, action)
		return self.state

	def _require_admin(self, action: str) -> None:
		if self.user is None or self.user.role != "admin":
			raise InvalidTransitionError(self.state.name, action)

	def _check_owner(self, action: str, student_id: str) -> None:
		if self.user is None:
			raise InvalidTransitionError(self.state.name, action)
		if self.user.role == "client" and self.user.student_id != student_id:
			raise InvalidTransitionError(self.state.name, action)

	def _find_student(self, roster: List[Student], student_id: str) -> Student:
		if self._unsaved is not None and self._unsaved.id == student_id:
			return self._unsaved
		return find_by_id(roster, student_id)

	# ---- entry ----

	def start(self) -> Screen:
		self._expect("start", HomeScreen)
		self.state = LoginScreen()
		return self.state

	def login(self, user: CurrentUser) -> Screen:
		self._expect("login", LoginScreen)
		self.user = user
		if user.role == "client" and user.student_id:
			self.state = HistoryScreen(student_id=user.student_id)
		else:
			self.state = ListScreen()
		return self.state

	def logout(self) -> Screen:
		if isinstance(self.state, (HomeScreen, LoginScreen)):
			raise InvalidTransitionError(self.state.name, "logout")
		self.user = None
		self._unsaved = None
		self.state = LoginScreen()
		return self.state

	# ---- list ----

	def select(self, student_id: str, roster: List[Student]) -> Screen:
		self._expect("select", ListScreen)
		self._check_owner("select", student_id)
		find_by_id(roster, student_id)
		self.state = HistoryScreen(student_id=student_id)
		return self.state

	def add_student(self) -> Screen:
		self._expect("add-student", ListScreen)
		self._require_admin("add-student")
		self.state = FormScreen()
		return self.state

	# ---- history ----

	def add_assessment(self) -> Screen:
		state = self._expect("add-assessment", HistoryScreen)
		self._require_admin("add-assessment")
		self.state = FormScreen(student_id=state.student_id)
		return self.state

	def edit_profile(self) -> Screen:
		state = self._expect("edit-profile", HistoryScreen)
		self._require_admin("edit-profile")
		self.state = EditProfileScreen(student_id=state.student_id)
		return self.state

	def open_assessment(self, assessment_id: str, roster: List[Student]) -> Screen:
		state = self._expect("open-assessment", HistoryScreen)
		find_assessment(find_by_id(roster, state.student_id), assessment_id)
		self.state = ResultScreen(student_id=state.student_id, assessment_id=assessment_id, return_to="history")
		return self.state

	# ---- form ----

	def begin_save(self) -> Screen:
		state = self._expect("save", FormScreen)
		if state.busy:
			raise SubmissionInProgressError("this form is already being submitted")
		self.state = replace(state, busy=True)
		return self.state

	def save_failed(self) -> Screen:
		state = self._expect("save-failed", FormScreen)
		self.state = replace(state, busy=False)
		return self.state

	def save_succeeded(self, student: Student, assessment: Assessment, *, persisted: bool = True) -> Screen:
		state = self._expect("save", FormScreen)
		return_to = "history" if state.student_id is not None else "list"
		self._unsaved = None if persisted else student
		self.state = ResultScreen(student_id=student.id, assessment_id=assessment.id, return_to=return_to)
		return self.state

	# ---- edit profile ----

	def profile_saved(self) -> Screen:
		state = self._expect("save-profile", EditProfileScreen)
		self.state = HistoryScreen(student_id=state.student_id)
		return self.state

	def cancel(self) -> Screen:
		state = self._expect("cancel", EditProfileScreen)
		self.state = HistoryScreen(student_id=state.student_id)
		return self.state

	# ---- back ----

	def back(self) -> Screen:
		state = self.state
		if isinstance(state, FormScreen):
			if state.busy:
				raise SubmissionInProgressError("wait for the running submission to finish")
			self.state = HistoryScreen(student_id=state.student_id) if state.student_id else ListScreen()
		elif isinstance(state, ResultScreen):
			self._unsaved = None
			if state.return_to == "history":
				self.state = HistoryScreen(student_id=state.student_id)
			else:
				self.state = ListScreen()
		elif isinstance(state, EditProfileScreen):
			self.state = HistoryScreen(student_id=state.student_id)
		elif isinstance(state, HistoryScreen):
			self._require_admin("back")
			self.state = ListScreen()
		else:
			raise InvalidTransitionError(state.name, "back")
		return self.state

	# ---- rendering context ----

	def describe(self, roster: List[Student]) -> Dict[str, Any]:
		state = self.state
		context: Dict[str, Any] = {"screen": state.name}
		student_id = getattr(state, "student_id", None)
		if student_id is not None:
			student = self._find_student(roster, student_id)
			context["studentId"] = student.id
			context["studentName"] = student.name
		if isinstance(state, FormScreen):
			context["busy"] = state.busy
		if isinstance(state, ResultScreen):
			context["assessmentId"] = state.assessment_id
			context["returnTo"] = state.return_to
			if self._unsaved is not None:
				context["persisted"] = False
		return context
