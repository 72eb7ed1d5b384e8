from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from ..deps import get_repository
from ..roster import find_by_name
from ..schemas import CurrentUser, Student
from ..settings import settings
from ..storage import RosterRepository
from ..views import ViewController

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class Session:
	def __init__(self, session_id: str, user: CurrentUser, view: ViewController) -> None:
		self.session_id = session_id
		self.user = user
		self.view = view


# session id (token jti) -> live session; logging out drops the entry and its screen state
_sessions: Dict[str, Session] = {}


def authenticate(username: str, password: str, roster: List[Student]) -> Optional[CurrentUser]:
	"""Match the admin credential first, then a student by normalized name.

	Plain comparison on purpose: this gate only picks which screens to show.
	"""
	username = (username or "").strip()
	if username.lower() == settings.admin_username.lower() and password == settings.admin_password:
		return CurrentUser(role="admin", name="Admin")
	student = find_by_name(roster, username)
	if student is None:
		return None
	expected = student.password or settings.student_default_password
	if password != expected:
		return None
	return CurrentUser(role="client", name=student.name, student_id=student.id)


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=1)
	return datetime.now(timezone.utc) + delta


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), repo: RosterRepository = Depends(get_repository)):
	user = authenticate(form_data.username, form_data.password, repo.load())
	if not user:
		raise HTTPException(status_code=401, detail="Invalid credentials. Check your details and try again.")
	session_id = uuid.uuid4().hex
	view = ViewController()
	view.start()
	view.login(user)
	_sessions[session_id] = Session(session_id, user, view)
	logger.info("%s login (%s)", user.role, user.name, extra={"session_id": session_id})
	claims = {"sub": user.name, "role": user.role, "jti": session_id}
	if user.student_id:
		claims["sid"] = user.student_id
	return Token(access_token=create_access_token(claims))


def get_current_session(token: str = Depends(oauth2_scheme)) -> Session:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		jti: str | None = payload.get("jti")
		if jti is None:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	session = _sessions.get(jti)
	if session is None:
		# Logged out, or the process restarted
		raise credentials_exception
	return session


def get_current_user(session: Session = Depends(get_current_session)) -> CurrentUser:
	return session.user


def require_admin(session: Session = Depends(get_current_session)) -> Session:
	if session.user.role != "admin":
		raise HTTPException(status_code=403, detail="admin access required")
	return session


def ensure_can_view(user: CurrentUser, student_id: str) -> None:
	if user.role != "admin" and user.student_id != student_id:
		raise HTTPException(status_code=403, detail="not allowed to view this student")


@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(get_current_user)):
	return user


@router.post("/logout")
async def logout(session: Session = Depends(get_current_session)):
	session.view.logout()
	_sessions.pop(session.session_id, None)
	return {"ok": True, "screen": session.view.state.name}
