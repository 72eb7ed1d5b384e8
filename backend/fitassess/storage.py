from __future__ import annotations
import logging
from typing import Callable, List

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageError
from .models import KeyValueSlot
from .schemas import RosterAdapter, Student
from .settings import settings


logger = logging.getLogger(__name__)


class RosterRepository:
	"""Whole-roster persistence in a single key-value slot.

	The roster is written as one JSON array under one key and always
	replaced in full; there are no partial writes and no schema version.
	"""

	def __init__(self, session_factory: Callable[[], Session], key: str | None = None) -> None:
		self._session_factory = session_factory
		self.key = key or settings.roster_storage_key

	def load(self) -> List[Student]:
		db = self._session_factory()
		try:
			row = db.get(KeyValueSlot, self.key)
			raw = row.value if row is not None else None
		except SQLAlchemyError:
			logger.exception("Failed to read roster slot %r; starting with an empty roster", self.key)
			return []
		finally:
			db.close()
		if not raw:
			return []
		try:
			return RosterAdapter.validate_json(raw)
		except ValidationError as err:
			logger.warning("Stored roster under %r is unreadable (%s); starting with an empty roster", self.key, err.error_count())
			return []

	def save(self, roster: List[Student]) -> None:
		try:
			payload = RosterAdapter.dump_json(roster, by_alias=True).decode("utf-8")
		except PydanticSerializationError as err:
			raise StorageError(f"roster could not be serialized: {err}") from err
		db = self._session_factory()
		try:
			row = db.get(KeyValueSlot, self.key)
			if row is None:
				db.add(KeyValueSlot(key=self.key, value=payload))
			else:
				row.value = payload
			db.commit()
		except SQLAlchemyError as err:
			db.rollback()
			raise StorageError(f"roster could not be written: {err}") from err
		finally:
			db.close()
