from __future__ import annotations
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./fitassess.db"

Base = declarative_base()


def make_engine(url: str) -> Engine:
	if not url.startswith("sqlite"):
		return create_engine(url, future=True)
	kwargs = {"connect_args": {"check_same_thread": False}}
	# In-memory SQLite must share one connection or every session sees an empty database
	if url in ("sqlite://", "sqlite:///:memory:"):
		kwargs["poolclass"] = StaticPool
	return create_engine(url, future=True, **kwargs)


def make_session_factory(bind: Engine) -> sessionmaker:
	return sessionmaker(autocommit=False, autoflush=False, bind=bind, future=True)


engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()
