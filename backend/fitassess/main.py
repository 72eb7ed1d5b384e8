from fastapi import FastAPI

from .db import Base, engine
from .logging_config import init_logging
from .settings import settings
from . import models  # noqa: F401  registers the kv_store table
from .routers import auth
from .routers import students
from .routers import assessments
from .routers import view

app = FastAPI(title="Fitness Assessment API")
app.include_router(auth.router)
app.include_router(students.router)
app.include_router(assessments.router)
app.include_router(view.router)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


@app.on_event("startup")
async def startup_event():
	init_logging(settings)
	Base.metadata.create_all(bind=engine)
