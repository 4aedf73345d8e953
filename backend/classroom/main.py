from fastapi import FastAPI

from .db import Base, engine, get_db, ensure_schema
from .cleanup import purge_older_than_one_week
from .settings import settings
from .routers import health, auth, ai, files, classes, meetings
import asyncio
import logging

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Classroom API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(ai.router)
app.include_router(files.router)
app.include_router(classes.router)
app.include_router(meetings.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"groq_configured": bool(settings.groq_api_key),
		"meeting_url": settings.meeting_url,
	}


def _run_cleanup() -> None:
	try:
		db = next(get_db())
		try:
			removed = purge_older_than_one_week(db)
		finally:
			db.close()
		logger.info("Cleanup removed %d stale rows", removed)
	except Exception:
		logger.exception("Cleanup failed")


async def _cleanup_watcher():
	while True:
		await asyncio.sleep(24 * 60 * 60)
		_run_cleanup()


@app.on_event("startup")
async def startup_event():
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed")
	_run_cleanup()
	asyncio.create_task(_cleanup_watcher())
