from fastapi import APIRouter
from sqlalchemy import text

from ..db import engine

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
	try:
		with engine.connect() as conn:
			conn.execute(text("SELECT 1"))
		database = "ok"
	except Exception:
		database = "unavailable"
	return {"status": "ok", "database": database}
