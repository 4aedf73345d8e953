from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./classroom.db"

_engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
	_engine_kwargs["connect_args"] = {"check_same_thread": False}
	# In-memory databases must share one connection across sessions
	if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
		_engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, future=True, **_engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Columns added after the first release, applied to existing dev databases
_ADDED_COLUMNS = {
	"auth_users": {
		"role": "VARCHAR(16) DEFAULT 'student' NOT NULL",
		"requests_used": "INTEGER DEFAULT 0 NOT NULL",
		"requests_limit": "INTEGER DEFAULT 1000 NOT NULL",
	},
	"submissions": {
		"ocr_text": "TEXT",
	},
}


def ensure_schema() -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		return
	for table, columns in _ADDED_COLUMNS.items():
		if table not in tables:
			continue
		present = {c["name"] for c in inspector.get_columns(table)}
		with engine.begin() as conn:
			for name, ddl in columns.items():
				if name not in present:
					conn.exec_driver_sql(f"ALTER TABLE {table} ADD COLUMN {name} {ddl}")
