from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./dictee.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema(bind=None) -> None:
	bind = bind or engine
	inspector = inspect(bind)
	tables = set(inspector.get_table_names())
	if "api_keys" in tables:
		cols = {c["name"] for c in inspector.get_columns("api_keys")}
		with bind.begin() as conn:
			if "enable_pauses" not in cols:
				conn.exec_driver_sql("ALTER TABLE api_keys ADD COLUMN enable_pauses BOOLEAN DEFAULT 1 NOT NULL")
	if "dictation_corrections" in tables:
		cols = {c["name"] for c in inspector.get_columns("dictation_corrections")}
		with bind.begin() as conn:
			if "feedback" not in cols:
				conn.exec_driver_sql("ALTER TABLE dictation_corrections ADD COLUMN feedback TEXT")
