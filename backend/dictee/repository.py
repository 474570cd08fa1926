"""
Key-based data access for users, settings, dictation sessions and corrections.

Every session/correction query is scoped by ``user_id``; rows belonging to
someone else behave exactly like rows that do not exist.
"""

from __future__ import annotations
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .errors import NotFoundError
from .models import ApiKeyRecord, DictationCorrection, DictationSession, GlobalSetting, User
from .schemas import CorrectionOutcome
from .settings import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def upsert_user(
	db: Session,
	open_id: str,
	*,
	name: Optional[str] = None,
	email: Optional[str] = None,
	login_method: Optional[str] = None,
	role: Optional[str] = None,
) -> User:
	if not open_id:
		raise ValueError("open_id is required")
	user = db.execute(select(User).where(User.open_id == open_id)).scalar_one_or_none()
	if user is None:
		user = User(open_id=open_id)
		db.add(user)
	if name is not None:
		user.name = name
	if email is not None:
		user.email = email
	if login_method is not None:
		user.login_method = login_method
	if role is not None:
		user.role = role
	elif settings.owner_open_id and open_id == settings.owner_open_id:
		user.role = "admin"
	user.last_signed_in = datetime.utcnow()
	db.commit()
	db.refresh(user)
	return user


def get_user(db: Session, user_id: int) -> Optional[User]:
	return db.get(User, user_id)


def get_user_by_open_id(db: Session, open_id: str) -> Optional[User]:
	return db.execute(select(User).where(User.open_id == open_id)).scalar_one_or_none()


# ---------------------------------------------------------------------------
# Per-user API keys
# ---------------------------------------------------------------------------

def get_api_key(db: Session, user_id: int) -> Optional[ApiKeyRecord]:
	return db.execute(select(ApiKeyRecord).where(ApiKeyRecord.user_id == user_id)).scalar_one_or_none()


def upsert_api_key(
	db: Session,
	user_id: int,
	gemini_api_key: str,
	*,
	word_interval: Optional[int] = None,
	elevenlabs_api_key: Optional[str] = None,
	elevenlabs_voice_id: Optional[str] = None,
	enable_pauses: Optional[bool] = None,
) -> ApiKeyRecord:
	# Fields left as None keep their stored (or default) value
	row = get_api_key(db, user_id)
	if row is None:
		row = ApiKeyRecord(user_id=user_id, gemini_api_key=gemini_api_key)
		db.add(row)
	row.gemini_api_key = gemini_api_key
	if word_interval is not None:
		row.word_interval = word_interval
	if elevenlabs_api_key is not None:
		row.elevenlabs_api_key = elevenlabs_api_key
	if elevenlabs_voice_id is not None:
		row.elevenlabs_voice_id = elevenlabs_voice_id
	if enable_pauses is not None:
		row.enable_pauses = enable_pauses
	db.commit()
	db.refresh(row)
	return row


# ---------------------------------------------------------------------------
# Global settings
# ---------------------------------------------------------------------------

def get_global_setting(db: Session, key: str) -> Optional[str]:
	row = db.get(GlobalSetting, key)
	return row.value if row else None


def get_all_global_settings(db: Session) -> Dict[str, str]:
	rows = db.execute(select(GlobalSetting)).scalars().all()
	return {r.key: r.value for r in rows if r.value is not None}


def set_global_settings(db: Session, values: Dict[str, str]) -> None:
	for key, value in values.items():
		db.merge(GlobalSetting(key=key, value=value, updated_at=datetime.utcnow()))
	db.commit()


# ---------------------------------------------------------------------------
# Dictation sessions
# ---------------------------------------------------------------------------

def create_session(db: Session, user_id: int, image_url: str, words: List[str]) -> DictationSession:
	if not words:
		raise ValueError("a dictation session needs at least one word")
	row = DictationSession(user_id=user_id, image_url=image_url, words=json.dumps(words, ensure_ascii=False))
	db.add(row)
	db.commit()
	db.refresh(row)
	return row


def list_sessions(db: Session, user_id: int) -> List[DictationSession]:
	stmt = (
		select(DictationSession)
		.where(DictationSession.user_id == user_id)
		.order_by(DictationSession.created_at.desc(), DictationSession.id.desc())
	)
	return list(db.execute(stmt).scalars().all())


def find_session(db: Session, session_id: int, user_id: int) -> Optional[DictationSession]:
	stmt = select(DictationSession).where(DictationSession.id == session_id, DictationSession.user_id == user_id)
	return db.execute(stmt).scalar_one_or_none()


def get_session(db: Session, session_id: int, user_id: int) -> DictationSession:
	row = find_session(db, session_id, user_id)
	if row is None:
		raise NotFoundError("Session not found", {"session_id": session_id})
	return row


def update_session_text(db: Session, session_id: int, user_id: int, text: str) -> DictationSession:
	row = get_session(db, session_id, user_id)
	row.generated_dictation = text
	db.commit()
	db.refresh(row)
	return row


def update_session_audio(db: Session, session_id: int, user_id: int, audio_url: str) -> DictationSession:
	row = get_session(db, session_id, user_id)
	row.audio_url = audio_url
	db.commit()
	db.refresh(row)
	return row


def delete_session(db: Session, session_id: int, user_id: int) -> int:
	"""Delete one of the caller's sessions. Someone else's session is left untouched."""
	res = db.execute(delete(DictationSession).where(DictationSession.id == session_id, DictationSession.user_id == user_id))
	db.commit()
	if not res.rowcount:
		logger.info("Delete of session %s by user %s matched nothing", session_id, user_id)
	return res.rowcount or 0


def toggle_favorite(db: Session, session_id: int, user_id: int) -> DictationSession:
	row = get_session(db, session_id, user_id)
	row.is_favorite = not bool(row.is_favorite)
	db.commit()
	db.refresh(row)
	return row


def update_tags(db: Session, session_id: int, user_id: int, tags: List[str]) -> DictationSession:
	row = get_session(db, session_id, user_id)
	row.tags = json.dumps(tags, ensure_ascii=False)
	db.commit()
	db.refresh(row)
	return row


# ---------------------------------------------------------------------------
# Corrections (append-only)
# ---------------------------------------------------------------------------

def create_correction(
	db: Session,
	user_id: int,
	*,
	original_text: str,
	user_image_url: str,
	outcome: CorrectionOutcome,
	session_id: Optional[int] = None,
) -> DictationCorrection:
	row = DictationCorrection(
		user_id=user_id,
		session_id=session_id,
		original_text=original_text,
		user_image_url=user_image_url,
		extracted_user_text=outcome.extracted_user_text,
		errors=json.dumps([e.model_dump(by_alias=True) for e in outcome.errors], ensure_ascii=False),
		score=outcome.score,
		total_words=outcome.total_words,
		correct_words=outcome.correct_words,
		feedback=outcome.feedback,
	)
	db.add(row)
	db.commit()
	db.refresh(row)
	return row


def list_corrections(db: Session, user_id: int) -> List[DictationCorrection]:
	stmt = (
		select(DictationCorrection)
		.where(DictationCorrection.user_id == user_id)
		.order_by(DictationCorrection.created_at.desc(), DictationCorrection.id.desc())
	)
	return list(db.execute(stmt).scalars().all())


def get_correction(db: Session, correction_id: int, user_id: int) -> DictationCorrection:
	stmt = select(DictationCorrection).where(DictationCorrection.id == correction_id, DictationCorrection.user_id == user_id)
	row = db.execute(stmt).scalar_one_or_none()
	if row is None:
		raise NotFoundError("Correction not found", {"correction_id": correction_id})
	return row
