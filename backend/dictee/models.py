from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Integer, Text
from .db import Base


DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"  # Rachel


class User(Base):
	__tablename__ = "users"
	id = Column(Integer, primary_key=True, autoincrement=True)
	# Identifier returned by the identity provider; unique per user
	open_id = Column(String(64), unique=True, nullable=False, index=True)
	name = Column(Text, nullable=True)
	email = Column(String(320), nullable=True)
	login_method = Column(String(64), nullable=True)
	role = Column(String(16), default="user", nullable=False)  # user | admin
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
	last_signed_in = Column(DateTime, default=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# JWT jti
	session_id = Column(String(64), primary_key=True)
	user_id = Column(Integer, nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ApiKeyRecord(Base):
	"""Per-user credentials and reading preferences (per_user settings mode)."""
	__tablename__ = "api_keys"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(Integer, unique=True, nullable=False)
	gemini_api_key = Column(Text, nullable=False)
	word_interval = Column(Integer, default=5, nullable=False)  # seconds between words
	elevenlabs_api_key = Column(Text, nullable=True)
	elevenlabs_voice_id = Column(String(64), default=DEFAULT_VOICE_ID, nullable=True)
	enable_pauses = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class GlobalSetting(Base):
	"""Flat key/value settings shared by all users (global settings mode)."""
	__tablename__ = "global_settings"
	key = Column(String(64), primary_key=True)
	value = Column(Text, nullable=True)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class DictationSession(Base):
	__tablename__ = "dictation_sessions"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(Integer, nullable=False, index=True)
	image_url = Column(Text, nullable=False)
	words = Column(Text, nullable=False)  # JSON array of words
	generated_dictation = Column(Text, nullable=True)
	audio_url = Column(Text, nullable=True)
	is_favorite = Column(Boolean, default=False, nullable=False)
	tags = Column(Text, nullable=True)  # JSON array of tags
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class DictationCorrection(Base):
	__tablename__ = "dictation_corrections"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(Integer, nullable=False, index=True)
	session_id = Column(Integer, nullable=True)
	original_text = Column(Text, nullable=False)
	user_image_url = Column(Text, nullable=False)
	extracted_user_text = Column(Text, nullable=False)
	errors = Column(Text, nullable=False)  # JSON array of correction errors
	score = Column(Integer, nullable=False)  # out of 100
	total_words = Column(Integer, nullable=False)
	correct_words = Column(Integer, nullable=False)
	feedback = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
