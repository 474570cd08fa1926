from __future__ import annotations
import json
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .prompts import DEFAULT_FEEDBACK

ErrorType = Literal["orthographe", "grammaire", "conjugaison", "accord", "ponctuation", "autre"]
ERROR_TYPES = ("orthographe", "grammaire", "conjugaison", "accord", "ponctuation", "autre")


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CorrectionError(CamelModel):
	type: ErrorType = "autre"
	original: str = ""
	user: str = ""
	explanation: str = ""
	position: int = 1

	@field_validator("type", mode="before")
	@classmethod
	def _known_type(cls, value: Any) -> str:
		value = str(value or "").strip().lower()
		return value if value in ERROR_TYPES else "autre"

	@field_validator("original", "user", "explanation", mode="before")
	@classmethod
	def _as_text(cls, value: Any) -> str:
		return "" if value is None else str(value)

	@field_validator("position", mode="before")
	@classmethod
	def _as_position(cls, value: Any) -> int:
		try:
			return max(1, int(value))
		except (TypeError, ValueError):
			return 1


def _count(value: Any) -> int:
	try:
		return max(0, int(value))
	except (TypeError, ValueError):
		return 0


class AnalysisPayload(CamelModel):
	"""The JSON object the model returns for a correction, validated and normalized."""
	errors: List[CorrectionError] = Field(default_factory=list)
	total_words: int = 0
	correct_words: int = 0
	feedback: str = DEFAULT_FEEDBACK

	@field_validator("errors", mode="before")
	@classmethod
	def _error_list(cls, value: Any) -> list:
		if not isinstance(value, list):
			return []
		return [e for e in value if isinstance(e, dict)]

	@field_validator("total_words", "correct_words", mode="before")
	@classmethod
	def _counts(cls, value: Any) -> int:
		return _count(value)

	@field_validator("feedback", mode="before")
	@classmethod
	def _feedback(cls, value: Any) -> str:
		text = str(value).strip() if value is not None else ""
		return text or DEFAULT_FEEDBACK

	@model_validator(mode="after")
	def _bounded(self) -> "AnalysisPayload":
		if self.correct_words > self.total_words:
			self.correct_words = self.total_words
		return self


class CorrectionOutcome(CamelModel):
	extracted_user_text: str
	errors: List[CorrectionError]
	total_words: int
	correct_words: int
	score: int
	feedback: str


class DictationSessionOut(CamelModel):
	id: int
	user_id: int
	image_url: str
	words: List[str]
	generated_dictation: Optional[str] = None
	audio_url: Optional[str] = None
	is_favorite: bool = False
	tags: List[str] = Field(default_factory=list)
	created_at: datetime

	@classmethod
	def from_row(cls, row: Any) -> "DictationSessionOut":
		return cls(
			id=row.id,
			user_id=row.user_id,
			image_url=row.image_url,
			words=json.loads(row.words),
			generated_dictation=row.generated_dictation,
			audio_url=row.audio_url,
			is_favorite=bool(row.is_favorite),
			tags=json.loads(row.tags) if row.tags else [],
			created_at=row.created_at,
		)


class CorrectionOut(CamelModel):
	id: int
	user_id: int
	session_id: Optional[int] = None
	original_text: str
	user_image_url: str
	extracted_user_text: str
	errors: List[CorrectionError]
	score: int
	total_words: int
	correct_words: int
	feedback: Optional[str] = None
	created_at: datetime

	@classmethod
	def from_row(cls, row: Any) -> "CorrectionOut":
		return cls(
			id=row.id,
			user_id=row.user_id,
			session_id=row.session_id,
			original_text=row.original_text,
			user_image_url=row.user_image_url,
			extracted_user_text=row.extracted_user_text,
			errors=[CorrectionError.model_validate(e) for e in json.loads(row.errors)],
			score=row.score,
			total_words=row.total_words,
			correct_words=row.correct_words,
			feedback=row.feedback,
			created_at=row.created_at,
		)
