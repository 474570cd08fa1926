"""
Where credentials and prompts come from.

Two deployments exist and exactly one is active (``SETTINGS_MODE``):

- ``per_user``: each user stores their own keys in ``api_keys``.
- ``global``: one admin-managed key/value mapping serves everybody.

Both resolve to the same immutable ``ResolvedConfig`` which is then passed to
the services; services never read settings storage themselves.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.orm import Session

from .. import repository
from ..errors import AuthorizationError, ConfigurationError
from ..models import DEFAULT_VOICE_ID, User
from ..prompts import DEFAULT_ANALYSIS_PROMPT, DEFAULT_DICTATION_PROMPT, DEFAULT_EXTRACTION_PROMPT
from ..schemas import CamelModel

MODE_GLOBAL = "global"
MODE_PER_USER = "per_user"

DEFAULT_WORD_INTERVAL = 5

# Keys of the global settings mapping
GEMINI_API_KEY = "geminiApiKey"
ELEVENLABS_API_KEY = "elevenlabsApiKey"
ELEVENLABS_VOICE_ID = "elevenlabsVoiceId"
ENABLE_PAUSES = "enablePauses"
WORD_INTERVAL = "wordInterval"
PROMPT_EXTRACTION = "promptExtraction"
PROMPT_DICTATION = "promptDictation"
PROMPT_ANALYSIS = "promptAnalysis"

GLOBAL_KEYS = (
	GEMINI_API_KEY, ELEVENLABS_API_KEY, ELEVENLABS_VOICE_ID, ENABLE_PAUSES,
	WORD_INTERVAL, PROMPT_EXTRACTION, PROMPT_DICTATION, PROMPT_ANALYSIS,
)
SECRET_KEYS = frozenset({GEMINI_API_KEY, ELEVENLABS_API_KEY})

PER_USER_MISSING = "Aucune clé API Gemini configurée. Veuillez configurer votre clé API dans les paramètres."
GLOBAL_MISSING = "Aucune clé API Gemini configurée. Contactez un administrateur pour configurer l'application."


@dataclass(frozen=True)
class ResolvedConfig:
	gemini_api_key: Optional[str]
	word_interval: int = DEFAULT_WORD_INTERVAL
	elevenlabs_api_key: Optional[str] = None
	elevenlabs_voice_id: str = DEFAULT_VOICE_ID
	enable_pauses: bool = True
	prompt_extraction: str = DEFAULT_EXTRACTION_PROMPT
	prompt_dictation: str = DEFAULT_DICTATION_PROMPT
	prompt_analysis: str = DEFAULT_ANALYSIS_PROMPT
	missing_key_message: str = PER_USER_MISSING

	@property
	def tts_enabled(self) -> bool:
		return bool(self.elevenlabs_api_key)

	def require_gemini_key(self) -> str:
		if not self.gemini_api_key:
			raise ConfigurationError(self.missing_key_message)
		return self.gemini_api_key


class PublicSettings(CamelModel):
	"""Non-secret view that every authenticated user may read."""
	word_interval: int
	enable_pauses: bool
	voice_id: str
	tts_enabled: bool

	@classmethod
	def from_config(cls, config: ResolvedConfig) -> "PublicSettings":
		return cls(
			word_interval=config.word_interval,
			enable_pauses=config.enable_pauses,
			voice_id=config.elevenlabs_voice_id,
			tts_enabled=config.tts_enabled,
		)


def _as_bool(value: Optional[str], default: bool = True) -> bool:
	if value is None or value == "":
		return default
	return value.strip().lower() in ("1", "true", "yes", "on")


def _as_int(value: Optional[str], default: int) -> int:
	try:
		return int(value) if value not in (None, "") else default
	except ValueError:
		return default


class PerUserSettingsResolver:
	mode = MODE_PER_USER

	def __init__(self, db: Session) -> None:
		self.db = db

	def resolve(self, user: User) -> ResolvedConfig:
		row = repository.get_api_key(self.db, user.id)
		if row is None:
			raise ConfigurationError(PER_USER_MISSING)
		return ResolvedConfig(
			gemini_api_key=row.gemini_api_key,
			word_interval=row.word_interval or DEFAULT_WORD_INTERVAL,
			elevenlabs_api_key=row.elevenlabs_api_key or None,
			elevenlabs_voice_id=row.elevenlabs_voice_id or DEFAULT_VOICE_ID,
			enable_pauses=bool(row.enable_pauses),
			missing_key_message=PER_USER_MISSING,
		)

	def resolve_optional(self, user: User) -> ResolvedConfig:
		"""Like ``resolve`` but falls back to defaults (no keys) instead of failing."""
		try:
			return self.resolve(user)
		except ConfigurationError:
			return ResolvedConfig(gemini_api_key=None, missing_key_message=PER_USER_MISSING)


class GlobalSettingsResolver:
	mode = MODE_GLOBAL

	def __init__(self, db: Session) -> None:
		self.db = db

	def _config(self) -> ResolvedConfig:
		values = repository.get_all_global_settings(self.db)
		return ResolvedConfig(
			gemini_api_key=values.get(GEMINI_API_KEY) or None,
			word_interval=_as_int(values.get(WORD_INTERVAL), DEFAULT_WORD_INTERVAL),
			elevenlabs_api_key=values.get(ELEVENLABS_API_KEY) or None,
			elevenlabs_voice_id=values.get(ELEVENLABS_VOICE_ID) or DEFAULT_VOICE_ID,
			enable_pauses=_as_bool(values.get(ENABLE_PAUSES)),
			prompt_extraction=values.get(PROMPT_EXTRACTION) or DEFAULT_EXTRACTION_PROMPT,
			prompt_dictation=values.get(PROMPT_DICTATION) or DEFAULT_DICTATION_PROMPT,
			prompt_analysis=values.get(PROMPT_ANALYSIS) or DEFAULT_ANALYSIS_PROMPT,
			missing_key_message=GLOBAL_MISSING,
		)

	def resolve(self, user: User) -> ResolvedConfig:
		config = self._config()
		config.require_gemini_key()
		return config

	def resolve_optional(self, user: User) -> ResolvedConfig:
		return self._config()

	def read_all(self, user: User) -> Dict[str, str]:
		require_admin(user)
		return repository.get_all_global_settings(self.db)

	def write(self, user: User, values: Dict[str, Optional[str]]) -> Dict[str, str]:
		require_admin(user)
		unknown = set(values) - set(GLOBAL_KEYS)
		if unknown:
			raise ValueError(f"unknown settings: {', '.join(sorted(unknown))}")
		repository.set_global_settings(self.db, {k: v for k, v in values.items() if v is not None})
		return repository.get_all_global_settings(self.db)


def require_admin(user: User) -> None:
	if user.role != "admin":
		raise AuthorizationError("Accès réservé aux administrateurs")


def make_resolver(db: Session, mode: str):
	if mode == MODE_PER_USER:
		return PerUserSettingsResolver(db)
	if mode == MODE_GLOBAL:
		return GlobalSettingsResolver(db)
	raise ValueError(f"unknown settings mode: {mode!r}")
