import pytest

from dictee import repository
from dictee.errors import AuthorizationError, ConfigurationError
from dictee.prompts import DEFAULT_DICTATION_PROMPT
from dictee.services.settings_resolver import (
	GLOBAL_MISSING,
	PER_USER_MISSING,
	GlobalSettingsResolver,
	PerUserSettingsResolver,
	PublicSettings,
	make_resolver,
)


@pytest.fixture
def user(db):
	return repository.upsert_user(db, "alice")


@pytest.fixture
def admin(db):
	return repository.upsert_user(db, "root", role="admin")


class TestPerUser:

	def test_missing_record_is_a_configuration_error(self, db, user):
		with pytest.raises(ConfigurationError) as info:
			PerUserSettingsResolver(db).resolve(user)
		assert info.value.message == PER_USER_MISSING

	def test_resolves_saved_record(self, db, user):
		repository.upsert_api_key(db, user.id, "g-key", word_interval=8, elevenlabs_api_key="e-key", enable_pauses=False)
		config = PerUserSettingsResolver(db).resolve(user)
		assert config.gemini_api_key == "g-key"
		assert config.word_interval == 8
		assert config.tts_enabled
		assert config.enable_pauses is False
		assert config.prompt_dictation == DEFAULT_DICTATION_PROMPT

	def test_optional_resolution_has_no_keys(self, db, user):
		config = PerUserSettingsResolver(db).resolve_optional(user)
		assert config.gemini_api_key is None
		assert not config.tts_enabled
		with pytest.raises(ConfigurationError):
			config.require_gemini_key()

	def test_other_users_key_is_not_shared(self, db, user):
		other = repository.upsert_user(db, "bob")
		repository.upsert_api_key(db, other.id, "bob-key")
		with pytest.raises(ConfigurationError):
			PerUserSettingsResolver(db).resolve(user)


class TestGlobal:

	def test_missing_key_points_at_administrator(self, db, user):
		with pytest.raises(ConfigurationError) as info:
			GlobalSettingsResolver(db).resolve(user)
		assert info.value.message == GLOBAL_MISSING

	def test_parses_stored_strings(self, db, user):
		repository.set_global_settings(db, {
			"geminiApiKey": "g",
			"wordInterval": "7",
			"enablePauses": "false",
			"promptDictation": "Écris une dictée avec [liste des mots].",
		})
		config = GlobalSettingsResolver(db).resolve(user)
		assert config.word_interval == 7
		assert config.enable_pauses is False
		assert config.prompt_dictation == "Écris une dictée avec [liste des mots]."
		assert not config.tts_enabled

	def test_bad_numbers_fall_back_to_defaults(self, db, user):
		repository.set_global_settings(db, {"geminiApiKey": "g", "wordInterval": "soon"})
		assert GlobalSettingsResolver(db).resolve(user).word_interval == 5

	def test_only_admins_write(self, db, user, admin):
		resolver = GlobalSettingsResolver(db)
		with pytest.raises(AuthorizationError):
			resolver.write(user, {"geminiApiKey": "stolen"})
		with pytest.raises(AuthorizationError):
			resolver.read_all(user)
		saved = resolver.write(admin, {"geminiApiKey": "g", "elevenlabsApiKey": None})
		assert saved == {"geminiApiKey": "g"}

	def test_rejects_unknown_keys(self, db, admin):
		with pytest.raises(ValueError):
			GlobalSettingsResolver(db).write(admin, {"somethingElse": "x"})

	def test_public_view_hides_secrets(self, db, user):
		repository.set_global_settings(db, {"geminiApiKey": "g", "elevenlabsApiKey": "e", "elevenlabsVoiceId": "v9"})
		public = PublicSettings.from_config(GlobalSettingsResolver(db).resolve_optional(user))
		dumped = public.model_dump()
		assert dumped == {"word_interval": 5, "enable_pauses": True, "voice_id": "v9", "tts_enabled": True}


def test_make_resolver_rejects_unknown_mode(db):
	assert isinstance(make_resolver(db, "global"), GlobalSettingsResolver)
	assert isinstance(make_resolver(db, "per_user"), PerUserSettingsResolver)
	with pytest.raises(ValueError):
		make_resolver(db, "both")
