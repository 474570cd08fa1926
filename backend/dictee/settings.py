from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Gemini (Generative Language API); the API key itself comes from the settings resolver
	gemini_model: str = Field(default="gemini-2.0-flash-exp", validation_alias="GEMINI_MODEL")
	gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta", validation_alias="GEMINI_BASE_URL")

	# ElevenLabs text-to-speech
	elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1", validation_alias="ELEVENLABS_BASE_URL")
	elevenlabs_model: str = Field(default="eleven_multilingual_v2", validation_alias="ELEVENLABS_MODEL")
	elevenlabs_default_voice_id: str = Field(default="21m00Tcm4TlvDq8ikWAM", validation_alias="ELEVENLABS_VOICE_ID")

	# Outbound HTTP timeout (seconds) shared by every upstream call
	http_timeout: float = Field(default=60.0, validation_alias="HTTP_TIMEOUT")

	# Where API keys and prompts live: "global" (admin-managed) or "per_user"
	settings_mode: str = Field(default="global", validation_alias="SETTINGS_MODE")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=60 * 24 * 7, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# Shared secret used by the identity provider to sign login assertions
	identity_secret: str = Field(default="change-me-too", validation_alias="IDENTITY_SECRET")
	# This openId is promoted to admin on login
	owner_open_id: str | None = Field(default=None, validation_alias="OWNER_OPEN_ID")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Object storage (local directory served under /files)
	storage_dir: str = Field(default="./storage", validation_alias="STORAGE_DIR")
	public_base_url: str = Field(default="http://localhost:8000", validation_alias="PUBLIC_BASE_URL")
	max_upload_bytes: int = Field(default=10 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
