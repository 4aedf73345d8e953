from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Primary provider: Gemini
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# Fallback provider: Groq (OpenAI-compatible chat completions)
	groq_api_key: str | None = Field(default=None, validation_alias="GROQ_API_KEY")
	groq_model: str = Field(default="moonshotai/kimi-k2-instruct-0905", validation_alias="GROQ_MODEL")
	groq_base_url: str = Field(default="https://api.groq.com/openai/v1/chat/completions", validation_alias="GROQ_BASE_URL")
	groq_temperature: float = Field(default=0.7, validation_alias="GROQ_TEMPERATURE")
	groq_max_tokens: int = Field(default=4096, validation_alias="GROQ_MAX_TOKENS")

	provider_timeout_seconds: float = Field(default=60.0, validation_alias="PROVIDER_TIMEOUT_SECONDS")

	# OCR
	tesseract_cmd: str | None = Field(default=None, validation_alias="TESSERACT_CMD")
	ocr_language: str = Field(default="eng", validation_alias="OCR_LANGUAGE")

	# Object storage (S3-compatible)
	storage_endpoint_url: str | None = Field(default=None, validation_alias="STORAGE_ENDPOINT_URL")
	storage_region: str = Field(default="us-east-1", validation_alias="STORAGE_REGION")
	storage_access_key_id: str | None = Field(default=None, validation_alias="STORAGE_ACCESS_KEY_ID")
	storage_secret_access_key: str | None = Field(default=None, validation_alias="STORAGE_SECRET_ACCESS_KEY")
	storage_bucket_prefix: str = Field(default="", validation_alias="STORAGE_BUCKET_PREFIX")
	# Public base URL for objects, e.g. "https://cdn.example.com"; S3 virtual-host URL when unset
	storage_public_base_url: str | None = Field(default=None, validation_alias="STORAGE_PUBLIC_BASE_URL")

	# Remote meeting UI
	meeting_url: str = Field(default="http://localhost:5174", validation_alias="MEETING_URL")
	meeting_poll_seconds: float = Field(default=10.0, validation_alias="MEETING_POLL_SECONDS")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	default_requests_limit: int = Field(default=1000, validation_alias="DEFAULT_REQUESTS_LIMIT")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
