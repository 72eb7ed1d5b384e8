from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Full generateContent URL; overrides the provider-derived one when set
	gemini_base_url: str | None = Field(default=None, validation_alias="GEMINI_BASE_URL")
	gemini_temperature: float = Field(default=0.5, validation_alias="GEMINI_TEMPERATURE")
	gemini_timeout_seconds: float = Field(default=60.0, validation_alias="GEMINI_TIMEOUT_SECONDS")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=480, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	admin_username: str = Field(default="admin", validation_alias="ADMIN_USERNAME")
	admin_password: str = Field(default="admin123", validation_alias="ADMIN_PASSWORD")
	# Used for students that never had a password set
	student_default_password: str = Field(default="123456", validation_alias="STUDENT_DEFAULT_PASSWORD")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
	roster_storage_key: str = Field(default="fitnessAssessmentStudents", validation_alias="ROSTER_STORAGE_KEY")

	# Logging: "text" or "json"
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	log_format: str = Field(default="text", validation_alias="LOG_FORMAT")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
