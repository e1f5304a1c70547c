from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str
    direct_database_url: str = ""
    firebase_project_id: str
    google_api_key: str = Field(default="", validation_alias=AliasChoices('google_api_key', 'gemini_api_key', 'llm_api_key'))
    gemini_model_name: str = Field(default="gemini-1.5-flash", validation_alias=AliasChoices('gemini_model_name', 'google_model_name'))
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"
    max_upload_bytes: int = 10 * 1024 * 1024
    jwks_cache_ttl: int = 3600
    slow_request_ms: int = 1000


settings = Settings()
