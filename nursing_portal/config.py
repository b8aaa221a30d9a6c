"""Application configuration using Pydantic Settings."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Nursing Student Portal"
    debug: bool = False

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "nursing_portal"

    # JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 30

    # AWS S3
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "ap-south-1"
    s3_bucket_files: str = "nursing-portal-files"

    # Upload limits (bytes)
    max_document_size: int = 10 * 1024 * 1024
    max_resource_size: int = 50 * 1024 * 1024

    # Relay webhook (n8n -> Telegram)
    relay_individual_webhook: str = "http://localhost:5678/webhook-test/telegram/individual"
    relay_bulk_webhook: str = "http://localhost:5678/webhook-test/telegram/bulk"
    relay_group_chat_id: str = "-1001234567890"
    relay_timeout_seconds: float = 10.0

    # Seeded instructor account
    admin_email: str = "admin@nursing-portal.local"
    admin_password: str = ""
    admin_full_name: str = "Portal Admin"

    # CORS (comma-separated origins, e.g. "https://portal.example.edu,http://localhost:3000")
    cors_origins: str = "http://localhost:3000"

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        return self


settings = Settings()
