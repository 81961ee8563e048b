from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="Course Platform")
    app_description: str = Field(default="Course access and enrollment service")
    app_version: str = Field(default="1.0.0")
    app_url: str = Field(default="http://localhost:8000")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)

    # Database Configuration
    # A full URL wins over the individual parts (used for sqlite in tests)
    database_url: Optional[str] = Field(default=None)
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="course-platform")
    db_username: str = Field(default="home")
    db_password: str = Field(default="123")

    # Security Settings
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])
    password_hash_rounds: int = Field(default=12)

    # Session tokens (JWT)
    jwt_secret: str = Field(default="your-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_session_expiration_hours: int = Field(default=24)
    jwt_issuer: str = Field(default="Course Platform")

    # Password reset
    reset_token_expiration_minutes: int = Field(default=10)

    # Media host (signed playback tokens)
    media_signing_key: Optional[str] = Field(default=None)
    media_token_ttl_seconds: int = Field(default=3600)
    media_library_id: str = Field(default="")
    media_embed_base_url: str = Field(default="https://iframe.mediadelivery.net/embed")

    # File Uploads (payment receipts)
    upload_dir: str = Field(default="storage")
    max_receipt_size_mb: int = Field(default=5)
    allowed_receipt_types: List[str] = Field(default=["jpg", "jpeg", "png", "pdf"])

    # Enrollment
    enrollment_allow_resubmission: bool = Field(default=False)
    enrollment_transition_retries: int = Field(default=3)

    # Counter reconciliation
    reconciliation_enabled: bool = Field(default=True)
    reconciliation_interval_minutes: int = Field(default=30)

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # Admin Defaults
    admin_default_name: str = Field(default="Super Admin")
    admin_default_email: str = Field(default="admin@example.com")
    admin_default_password: str = Field(default="Admin@123")

    # Redis / rate limiting
    redis_url: str = Field(default="redis://localhost:6379")
    rate_limit_storage: str = Field(default="")
    rate_limit_enabled: bool = Field(default=True)
    redis_rate_limit: str = Field(default="20/minute")
    login_rate_limit: str = Field(default="5/minute")

    # ============================
    # Generic comma-separated parser
    # ============================
    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, list):
            return value
        return default

    @field_validator("allowed_receipt_types", mode="before")
    def validate_receipt_types(cls, v):
        return cls._parse_csv(v, ["jpg", "jpeg", "png", "pdf"])

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:3000"])

    @field_validator("media_signing_key", mode="before")
    def blank_signing_key_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )

    @property
    def rate_limit_storage_uri(self) -> str:
        return self.rate_limit_storage or self.redis_url

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings():
    try:
        settings = Settings()
        print("✅ Settings loaded successfully!")
        return settings
    except ValidationError as e:
        print("❌ Validation Error:", e)
        raise


settings = load_settings()
