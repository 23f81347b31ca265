from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SESSION_SECRET = "foodcourt-session-secret"
DEFAULT_ADMIN_PASSWORD = "admin123"
MIN_SECRET_LENGTH = 32
MIN_BCRYPT_ROUNDS = 4


class Settings(BaseSettings):
    app_name: str = "Food Court Ordering API"

    database_url: str = Field(
        default="sqlite+pysqlite:///./foodcourt.db",
        validation_alias=AliasChoices("FOODCOURT_DATABASE_URL", "DATABASE_URL"),
    )
    testing: bool = Field(default=False, validation_alias="FOODCOURT_TESTING")
    auto_create_schema: bool = True
    require_migrations: bool = False
    cors_allowed_origins: str = "http://localhost:3000"

    admin_username: str = "admin"
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    admin_name: str = "Administrator"

    session_secret: str = DEFAULT_SESSION_SECRET
    admin_session_ttl_s: int = 8 * 60 * 60
    merchant_session_ttl_s: int = 7 * 24 * 60 * 60
    cookie_secure: bool = False
    bcrypt_rounds: int = 12

    xendit_api_key: str = ""
    xendit_webhook_token: str = ""
    xendit_base_url: str = "https://api.xendit.co"
    xendit_timeout_s: float = 10.0
    invoice_duration_s: int = 24 * 60 * 60

    public_base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("PUBLIC_BASE_URL", "NEXT_PUBLIC_BASE_URL"),
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        if value < MIN_BCRYPT_ROUNDS or value > 31:
            raise ValueError(f"BCRYPT_ROUNDS must be between {MIN_BCRYPT_ROUNDS} and 31")
        return value

    @field_validator("public_base_url", "xendit_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")


settings = Settings()


def allowed_origins() -> list[str]:
    return [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]


def ensure_secure_runtime_settings() -> None:
    """Fail fast when production-like runtime uses insecure defaults."""
    if settings.testing:
        return
    if settings.session_secret == DEFAULT_SESSION_SECRET:
        raise RuntimeError(
            "SESSION_SECRET must be set to a non-default value when FOODCOURT_TESTING is false"
        )
    if len(settings.session_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            "SESSION_SECRET must be at least "
            f"{MIN_SECRET_LENGTH} characters when FOODCOURT_TESTING is false"
        )
    if settings.admin_password == DEFAULT_ADMIN_PASSWORD:
        raise RuntimeError(
            "ADMIN_PASSWORD must be set to a non-default value when FOODCOURT_TESTING is false"
        )
    if _is_sqlite_url(settings.database_url):
        raise RuntimeError(
            "FOODCOURT_DATABASE_URL must use postgres when FOODCOURT_TESTING is false"
        )


def _is_sqlite_url(database_url: str) -> bool:
    value = database_url.strip().lower()
    return value.startswith("sqlite")
