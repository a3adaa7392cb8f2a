from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClinicBackend(Enum):
    SQL = "sql"
    HTTP = "http"


class DatabaseConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DATABASE_", env_file=".env", extra="ignore")

    url: str = "sqlite+aiosqlite:///./dentassist.db"
    echo: bool = False


class ResendConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RESEND_", env_file=".env", extra="ignore")

    api_key: str = ""
    from_address: str = "DentAssist-LK <no-reply@resend.dev>"


class ApiConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DENTASSIST_API_", env_file=".env", extra="ignore")

    base_url: str = "http://localhost:8000"
    timeout: float = 30.0


class IdentityConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="IDENTITY_", env_file=".env", extra="ignore")

    user_id_header: str = "X-User-Id"
    email_header: str = "X-User-Email"


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    clinic_timezone: str = "Asia/Colombo"
    app_url: str = "http://localhost:8501"
    admin_email: str = ""
    storage_dir: Path = Path(".dentassist")
    clinic_backend: ClinicBackend = ClinicBackend.HTTP
    database: DatabaseConfig = Field(default_factory=lambda: DatabaseConfig())
    resend: ResendConfig = Field(default_factory=lambda: ResendConfig())
    api: ApiConfig = Field(default_factory=lambda: ApiConfig())
    identity: IdentityConfig = Field(default_factory=lambda: IdentityConfig())
