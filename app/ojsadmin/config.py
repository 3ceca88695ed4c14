import os
from dataclasses import dataclass

DEFAULT_RELEASE_FEED = "https://api.github.com/repos/pkp/ojs/releases/latest"

# Largest accepted upload (site logo, custom stylesheet, issue cover).
UPLOAD_LIMIT_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class S3Settings:
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    storage_backend: str
    s3: S3Settings
    version_check_enabled: bool
    version_check_url: str

    @property
    def is_production(self) -> bool:
        return self.env in ("prod", "production")


def _env(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _env_flag(name: str) -> bool:
    return _env(name).lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    return Settings(
        secret_key=_env("SECRET_KEY", "change-me"),
        env=_env("ENV", "development"),
        database_url=_env("DATABASE_URL", "sqlite:///ojsadmin.db"),
        storage_backend=_env("STORAGE_BACKEND", "local").lower(),
        s3=S3Settings(
            endpoint=_env("S3_ENDPOINT"),
            region=_env("S3_REGION", "nyc3"),
            bucket=_env("S3_BUCKET"),
            access_key_id=_env("S3_ACCESS_KEY_ID"),
            secret_access_key=_env("S3_SECRET_ACCESS_KEY"),
        ),
        version_check_enabled=_env_flag("VERSION_CHECK_ENABLED"),
        version_check_url=_env("VERSION_CHECK_URL", DEFAULT_RELEASE_FEED),
    )


def load_config() -> dict:
    """Flat mapping for app.config."""
    st = load_settings()
    return {
        "SECRET_KEY": st.secret_key,
        "ENV": st.env,
        "DATABASE_URL": st.database_url,
        "STORAGE_BACKEND": st.storage_backend,
        "S3_ENDPOINT": st.s3.endpoint,
        "S3_REGION": st.s3.region,
        "S3_BUCKET": st.s3.bucket,
        "S3_ACCESS_KEY_ID": st.s3.access_key_id,
        "S3_SECRET_ACCESS_KEY": st.s3.secret_access_key,
        "VERSION_CHECK_ENABLED": st.version_check_enabled,
        "VERSION_CHECK_URL": st.version_check_url,
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": st.is_production,
        "MAX_CONTENT_LENGTH": UPLOAD_LIMIT_BYTES,
    }
