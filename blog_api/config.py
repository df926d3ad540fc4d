"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Relational database (MySQL protocol) ──────────────────────────────
    db_host: str = "mysql"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "blog"
    # Full SQLAlchemy URL; wins over the individual db_* fields when set
    database_url: Optional[str] = None

    @property
    def db_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Object storage (MinIO / S3-compatible) ────────────────────────────
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_use_ssl: bool = False
    storage_bucket: str = "images"
    # Base for public object URLs, e.g. a CDN in front of the bucket
    storage_public_base_url: Optional[str] = None
    allow_anonymous_uploads: bool = False

    @property
    def storage_endpoint_url(self) -> str:
        scheme = "https" if self.minio_use_ssl else "http"
        return f"{scheme}://{self.minio_endpoint}"

    # ── Identity provider ─────────────────────────────────────────────────
    identity_jwt_key: str = ""
    identity_jwks_url: Optional[str] = None
    identity_jwt_algorithms: list[str] = ["RS256"]
    identity_jwt_issuer: Optional[str] = None
    identity_jwt_leeway: int = 5          # seconds of clock skew tolerated
    identity_session_cookie: str = "__session"
    clerk_webhook_secret: str = ""

    # ── API client ────────────────────────────────────────────────────────
    api_base_url: str = "http://localhost:8000"
    api_timeout_seconds: float = 5.0

    # ── Observability ─────────────────────────────────────────────────────
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "blog-api"
    environment: str = "development"
    tracing_enabled: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
