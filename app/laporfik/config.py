import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    jwt_secret: str
    token_ttl_days: int
    password_hash_method: str
    strict_status_transitions: bool
    debug_errors: bool
    public_base_url: str

    storage_backend: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getflag(name: str, default: bool = False) -> bool:
    raw = _getenv(name).lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    secret_key = _getenv("SECRET_KEY", "change-me")
    env = _getenv("ENV", "development")
    return Settings(
        secret_key=secret_key,
        env=env,
        database_url=_getenv("DATABASE_URL", "sqlite:///laporfik.db"),
        jwt_secret=_getenv("JWT_SECRET", secret_key),
        # Tokens live for 30 days; not tunable per deployment.
        token_ttl_days=30,
        password_hash_method=_getenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:600000"),
        strict_status_transitions=_getflag("STRICT_STATUS_TRANSITIONS"),
        debug_errors=_getflag("DEBUG_ERRORS"),
        public_base_url=_getenv("PUBLIC_BASE_URL", "").rstrip("/"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "JWT_SECRET": s.jwt_secret,
        "TOKEN_TTL_DAYS": s.token_ttl_days,
        "PASSWORD_HASH_METHOD": s.password_hash_method,
        "STRICT_STATUS_TRANSITIONS": s.strict_status_transitions,
        "DEBUG_ERRORS": s.debug_errors,
        "PUBLIC_BASE_URL": s.public_base_url,
        "STORAGE_BACKEND": s.storage_backend,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        # file upload limits (25MB per request; 5MB per image enforced in routes)
        "MAX_CONTENT_LENGTH": 25 * 1024 * 1024,
    }
