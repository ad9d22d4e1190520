from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Deployment / URLs
    public_base_url: str
    local_base_url: str
    issuer: str

    # JWT (mock sign-in tokens)
    jwt_secret: str
    jwt_alg: str
    access_token_ttl_seconds: int

    # Debug
    debug_log_requests: bool

    # Storage
    storage_backend: str
    persist_to_disk: bool
    local_namespace: str
    firestore_project_id: str | None
    degrade_list_failures: bool

    # Home-screen validation
    gemini_api_key: str | None
    vision_model: str
    strict_validation: bool

    @property
    def has_vision_api_key(self) -> bool:
        return bool(self.gemini_api_key)


def get_settings() -> Settings:
    public_base_url = (os.getenv("PUBLIC_BASE_URL", "")).rstrip("/")
    local_base_url = (os.getenv("LOCAL_BASE_URL", "http://127.0.0.1:8000")).rstrip("/")
    issuer = public_base_url or local_base_url

    # NOTE: default is insecure; set JWT_SECRET in production
    jwt_secret = os.getenv("JWT_SECRET", "dev-only-super-secret")
    jwt_alg = os.getenv("JWT_ALG", "HS256")
    access_token_ttl_seconds = _env_int("ACCESS_TOKEN_TTL_SECONDS", 86400)

    debug_log_requests = _env_bool("DEBUG_LOG_REQUESTS", True)

    storage_backend = os.getenv("STORAGE_BACKEND", "local").strip().lower() or "local"
    # Serverless filesystems are ephemeral; default off unless explicitly enabled.
    persist_to_disk = _env_bool("PERSIST_TO_DISK", False)
    local_namespace = os.getenv("LOCAL_STORE_NAMESPACE", "homescreen_")
    firestore_project_id = os.getenv("FIRESTORE_PROJECT_ID") or None
    degrade_list_failures = _env_bool("DEGRADE_LIST_FAILURES", True)

    gemini_api_key = os.getenv("GEMINI_API_KEY") or None
    vision_model = os.getenv("VISION_MODEL", "gemini-2.5-flash")
    strict_validation = _env_bool("STRICT_VALIDATION", False)

    return Settings(
        public_base_url=public_base_url,
        local_base_url=local_base_url,
        issuer=issuer,
        jwt_secret=jwt_secret,
        jwt_alg=jwt_alg,
        access_token_ttl_seconds=access_token_ttl_seconds,
        debug_log_requests=debug_log_requests,
        storage_backend=storage_backend,
        persist_to_disk=persist_to_disk,
        local_namespace=local_namespace,
        firestore_project_id=firestore_project_id,
        degrade_list_failures=degrade_list_failures,
        gemini_api_key=gemini_api_key,
        vision_model=vision_model,
        strict_validation=strict_validation,
    )
