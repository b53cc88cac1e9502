from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .kv_store import DEFAULT_STORE_PATH, InMemoryStore, JsonFileStore, KeyValueStore


# Environment variable names for store selection
ENV_BACKEND = "ONBOARDING_STORE_BACKEND"
ENV_PATH = "ONBOARDING_STORE_PATH"
ENV_BUCKET = "ONBOARDING_STATE_BUCKET"
ENV_KEY = "ONBOARDING_STATE_KEY"  # optional; defaults to "onboarding.json"
ENV_FERNET_KEY = "ONBOARDING_FERNET_KEY"
ENV_REGION = "AWS_REGION"

BACKENDS = ("memory", "file", "s3")
DEFAULT_STATE_KEY = "onboarding.json"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


@dataclass(frozen=True)
class StoreSettings:
    backend: str = "memory"
    path: str = str(DEFAULT_STORE_PATH)
    bucket: Optional[str] = None
    key: str = DEFAULT_STATE_KEY
    fernet_key: Optional[str] = None
    region_name: Optional[str] = None

    @classmethod
    def from_env(cls) -> "StoreSettings":
        backend = (_getenv(ENV_BACKEND, "memory") or "memory").strip().lower()
        if backend not in BACKENDS:
            raise ValueError(
                f"Unknown {ENV_BACKEND}={backend!r}; expected one of {', '.join(BACKENDS)}"
            )
        settings = cls(
            backend=backend,
            path=_getenv(ENV_PATH, str(DEFAULT_STORE_PATH)) or str(DEFAULT_STORE_PATH),
            bucket=_getenv(ENV_BUCKET),
            key=_getenv(ENV_KEY, DEFAULT_STATE_KEY) or DEFAULT_STATE_KEY,
            fernet_key=_getenv(ENV_FERNET_KEY),
            region_name=_getenv(ENV_REGION),
        )
        if backend == "s3":
            missing = [
                name for name, val in [(ENV_BUCKET, settings.bucket), (ENV_FERNET_KEY, settings.fernet_key)] if not val
            ]
            if missing:
                raise RuntimeError(
                    f"Missing required environment variables for S3 store: {', '.join(missing)}"
                )
        return settings


def build_store(settings: StoreSettings, *, s3: Optional[object] = None) -> KeyValueStore:
    """Instantiate the backend named by `settings`.

    `s3` lets callers inject a client for the S3 backend (tests, custom sessions).
    """
    if settings.backend == "memory":
        return InMemoryStore()
    if settings.backend == "file":
        return JsonFileStore(settings.path)
    if settings.backend == "s3":
        # boto3 is only needed for the S3 backend
        from .s3_store import S3KeyValueStore

        if not settings.bucket or not settings.fernet_key:
            raise RuntimeError("S3 store requires a bucket and a Fernet key")
        return S3KeyValueStore(
            s3=s3,
            bucket=settings.bucket,
            key=settings.key,
            fernet_key=settings.fernet_key,
            region_name=settings.region_name,
        )
    raise ValueError(f"Unknown store backend: {settings.backend!r}")
