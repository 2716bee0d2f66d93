from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

# UFile RetCode reported when the target bucket does not exist.
DEFAULT_BUCKET_NOT_EXIST_CODE = 15010


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


@dataclass(frozen=True, slots=True)
class CloudCredentials:
    """Account and addressing data shared by every request of a session."""

    public_key: str
    private_key: str
    domain_name: str
    bucket_host: str
    bucket_region: str
    bucket_prefix: str = ""
    dest_bucket: str | None = None

    def effective_bucket(self, bucket: str) -> str:
        """Apply the destination override and the bucket prefix."""
        return self.bucket_prefix + (self.dest_bucket or bucket)


@dataclass
class Settings:
    UFILE_PUBLIC_KEY: str = ""
    UFILE_PRIVATE_KEY: str = ""
    UFILE_DOMAIN_NAME: str = "cn-bj.ufileos.com"
    UFILE_BUCKET_HOST: str = "api.ucloud.cn"
    UFILE_BUCKET_REGION: str = "cn-bj"
    UFILE_BUCKET_PREFIX: str = ""
    UFILE_DEST_BUCKET: str | None = None
    UFILE_USE_SSL: bool = False
    UFILE_TIMEOUT_SECONDS: float = 60.0
    UFILE_BUCKET_NOT_EXIST_CODE: int = DEFAULT_BUCKET_NOT_EXIST_CODE
    ENABLE_METRICS: bool = True
    TRACE_HTTP: bool = False

    def __post_init__(self) -> None:
        if self.UFILE_TIMEOUT_SECONDS <= 0:
            raise ValueError("UFILE_TIMEOUT_SECONDS must be positive.")
        if not self.UFILE_DOMAIN_NAME:
            raise ValueError("UFILE_DOMAIN_NAME must not be empty.")

    @property
    def scheme(self) -> str:
        return "https" if self.UFILE_USE_SSL else "http"

    def cloud_credentials(self) -> CloudCredentials:
        return CloudCredentials(
            public_key=self.UFILE_PUBLIC_KEY,
            private_key=self.UFILE_PRIVATE_KEY,
            domain_name=self.UFILE_DOMAIN_NAME,
            bucket_host=self.UFILE_BUCKET_HOST,
            bucket_region=self.UFILE_BUCKET_REGION,
            bucket_prefix=self.UFILE_BUCKET_PREFIX,
            dest_bucket=self.UFILE_DEST_BUCKET or None,
        )

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            UFILE_PUBLIC_KEY=os.environ.get("UFILE_PUBLIC_KEY", cls.UFILE_PUBLIC_KEY),
            UFILE_PRIVATE_KEY=os.environ.get(
                "UFILE_PRIVATE_KEY", cls.UFILE_PRIVATE_KEY
            ),
            UFILE_DOMAIN_NAME=os.environ.get(
                "UFILE_DOMAIN_NAME", cls.UFILE_DOMAIN_NAME
            ),
            UFILE_BUCKET_HOST=os.environ.get(
                "UFILE_BUCKET_HOST", cls.UFILE_BUCKET_HOST
            ),
            UFILE_BUCKET_REGION=os.environ.get(
                "UFILE_BUCKET_REGION", cls.UFILE_BUCKET_REGION
            ),
            UFILE_BUCKET_PREFIX=os.environ.get(
                "UFILE_BUCKET_PREFIX", cls.UFILE_BUCKET_PREFIX
            ),
            UFILE_DEST_BUCKET=os.environ.get("UFILE_DEST_BUCKET") or None,
            UFILE_USE_SSL=_as_bool(os.environ.get("UFILE_USE_SSL"), cls.UFILE_USE_SSL),
            UFILE_TIMEOUT_SECONDS=float(
                os.environ.get("UFILE_TIMEOUT_SECONDS", cls.UFILE_TIMEOUT_SECONDS)
            ),
            UFILE_BUCKET_NOT_EXIST_CODE=int(
                os.environ.get(
                    "UFILE_BUCKET_NOT_EXIST_CODE", cls.UFILE_BUCKET_NOT_EXIST_CODE
                )
            ),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            TRACE_HTTP=_as_bool(os.environ.get("TRACE_HTTP"), cls.TRACE_HTTP),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
