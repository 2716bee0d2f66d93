from __future__ import annotations

import os

import pytest

from ufile_tier.common import config
from ufile_tier.common.config import CloudCredentials, Settings, get_settings

UFILE_ENV_KEYS = [
    "UFILE_PUBLIC_KEY",
    "UFILE_PRIVATE_KEY",
    "UFILE_DOMAIN_NAME",
    "UFILE_BUCKET_HOST",
    "UFILE_BUCKET_REGION",
    "UFILE_BUCKET_PREFIX",
    "UFILE_DEST_BUCKET",
    "UFILE_USE_SSL",
    "UFILE_TIMEOUT_SECONDS",
    "UFILE_BUCKET_NOT_EXIST_CODE",
    "ENABLE_METRICS",
    "TRACE_HTTP",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # the .env loader writes into os.environ
    monkeypatch.setattr(os, "environ", dict(os.environ))
    for key in UFILE_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config, "ENV_FILE", tmp_path / ".env")
    return tmp_path


def test_defaults(clean_env):
    settings = Settings.from_environment()

    assert settings.UFILE_USE_SSL is False
    assert settings.scheme == "http"
    assert settings.UFILE_BUCKET_NOT_EXIST_CODE == config.DEFAULT_BUCKET_NOT_EXIST_CODE
    assert settings.UFILE_DEST_BUCKET is None
    assert settings.ENABLE_METRICS is True


def test_reads_environment(clean_env, monkeypatch):
    monkeypatch.setenv("UFILE_PUBLIC_KEY", "pub")
    monkeypatch.setenv("UFILE_PRIVATE_KEY", "priv")
    monkeypatch.setenv("UFILE_BUCKET_PREFIX", "gw-")
    monkeypatch.setenv("UFILE_DEST_BUCKET", "archive")
    monkeypatch.setenv("UFILE_USE_SSL", "yes")
    monkeypatch.setenv("UFILE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("UFILE_BUCKET_NOT_EXIST_CODE", "-30010")

    settings = get_settings()

    assert settings.scheme == "https"
    assert settings.UFILE_TIMEOUT_SECONDS == 2.5
    assert settings.UFILE_BUCKET_NOT_EXIST_CODE == -30010
    credentials = settings.cloud_credentials()
    assert credentials.public_key == "pub"
    assert credentials.effective_bucket("b") == "gw-archive"


def test_env_file_does_not_override_environment(clean_env, monkeypatch):
    (clean_env / ".env").write_text(
        "# comment\nUFILE_BUCKET_REGION='us-ca'\nUFILE_PUBLIC_KEY=from-file\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("UFILE_PUBLIC_KEY", "from-env")

    settings = Settings.from_environment()

    assert settings.UFILE_BUCKET_REGION == "us-ca"
    assert settings.UFILE_PUBLIC_KEY == "from-env"


def test_empty_dest_bucket_means_no_override(clean_env, monkeypatch):
    monkeypatch.setenv("UFILE_DEST_BUCKET", "")

    credentials = Settings.from_environment().cloud_credentials()

    assert credentials.dest_bucket is None
    assert credentials.effective_bucket("b") == "b"


def test_rejects_non_positive_timeout():
    with pytest.raises(ValueError, match="UFILE_TIMEOUT_SECONDS"):
        Settings(UFILE_TIMEOUT_SECONDS=0)


def test_effective_bucket():
    credentials = CloudCredentials(
        public_key="p",
        private_key="s",
        domain_name="d",
        bucket_host="h",
        bucket_region="r",
        bucket_prefix="pre-",
    )

    assert credentials.effective_bucket("b") == "pre-b"
