from __future__ import annotations

import pytest

from tests.infra.fake_transport import FakeTransport, make_credentials
from ufile_tier.common.config import get_settings
from ufile_tier.infra.storage.ufile_request import UfileRequest


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture
def credentials():
    return make_credentials()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def request_driver(credentials, transport):
    return UfileRequest(credentials, transport)
