"""
Pytest fixtures for license bot tests.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from licensebot.config import Settings
from licensebot.services.allowlist import AllowList, ApprovedUsers
from licensebot.services.licenses import LicenseStore

OWNER_ID = "100000000000000001"


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary data directory."""
    return Settings(
        discord_token="test_token",
        owner_id=OWNER_ID,
        admin_key="test_admin_key",
        api_url="https://api.example.com/",
        data_dir=tmp_path,
        rate_limit_max=100,
        rate_limit_window_sec=900,
    )


@pytest.fixture
def allowlist(settings):
    settings.licenses_dir.mkdir(parents=True, exist_ok=True)
    return AllowList.for_licenses(settings.licenses_dir)


@pytest.fixture
def approved_users(settings):
    return ApprovedUsers(settings.approved_users_file)


@pytest.fixture
def store(settings, allowlist):
    return LicenseStore(settings.licenses_file, allowlist)


def _make_user(user_id, name="someone"):
    user = MagicMock()
    user.id = int(user_id)
    user.__str__ = MagicMock(return_value=name)
    return user


@pytest.fixture
def make_user():
    """Factory for Discord-like users (id + str() label)."""
    return _make_user


@pytest.fixture
def owner():
    return _make_user(OWNER_ID, "botowner")


@pytest.fixture
def customer():
    return _make_user("200000000000000002", "customer")


@pytest.fixture
def interaction():
    """A slash command interaction whose initial response is still unused."""
    inter = MagicMock()
    inter.command.name = "test"
    inter.response.is_done = MagicMock(return_value=False)
    inter.response.send_message = AsyncMock()
    inter.followup.send = AsyncMock()
    return inter
