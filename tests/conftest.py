"""Shared fixtures."""

from unittest.mock import MagicMock

import pytest

from gccli.calendar import CalendarService
from gccli.clients import ClientCache
from gccli.storage import Account, AccountStorage, OAuth2Info


def make_account(email: str, refresh_token: str = "test-refresh-token") -> Account:
    return Account(
        email=email,
        oauth2=OAuth2Info(
            client_id="test-client-id.apps.googleusercontent.com",
            client_secret="test-client-secret",
            refresh_token=refresh_token,
        ),
    )


@pytest.fixture
def storage(tmp_path):
    """Account storage in a temporary directory."""
    return AccountStorage(config_dir=tmp_path / "gccli")


@pytest.fixture
def api():
    """Mock Calendar v3 service resource."""
    return MagicMock()


@pytest.fixture
def service(storage, api):
    """CalendarService with one stored account whose client is the mock API."""
    storage.add_account(make_account("you@gmail.com"))
    clients = ClientCache(storage, build_client=lambda account: api)
    return CalendarService(storage=storage, clients=clients)
