"""Per-account Google Calendar API clients."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from gccli.config import CALENDAR_SCOPE, TOKEN_URL
from gccli.exceptions import AccountNotFoundError
from gccli.storage import Account, AccountStorage

logger = logging.getLogger(__name__)


def build_calendar_client(account: Account) -> Any:
    """Build a Calendar v3 service authorized as the given account.

    The access token may be missing; google-auth refreshes it on the first
    request using the stored refresh token.
    """
    oauth2 = account.oauth2
    creds = GoogleCredentials(
        token=oauth2.access_token,
        refresh_token=oauth2.refresh_token,
        token_uri=TOKEN_URL,
        client_id=oauth2.client_id,
        client_secret=oauth2.client_secret,
        scopes=[CALENDAR_SCOPE],
    )
    return build("calendar", "v3", credentials=creds, cache_discovery=False)


class ClientCache:
    """Lazily builds and memoizes one Calendar client per account email.

    Entries live for the rest of the process; `evict` must be called when an
    account is removed from storage.
    """

    def __init__(
        self,
        storage: AccountStorage,
        build_client: Callable[[Account], Any] = build_calendar_client,
    ):
        self._storage = storage
        self._build_client = build_client
        self._clients: dict[str, Any] = {}

    def get(self, email: str) -> Any:
        """Get or create the Calendar client for an account.

        Raises:
            AccountNotFoundError: If no account is stored for the email.
        """
        if email not in self._clients:
            account = self._storage.get_account(email)
            if account is None:
                raise AccountNotFoundError(email)

            logger.debug(f"Building Calendar client for {email}")
            self._clients[email] = self._build_client(account)

        return self._clients[email]

    def evict(self, email: str):
        self._clients.pop(email, None)

    def __contains__(self, email: str) -> bool:
        return email in self._clients
