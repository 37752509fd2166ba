"""JSON file storage for OAuth client credentials and account tokens.

Two independent documents are kept in the config directory:
    credentials.json - {"clientId", "clientSecret"} shared by all accounts
    accounts.json    - [{"email", "oauth2": {"clientId", "clientSecret",
                        "refreshToken", "accessToken"?}}, ...]

Every mutation rewrites the whole accounts document, which is fine for the
handful of accounts a single user has.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gccli.config import ensure_config_dir
from gccli.exceptions import DuplicateAccountError, InvalidCredentialsFileError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedCredentials:
    """OAuth client registration used to authorize every account."""

    client_id: str
    client_secret: str

    def to_dict(self) -> dict[str, str]:
        return {"clientId": self.client_id, "clientSecret": self.client_secret}


@dataclass(frozen=True)
class OAuth2Info:
    """OAuth material stored for one account."""

    client_id: str
    client_secret: str
    refresh_token: str
    access_token: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "refreshToken": self.refresh_token,
        }
        if self.access_token:
            data["accessToken"] = self.access_token
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OAuth2Info:
        for key in ("clientId", "clientSecret", "refreshToken"):
            if not isinstance(data[key], str):
                raise ValueError(f"oauth2.{key} must be a string")
        if not isinstance(data.get("accessToken") or "", str):
            raise ValueError("oauth2.accessToken must be a string")
        return cls(
            client_id=data["clientId"],
            client_secret=data["clientSecret"],
            refresh_token=data["refreshToken"],
            access_token=data.get("accessToken"),
        )


@dataclass(frozen=True)
class Account:
    """An authorized Google account."""

    email: str
    oauth2: OAuth2Info

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "oauth2": self.oauth2.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Account:
        if not isinstance(data["email"], str):
            raise ValueError("email must be a string")
        return cls(email=data["email"], oauth2=OAuth2Info.from_dict(data["oauth2"]))


def parse_credentials_file(path: str | Path) -> SharedCredentials:
    """Read OAuth client credentials from a file.

    Accepts the client secret file downloaded from Google Cloud Console
    (``installed`` or ``web`` app) as well as gccli's own stored format.

    Args:
        path: Path to the JSON credentials file.

    Returns:
        The client id and secret.

    Raises:
        InvalidCredentialsFileError: If the file is missing, not JSON, or
            has no client id/secret.
    """
    source = Path(path).expanduser()
    if not source.exists():
        raise InvalidCredentialsFileError(str(source), "file not found")

    try:
        with open(source) as f:
            creds = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidCredentialsFileError(str(source), f"invalid JSON: {e}") from e

    if not isinstance(creds, dict):
        raise InvalidCredentialsFileError(str(source), "expected a JSON object")

    # Handle both web and installed app credential formats
    app_creds = creds.get("installed") or creds.get("web") or {}
    client_id = app_creds.get("client_id") or creds.get("clientId")
    client_secret = app_creds.get("client_secret") or creds.get("clientSecret")

    if not client_id or not client_secret:
        raise InvalidCredentialsFileError(str(source), "missing client id or client secret")

    return SharedCredentials(client_id=client_id, client_secret=client_secret)


class AccountStorage:
    """Persists shared OAuth credentials and the account collection.

    Example:
        >>> storage = AccountStorage()
        >>> storage.set_credentials("id.apps.googleusercontent.com", "secret")
        >>> storage.has_account("you@gmail.com")
        False
    """

    def __init__(self, config_dir: str | Path | None = None):
        """Initialize storage, creating the config directory if needed.

        Args:
            config_dir: Directory holding the JSON files. Defaults to ~/.gccli
                (or $GCCLI_HOME).
        """
        self.config_dir = ensure_config_dir(Path(config_dir) if config_dir else None)
        self.accounts_path = self.config_dir / "accounts.json"
        self.credentials_path = self.config_dir / "credentials.json"

        self._accounts: dict[str, Account] = self._load_accounts()

    def _load_accounts(self) -> dict[str, Account]:
        """Load accounts, treating a missing or corrupt file as empty."""
        if not self.accounts_path.exists():
            return {}

        try:
            with open(self.accounts_path) as f:
                data = json.load(f)
            accounts = [Account.from_dict(item) for item in data]
            loaded = {account.email: account for account in accounts}
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable accounts file {self.accounts_path}: {e}")
            return {}

        logger.debug(f"Loaded {len(loaded)} account(s)")
        return loaded

    def _save_accounts(self):
        data = [account.to_dict() for account in self._accounts.values()]
        self._write_json(self.accounts_path, data)

    def _write_json(self, path: Path, data: Any):
        """Write JSON via a temporary file so readers never see a partial file."""
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)

    # =========================================================================
    # Shared credentials
    # =========================================================================

    def set_credentials(self, client_id: str, client_secret: str):
        """Store the OAuth client credentials, replacing any existing ones."""
        creds = SharedCredentials(client_id=client_id, client_secret=client_secret)
        self._write_json(self.credentials_path, creds.to_dict())
        logger.info(f"Credentials saved to {self.credentials_path}")

    def get_credentials(self) -> SharedCredentials | None:
        """Get the stored OAuth client credentials.

        Returns:
            SharedCredentials, or None if not configured or unreadable.
        """
        if not self.credentials_path.exists():
            return None

        try:
            with open(self.credentials_path) as f:
                data = json.load(f)
            client_id, client_secret = data["clientId"], data["clientSecret"]
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Ignoring unreadable credentials file {self.credentials_path}: {e}")
            return None

        if not all(isinstance(v, str) and v for v in (client_id, client_secret)):
            logger.warning(f"Ignoring incomplete credentials file {self.credentials_path}")
            return None

        return SharedCredentials(client_id=client_id, client_secret=client_secret)

    # =========================================================================
    # Accounts
    # =========================================================================

    def has_account(self, email: str) -> bool:
        return email in self._accounts

    def get_account(self, email: str) -> Account | None:
        return self._accounts.get(email)

    def list_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    def add_account(self, account: Account):
        """Add a new account and persist the collection.

        Raises:
            DuplicateAccountError: If an account with the same email exists.
        """
        if account.email in self._accounts:
            raise DuplicateAccountError(account.email)

        self._accounts[account.email] = account
        self._save_accounts()
        logger.info(f"Account added: {account.email}")

    def delete_account(self, email: str) -> bool:
        """Remove an account.

        Returns:
            True if the account existed and was removed.
        """
        if self._accounts.pop(email, None) is None:
            return False

        self._save_accounts()
        logger.info(f"Account removed: {email}")
        return True
