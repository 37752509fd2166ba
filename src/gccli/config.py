"""Centralized configuration.

Credentials and account tokens live in a per-user directory:
    ~/.gccli/credentials.json   - OAuth client credentials (shared by all accounts)
    ~/.gccli/accounts.json      - Per-account OAuth tokens

Set GCCLI_HOME to use a different directory.
"""

import os
from pathlib import Path

CONFIG_DIR = Path(os.environ.get("GCCLI_HOME") or Path.home() / ".gccli").expanduser()

# Credential file paths
CREDENTIALS_FILE = CONFIG_DIR / "credentials.json"
ACCOUNTS_FILE = CONFIG_DIR / "accounts.json"

# Google OAuth endpoints and the single scope we request
AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"

# Seconds to wait for the OAuth redirect in automatic mode
DEFAULT_AUTH_TIMEOUT = 120


def ensure_config_dir(path: Path | None = None) -> Path:
    """Create the config directory if it doesn't exist.

    Args:
        path: Directory to create. Defaults to CONFIG_DIR.

    Returns:
        Path to the config directory.
    """
    config_dir = Path(path) if path else CONFIG_DIR
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir
