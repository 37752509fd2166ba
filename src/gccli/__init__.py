"""gccli - Google Calendar CLI with multi-account OAuth.

Usage:
    from gccli import CalendarService

    service = CalendarService()
    service.add_account("you@gmail.com")
    calendars = service.list_calendars("you@gmail.com")

OAuth Setup:
    1. Download OAuth credentials from Google Cloud Console
    2. Import: gccli accounts credentials ~/Downloads/credentials.json
    3. Authorize: gccli accounts add you@gmail.com
"""

from gccli.calendar import BusyInterval, CalendarService, EventSearchResult
from gccli.exceptions import (
    AccountNotFoundError,
    AuthorizationFailedError,
    CalendarAPIError,
    CredentialsNotConfiguredError,
    DuplicateAccountError,
    GccliError,
    InvalidCredentialsFileError,
)
from gccli.storage import Account, AccountStorage, OAuth2Info, SharedCredentials

__all__ = [
    "CalendarService",
    "EventSearchResult",
    "BusyInterval",
    "AccountStorage",
    "Account",
    "OAuth2Info",
    "SharedCredentials",
    "GccliError",
    "DuplicateAccountError",
    "AccountNotFoundError",
    "AuthorizationFailedError",
    "CredentialsNotConfiguredError",
    "InvalidCredentialsFileError",
    "CalendarAPIError",
]
