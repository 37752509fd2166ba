"""Google Calendar operations across multiple authorized accounts.

Usage:
    from gccli import CalendarService

    service = CalendarService()

    # List calendars
    calendars = service.list_calendars("you@gmail.com")

    # List events in the next week
    result = service.list_events("you@gmail.com", "primary")

    # Create an event with a Meet link
    event = service.create_event(
        "you@gmail.com",
        "primary",
        summary="Team Meeting",
        start="2026-01-25T10:00:00Z",
        end="2026-01-25T11:00:00Z",
        meet=True,
    )
"""

from __future__ import annotations

import contextlib
import logging
import secrets
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from gccli.clients import ClientCache
from gccli.exceptions import CalendarAPIError, CredentialsNotConfiguredError, DuplicateAccountError
from gccli.oauth import CalendarOAuthFlow
from gccli.storage import Account, AccountStorage, OAuth2Info, SharedCredentials

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 10
DEFAULT_LOOKAHEAD = timedelta(days=7)


@dataclass
class EventSearchResult:
    """One page of events."""

    events: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: str | None = None


@dataclass(frozen=True)
class BusyInterval:
    """A busy time range reported by the free/busy query."""

    start: str
    end: str


@contextlib.contextmanager
def _api_errors() -> Iterator[None]:
    """Re-raise Calendar API, token refresh and transport errors as CalendarAPIError."""
    try:
        yield
    except HttpError as e:
        status = e.resp.status if e.resp is not None else None
        reason = getattr(e, "reason", None) or str(e)
        raise CalendarAPIError(reason, status=status) from e
    except GoogleAuthError as e:
        raise CalendarAPIError(f"Failed to refresh access token: {e}") from e
    except httplib2.HttpLib2Error as e:
        raise CalendarAPIError(f"Could not reach the Calendar API: {e}") from e


def _time_field(value: str, all_day: bool) -> dict[str, str]:
    return {"date": value} if all_day else {"dateTime": value}


def _meet_request() -> dict[str, Any]:
    """Conference creation request with a unique, idempotent request id."""
    request_id = f"gccli-{int(time.time() * 1000)}-{secrets.token_hex(4)}"
    return {
        "createRequest": {
            "requestId": request_id,
            "conferenceSolutionKey": {"type": "hangoutsMeet"},
        }
    }


class CalendarService:
    """Account management and Calendar API operations.

    Clients are resolved per call from the account email through the
    client cache, so every operation takes the account email first.

    Usage:
        service = CalendarService()
        service.set_credentials(client_id, client_secret)
        service.add_account("you@gmail.com")
        events = service.list_events("you@gmail.com", "primary").events

    Note:
        Accounts must be authorized first. Run `gccli accounts add <email>`.
    """

    def __init__(
        self,
        storage: AccountStorage | None = None,
        clients: ClientCache | None = None,
        flow_factory: Callable[[str, str], CalendarOAuthFlow] = CalendarOAuthFlow,
    ) -> None:
        """Initialize the service.

        Args:
            storage: Account storage. Defaults to the ~/.gccli directory.
            clients: Client cache. Defaults to a cache over `storage`.
            flow_factory: Builds the OAuth flow from client id and secret.
        """
        self.storage = storage or AccountStorage()
        self.clients = clients or ClientCache(self.storage)
        self._flow_factory = flow_factory

    # =========================================================================
    # Accounts
    # =========================================================================

    def add_account(self, email: str, manual: bool = False) -> Account:
        """Authorize and store a new account.

        Args:
            email: Account email.
            manual: Use the copy/paste flow instead of a local redirect listener.

        Returns:
            The stored Account.

        Raises:
            DuplicateAccountError: If the account already exists.
            CredentialsNotConfiguredError: If no OAuth client credentials are set.
            AuthorizationFailedError: If authorization does not complete.
        """
        if self.storage.has_account(email):
            raise DuplicateAccountError(email)

        creds = self.storage.get_credentials()
        if creds is None:
            raise CredentialsNotConfiguredError()

        flow = self._flow_factory(creds.client_id, creds.client_secret)
        refresh_token = flow.authorize(manual=manual)

        account = Account(
            email=email,
            oauth2=OAuth2Info(
                client_id=creds.client_id,
                client_secret=creds.client_secret,
                refresh_token=refresh_token,
            ),
        )
        self.storage.add_account(account)
        return account

    def delete_account(self, email: str) -> bool:
        """Remove an account and drop its cached client.

        Returns:
            True if the account existed.
        """
        self.clients.evict(email)
        return self.storage.delete_account(email)

    def list_accounts(self) -> list[Account]:
        return self.storage.list_accounts()

    def set_credentials(self, client_id: str, client_secret: str):
        self.storage.set_credentials(client_id, client_secret)

    def get_credentials(self) -> SharedCredentials | None:
        return self.storage.get_credentials()

    # =========================================================================
    # Calendars
    # =========================================================================

    def list_calendars(self, email: str) -> list[dict[str, Any]]:
        """List calendars visible to the account."""
        service = self.clients.get(email)
        with _api_errors():
            results = service.calendarList().list().execute()
        return results.get("items", [])

    def list_acl(self, email: str, calendar_id: str) -> list[dict[str, Any]]:
        """List access control rules for a calendar."""
        service = self.clients.get(email)
        with _api_errors():
            results = service.acl().list(calendarId=calendar_id).execute()
        return results.get("items", [])

    # =========================================================================
    # Events
    # =========================================================================

    def list_events(
        self,
        email: str,
        calendar_id: str,
        time_min: str | None = None,
        time_max: str | None = None,
        max_results: int | None = None,
        page_token: str | None = None,
        query: str | None = None,
    ) -> EventSearchResult:
        """List events, expanding recurring events into single instances.

        Args:
            email: Account email.
            calendar_id: Calendar ID or "primary".
            time_min: Start of range, RFC 3339 (defaults to now).
            time_max: End of range, RFC 3339 (defaults to one week after now).
            max_results: Page size (defaults to 10).
            page_token: Token from a previous result's next_page_token.
            query: Free text search query.

        Returns:
            EventSearchResult ordered by start time.
        """
        service = self.clients.get(email)

        now = datetime.now(timezone.utc)
        kwargs: dict[str, Any] = {
            "calendarId": calendar_id,
            "timeMin": time_min or now.isoformat(),
            "timeMax": time_max or (now + DEFAULT_LOOKAHEAD).isoformat(),
            "maxResults": max_results or DEFAULT_MAX_RESULTS,
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if page_token:
            kwargs["pageToken"] = page_token
        if query:
            kwargs["q"] = query

        with _api_errors():
            results = service.events().list(**kwargs).execute()

        return EventSearchResult(
            events=results.get("items", []),
            next_page_token=results.get("nextPageToken"),
        )

    def get_event(self, email: str, calendar_id: str, event_id: str) -> dict[str, Any]:
        service = self.clients.get(email)
        with _api_errors():
            return service.events().get(calendarId=calendar_id, eventId=event_id).execute()

    def create_event(
        self,
        email: str,
        calendar_id: str,
        summary: str,
        start: str,
        end: str,
        description: str | None = None,
        location: str | None = None,
        attendees: list[str] | None = None,
        all_day: bool = False,
        meet: bool = False,
    ) -> dict[str, Any]:
        """Create a new event.

        Args:
            email: Account email.
            calendar_id: Calendar ID or "primary".
            summary: Event title.
            start: Start as ISO 8601 date-time, or YYYY-MM-DD when all_day.
            end: End as ISO 8601 date-time, or YYYY-MM-DD when all_day.
            description: Event description.
            location: Event location.
            attendees: Attendee email addresses.
            all_day: Send start/end as dates instead of date-times.
            meet: Request a Google Meet link.

        Returns:
            The created event resource.
        """
        service = self.clients.get(email)

        body: dict[str, Any] = {
            "summary": summary,
            "start": _time_field(start, all_day),
            "end": _time_field(end, all_day),
        }
        if description is not None:
            body["description"] = description
        if location is not None:
            body["location"] = location
        if attendees is not None:
            body["attendees"] = [{"email": a} for a in attendees]

        kwargs: dict[str, Any] = {"calendarId": calendar_id, "body": body}
        if meet:
            body["conferenceData"] = _meet_request()
            kwargs["conferenceDataVersion"] = 1

        with _api_errors():
            return service.events().insert(**kwargs).execute()

    def update_event(
        self,
        email: str,
        calendar_id: str,
        event_id: str,
        summary: str | None = None,
        start: str | None = None,
        end: str | None = None,
        description: str | None = None,
        location: str | None = None,
        attendees: list[str] | None = None,
        all_day: bool = False,
        meet: bool = False,
    ) -> dict[str, Any]:
        """Update an existing event.

        Fetches the current event, overlays the fields that were given and
        submits the whole event back. A change made elsewhere between the
        read and the write is overwritten.

        Returns:
            The updated event resource.
        """
        service = self.clients.get(email)

        current = self.get_event(email, calendar_id, event_id)

        if summary is not None:
            current["summary"] = summary
        if description is not None:
            current["description"] = description
        if location is not None:
            current["location"] = location
        if start is not None:
            current["start"] = _time_field(start, all_day)
        if end is not None:
            current["end"] = _time_field(end, all_day)
        if attendees is not None:
            current["attendees"] = [{"email": a} for a in attendees]
        if meet:
            current["conferenceData"] = _meet_request()

        with _api_errors():
            return (
                service.events()
                .update(
                    calendarId=calendar_id,
                    eventId=event_id,
                    body=current,
                    conferenceDataVersion=1,
                )
                .execute()
            )

    def delete_event(self, email: str, calendar_id: str, event_id: str) -> None:
        service = self.clients.get(email)
        with _api_errors():
            service.events().delete(calendarId=calendar_id, eventId=event_id).execute()

    # =========================================================================
    # Free/busy
    # =========================================================================

    def get_free_busy(
        self,
        email: str,
        calendar_ids: list[str],
        time_min: str,
        time_max: str,
    ) -> dict[str, list[BusyInterval]]:
        """Query busy intervals for several calendars.

        Returns:
            Busy intervals per requested calendar ID, in request order.
            Calendars with no busy time map to an empty list.
        """
        service = self.clients.get(email)
        body = {
            "timeMin": time_min,
            "timeMax": time_max,
            "items": [{"id": cal_id} for cal_id in calendar_ids],
        }

        with _api_errors():
            results = service.freebusy().query(body=body).execute()

        calendars = results.get("calendars", {})
        busy: dict[str, list[BusyInterval]] = {cal_id: [] for cal_id in calendar_ids}

        for cal_id, data in calendars.items():
            for error in data.get("errors", []):
                logger.warning(f"Free/busy for {cal_id}: {error.get('reason', 'unknown error')}")
            busy[cal_id] = [
                BusyInterval(start=b.get("start", ""), end=b.get("end", ""))
                for b in data.get("busy", [])
            ]

        return busy
