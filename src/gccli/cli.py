"""CLI for gccli - Google Calendar across multiple accounts.

Usage:
    gccli accounts credentials <file.json>   # Set OAuth client credentials (once)
    gccli accounts list                      # List configured accounts
    gccli accounts add <email> [--manual]    # Authorize a new account
    gccli accounts remove <email>            # Remove an account
    gccli <email> calendars                  # List calendars
    gccli <email> acl <calendarId>           # List calendar access rules
    gccli <email> events <calendarId>        # List upcoming events
    gccli <email> event <calendarId> <id>    # Show one event
    gccli <email> create <calendarId> ...    # Create an event
    gccli <email> update <calendarId> <id>   # Update an event
    gccli <email> delete <calendarId> <id>   # Delete an event
    gccli <email> freebusy <ids> ...         # Show busy times
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from gccli.calendar import CalendarService
from gccli.config import ACCOUNTS_FILE, CREDENTIALS_FILE
from gccli.exceptions import GccliError
from gccli.storage import parse_credentials_file

USAGE = f"""gccli - Google Calendar CLI

USAGE

  gccli [-v] accounts <action>               Account management
  gccli [-v] <email> <command> [options]     Calendar operations

ACCOUNT COMMANDS

  gccli accounts credentials <file.json>     Set OAuth client credentials (once)
  gccli accounts list                        List configured accounts
  gccli accounts add <email> [--manual]      Add account (--manual for browserless OAuth)
  gccli accounts remove <email>              Remove account

CALENDAR COMMANDS

  gccli <email> calendars
      List calendars: ID, name, access role.

  gccli <email> acl <calendarId>
      List access rules: role, scope type, scope value.

  gccli <email> events <calendarId> [--from <dt>] [--to <dt>] [--max <n>]
                                    [--page <token>] [--query <q>]
      List events (default: now to one week from now, 10 results).

  gccli <email> event <calendarId> <eventId>
      Show event details.

  gccli <email> create <calendarId> --summary <s> --start <dt> --end <dt>
                                    [--description <d>] [--location <l>]
                                    [--attendees <a,b>] [--all-day] [--meet]
      Create an event. With --all-day use YYYY-MM-DD for start/end.

  gccli <email> update <calendarId> <eventId> [same options as create]
      Update an event. Only the given options are changed.

  gccli <email> delete <calendarId> <eventId>
      Delete an event.

  gccli <email> freebusy <calendarIds> --from <dt> --to <dt>
      Show busy times for comma-separated calendar IDs.

EXAMPLES

  gccli you@gmail.com events primary --from 2026-01-01T00:00:00Z --max 50
  gccli you@gmail.com create primary --summary "Off" --start 2026-01-20 --end 2026-01-25 --all-day
  gccli you@gmail.com update primary abc123 --summary "Updated Meeting"

DATA STORAGE

  {CREDENTIALS_FILE}   OAuth client credentials
  {ACCOUNTS_FILE}      Account tokens
"""


class UsageError(GccliError):
    """Raised for invalid command-line arguments."""

    pass


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2."""

    def error(self, message: str):
        raise UsageError(f"{message}. Use --help for usage.")


def _split_list(value: str | None) -> list[str] | None:
    """Parse a comma-separated option value."""
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _event_time(data: dict[str, Any] | None) -> str:
    data = data or {}
    return data.get("dateTime") or data.get("date") or ""


# =========================================================================
# Account commands
# =========================================================================


def accounts_credentials(service: CalendarService, path: str) -> int:
    """Import OAuth client credentials from a file."""
    creds = parse_credentials_file(path)
    service.set_credentials(creds.client_id, creds.client_secret)
    print("Credentials saved")
    return 0


def accounts_list(service: CalendarService) -> int:
    accounts = service.list_accounts()
    if not accounts:
        print("No accounts configured")
        return 0

    for account in accounts:
        print(account.email)
    return 0


def accounts_add(service: CalendarService, email: str, manual: bool = False) -> int:
    """Authorize a new account."""
    service.add_account(email, manual=manual)
    print(f"Account '{email}' added")
    return 0


def accounts_remove(service: CalendarService, email: str) -> int:
    deleted = service.delete_account(email)
    print(f"Removed '{email}'" if deleted else f"Not found: {email}")
    return 0


# =========================================================================
# Calendar commands
# =========================================================================


def cmd_calendars(service: CalendarService, email: str) -> int:
    calendars = service.list_calendars(email)
    if not calendars:
        print("No calendars")
        return 0

    print("ID\tNAME\tROLE")
    for cal in calendars:
        print(f"{cal.get('id', '')}\t{cal.get('summary', '')}\t{cal.get('accessRole', '')}")
    return 0


def cmd_acl(service: CalendarService, email: str, calendar_id: str) -> int:
    rules = service.list_acl(email, calendar_id)
    if not rules:
        print("No rules")
        return 0

    print("ROLE\tSCOPE\tVALUE")
    for rule in rules:
        scope = rule.get("scope", {})
        print(f"{rule.get('role', '')}\t{scope.get('type', '')}\t{scope.get('value', '')}")
    return 0


def cmd_events(service: CalendarService, email: str, args: argparse.Namespace) -> int:
    """List events in a calendar."""
    result = service.list_events(
        email,
        args.calendar_id,
        time_min=args.time_from,
        time_max=args.time_to,
        max_results=args.max,
        page_token=args.page,
        query=args.query,
    )

    if not result.events:
        print("No events")
        return 0

    print("ID\tSTART\tEND\tSUMMARY")
    for event in result.events:
        start = _event_time(event.get("start"))
        end = _event_time(event.get("end"))
        print(f"{event.get('id', '')}\t{start}\t{end}\t{event.get('summary') or '(no title)'}")

    if result.next_page_token:
        print(f"\n# Next page: --page {result.next_page_token}")
    return 0


def cmd_event(service: CalendarService, email: str, calendar_id: str, event_id: str) -> int:
    """Show one event."""
    event = service.get_event(email, calendar_id, event_id)

    print(f"ID: {event.get('id', '')}")
    print(f"Summary: {event.get('summary') or '(no title)'}")
    print(f"Start: {_event_time(event.get('start'))}")
    print(f"End: {_event_time(event.get('end'))}")
    if event.get("location"):
        print(f"Location: {event['location']}")
    if event.get("description"):
        print(f"Description: {event['description']}")
    if event.get("attendees"):
        print(f"Attendees: {', '.join(a.get('email', '') for a in event['attendees'])}")
    meet_link = event.get("hangoutLink")
    if meet_link:
        print(f"Meet: {meet_link}")
    print(f"Status: {event.get('status', '')}")
    print(f"Link: {event.get('htmlLink', '')}")
    return 0


def cmd_create(service: CalendarService, email: str, args: argparse.Namespace) -> int:
    """Create an event."""
    event = service.create_event(
        email,
        args.calendar_id,
        summary=args.summary,
        start=args.start,
        end=args.end,
        description=args.description,
        location=args.location,
        attendees=_split_list(args.attendees),
        all_day=args.all_day,
        meet=args.meet,
    )

    print(f"Created: {event.get('id', '')}")
    print(f"Link: {event.get('htmlLink', '')}")
    if event.get("hangoutLink"):
        print(f"Meet: {event['hangoutLink']}")
    return 0


def cmd_update(service: CalendarService, email: str, args: argparse.Namespace) -> int:
    """Update an event."""
    event = service.update_event(
        email,
        args.calendar_id,
        args.event_id,
        summary=args.summary,
        start=args.start,
        end=args.end,
        description=args.description,
        location=args.location,
        attendees=_split_list(args.attendees),
        all_day=args.all_day,
        meet=args.meet,
    )

    print(f"Updated: {event.get('id', '')}")
    return 0


def cmd_delete(service: CalendarService, email: str, calendar_id: str, event_id: str) -> int:
    service.delete_event(email, calendar_id, event_id)
    print("Deleted")
    return 0


def cmd_freebusy(service: CalendarService, email: str, args: argparse.Namespace) -> int:
    """Show busy intervals per calendar."""
    calendar_ids = _split_list(args.calendar_ids)
    if not calendar_ids:
        raise UsageError("No calendar IDs given")

    result = service.get_free_busy(email, calendar_ids, args.time_from, args.time_to)

    for cal_id, busy in result.items():
        print(f"{cal_id}:")
        if not busy:
            print("  (free)")
        for interval in busy:
            print(f"  {interval.start} - {interval.end}")
    return 0


# =========================================================================
# Parsers
# =========================================================================


def build_accounts_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog="gccli accounts", description="Account management")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Action")

    # accounts credentials
    credentials_parser = subparsers.add_parser(
        "credentials", help="Set OAuth client credentials"
    )
    credentials_parser.add_argument("path", help="Path to credentials.json file")

    # accounts list
    subparsers.add_parser("list", help="List configured accounts")

    # accounts add
    add_parser = subparsers.add_parser("add", help="Authorize a new account")
    add_parser.add_argument("email", help="Account email")
    add_parser.add_argument(
        "--manual",
        action="store_true",
        help="Paste the redirect URL instead of using a local listener",
    )

    # accounts remove
    remove_parser = subparsers.add_parser("remove", help="Remove an account")
    remove_parser.add_argument("email", help="Account email")

    return parser


def _add_event_options(parser: argparse.ArgumentParser, required: bool):
    parser.add_argument("--summary", required=required, help="Event title")
    parser.add_argument("--start", required=required, help="Start time (ISO 8601)")
    parser.add_argument("--end", required=required, help="End time (ISO 8601)")
    parser.add_argument("--description", help="Event description")
    parser.add_argument("--location", help="Event location")
    parser.add_argument("--attendees", help="Attendee emails (comma-separated)")
    parser.add_argument(
        "--all-day",
        dest="all_day",
        action="store_true",
        help="All-day event (use YYYY-MM-DD for start/end)",
    )
    parser.add_argument("--meet", action="store_true", help="Add a Google Meet link")


def build_calendar_parser(email: str) -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog=f"gccli {email}", description="Calendar operations")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    subparsers.add_parser("calendars", help="List calendars")

    acl_parser = subparsers.add_parser("acl", help="List calendar access rules")
    acl_parser.add_argument("calendar_id", help="Calendar ID")

    events_parser = subparsers.add_parser("events", help="List events")
    events_parser.add_argument("calendar_id", help="Calendar ID")
    events_parser.add_argument("--from", dest="time_from", help="Start time (default: now)")
    events_parser.add_argument(
        "--to", dest="time_to", help="End time (default: one week from now)"
    )
    events_parser.add_argument("--max", type=int, help="Max results (default: 10)")
    events_parser.add_argument("--page", help="Page token for pagination")
    events_parser.add_argument("--query", help="Free text search")

    event_parser = subparsers.add_parser("event", help="Show event details")
    event_parser.add_argument("calendar_id", help="Calendar ID")
    event_parser.add_argument("event_id", help="Event ID")

    create_parser = subparsers.add_parser("create", help="Create an event")
    create_parser.add_argument("calendar_id", help="Calendar ID")
    _add_event_options(create_parser, required=True)

    update_parser = subparsers.add_parser("update", help="Update an event")
    update_parser.add_argument("calendar_id", help="Calendar ID")
    update_parser.add_argument("event_id", help="Event ID")
    _add_event_options(update_parser, required=False)

    delete_parser = subparsers.add_parser("delete", help="Delete an event")
    delete_parser.add_argument("calendar_id", help="Calendar ID")
    delete_parser.add_argument("event_id", help="Event ID")

    freebusy_parser = subparsers.add_parser("freebusy", help="Show busy times")
    freebusy_parser.add_argument("calendar_ids", help="Calendar IDs (comma-separated)")
    freebusy_parser.add_argument("--from", dest="time_from", required=True, help="Start time")
    freebusy_parser.add_argument("--to", dest="time_to", required=True, help="End time")

    return parser


def _run_accounts(service: CalendarService, argv: list[str]) -> int:
    args = build_accounts_parser().parse_args(argv)

    if args.command == "credentials":
        return accounts_credentials(service, args.path)
    elif args.command == "list":
        return accounts_list(service)
    elif args.command == "add":
        return accounts_add(service, args.email, args.manual)
    elif args.command == "remove":
        return accounts_remove(service, args.email)
    raise UsageError(f"Unknown action: {args.command}")


def _run_calendar(service: CalendarService, email: str, argv: list[str]) -> int:
    args = build_calendar_parser(email).parse_args(argv)

    if args.command == "calendars":
        return cmd_calendars(service, email)
    elif args.command == "acl":
        return cmd_acl(service, email, args.calendar_id)
    elif args.command == "events":
        return cmd_events(service, email, args)
    elif args.command == "event":
        return cmd_event(service, email, args.calendar_id, args.event_id)
    elif args.command == "create":
        return cmd_create(service, email, args)
    elif args.command == "update":
        return cmd_update(service, email, args)
    elif args.command == "delete":
        return cmd_delete(service, email, args.calendar_id, args.event_id)
    elif args.command == "freebusy":
        return cmd_freebusy(service, email, args)
    raise UsageError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None, service: CalendarService | None = None) -> int:
    """Main CLI entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)

    verbose = False
    while argv and argv[0] in ("-v", "--verbose"):
        verbose = True
        argv.pop(0)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not argv:
        print(USAGE)
        return 1
    if argv[0] in ("-h", "--help"):
        print(USAGE)
        return 0

    try:
        service = service or CalendarService()
        if argv[0] == "accounts":
            return _run_accounts(service, argv[1:])
        return _run_calendar(service, argv[0], argv[1:])
    except (GccliError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
