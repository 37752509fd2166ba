"""Tests for the gccli command line."""

import json

from google.auth.exceptions import TransportError

from gccli.calendar import CalendarService
from gccli.cli import main

EMAIL = "you@gmail.com"


class FakeFlow:
    def __init__(self, client_id, client_secret):
        pass

    def authorize(self, manual=False):
        return "cli-refresh-token"


class TestUsage:
    """Test top-level usage handling."""

    def test_no_args(self, service, capsys):
        """Should print usage and exit 1 with no arguments."""
        assert main([], service=service) == 1
        assert "gccli - Google Calendar CLI" in capsys.readouterr().out

    def test_help(self, service, capsys):
        """Should print usage and exit 0 with --help."""
        assert main(["--help"], service=service) == 0
        assert "ACCOUNT COMMANDS" in capsys.readouterr().out

    def test_missing_command(self, service, capsys):
        """Should fail when only an email is given."""
        assert main([EMAIL], service=service) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_unknown_command(self, service, capsys):
        """Should fail on an unknown calendar command."""
        assert main([EMAIL, "bogus"], service=service) == 1
        assert "invalid choice" in capsys.readouterr().err


class TestAccountsCommands:
    """Test `gccli accounts ...`."""

    def test_list(self, service, capsys):
        """Should print one email per line."""
        assert main(["accounts", "list"], service=service) == 0
        assert capsys.readouterr().out.strip() == EMAIL

    def test_list_empty(self, storage, capsys):
        """Should say when no accounts are configured."""
        service = CalendarService(storage=storage)
        assert main(["accounts", "list"], service=service) == 0
        assert "No accounts configured" in capsys.readouterr().out

    def test_credentials(self, service, tmp_path, capsys):
        """Should import a downloaded client secret file."""
        path = tmp_path / "client_secret.json"
        path.write_text(json.dumps({"installed": {"client_id": "id", "client_secret": "s"}}))

        assert main(["accounts", "credentials", str(path)], service=service) == 0
        assert "Credentials saved" in capsys.readouterr().out
        assert service.get_credentials().client_id == "id"

    def test_credentials_invalid(self, service, tmp_path, capsys):
        """Should report an invalid credentials file."""
        path = tmp_path / "bad.json"
        path.write_text("{}")

        assert main(["accounts", "credentials", str(path)], service=service) == 1
        assert "Invalid credentials file" in capsys.readouterr().err

    def test_add_without_credentials(self, service, capsys):
        """Should tell the user to configure credentials first."""
        assert main(["accounts", "add", "new@gmail.com"], service=service) == 1
        assert "No credentials configured" in capsys.readouterr().err

    def test_add(self, storage, capsys):
        """Should authorize and store a new account."""
        storage.set_credentials("id", "secret")
        service = CalendarService(storage=storage, flow_factory=FakeFlow)

        assert main(["accounts", "add", "new@gmail.com", "--manual"], service=service) == 0
        assert "Account 'new@gmail.com' added" in capsys.readouterr().out
        assert storage.get_account("new@gmail.com").oauth2.refresh_token == "cli-refresh-token"

    def test_add_duplicate(self, service, capsys):
        """Should fail when the account already exists."""
        service.set_credentials("id", "secret")
        assert main(["accounts", "add", EMAIL], service=service) == 1
        assert "already exists" in capsys.readouterr().err

    def test_remove(self, service, capsys):
        """Should remove an account and report unknown ones."""
        assert main(["accounts", "remove", EMAIL], service=service) == 0
        assert main(["accounts", "remove", EMAIL], service=service) == 0

        out = capsys.readouterr().out
        assert f"Removed '{EMAIL}'" in out
        assert f"Not found: {EMAIL}" in out


class TestCalendarCommands:
    """Test `gccli <email> ...`."""

    def test_unknown_account(self, service, capsys):
        """Should exit 1 for an unknown account."""
        assert main(["nobody@gmail.com", "calendars"], service=service) == 1
        assert "Account 'nobody@gmail.com' not found" in capsys.readouterr().err

    def test_network_failure(self, service, api, capsys):
        """Should exit 1 with an error message when Google cannot be reached."""
        api.calendarList.return_value.list.return_value.execute.side_effect = TransportError(
            "no network"
        )

        assert main([EMAIL, "calendars"], service=service) == 1
        assert "Error:" in capsys.readouterr().err

    def test_calendars(self, service, api, capsys):
        """Should print a tab-separated calendar table."""
        api.calendarList.return_value.list.return_value.execute.return_value = {
            "items": [{"id": "primary", "summary": "Me", "accessRole": "owner"}]
        }

        assert main([EMAIL, "calendars"], service=service) == 0
        assert capsys.readouterr().out.splitlines() == ["ID\tNAME\tROLE", "primary\tMe\towner"]

    def test_events(self, service, api, capsys):
        """Should print events and the next page hint."""
        api.events.return_value.list.return_value.execute.return_value = {
            "items": [
                {
                    "id": "e1",
                    "summary": "Standup",
                    "start": {"dateTime": "2024-01-15T10:00:00Z"},
                    "end": {"dateTime": "2024-01-15T10:15:00Z"},
                },
                {"id": "e2", "start": {"date": "2024-01-16"}, "end": {"date": "2024-01-17"}},
            ],
            "nextPageToken": "tok2",
        }

        argv = [EMAIL, "events", "primary", "--max", "2", "--query", "x"]
        assert main(argv, service=service) == 0

        kwargs = api.events.return_value.list.call_args.kwargs
        assert kwargs["maxResults"] == 2
        assert kwargs["q"] == "x"

        out = capsys.readouterr().out
        assert "e1\t2024-01-15T10:00:00Z\t2024-01-15T10:15:00Z\tStandup" in out
        assert "e2\t2024-01-16\t2024-01-17\t(no title)" in out
        assert "# Next page: --page tok2" in out

    def test_events_bad_max(self, service, capsys):
        """Should reject a non-numeric --max."""
        assert main([EMAIL, "events", "primary", "--max", "lots"], service=service) == 1
        assert "Error:" in capsys.readouterr().err

    def test_event(self, service, api, capsys):
        """Should print event details."""
        api.events.return_value.get.return_value.execute.return_value = {
            "id": "e1",
            "summary": "Review",
            "start": {"dateTime": "2024-01-15T10:00:00Z"},
            "end": {"dateTime": "2024-01-15T11:00:00Z"},
            "location": "Room 1",
            "attendees": [{"email": "a@example.com"}, {"email": "b@example.com"}],
            "status": "confirmed",
            "htmlLink": "https://calendar.google.com/event?eid=e1",
        }

        assert main([EMAIL, "event", "primary", "e1"], service=service) == 0

        out = capsys.readouterr().out
        assert "Summary: Review" in out
        assert "Location: Room 1" in out
        assert "Attendees: a@example.com, b@example.com" in out
        assert "Status: confirmed" in out

    def test_create_all_day(self, service, api, capsys):
        """Should create an all-day event from CLI flags."""
        api.events.return_value.insert.return_value.execute.return_value = {
            "id": "new1",
            "htmlLink": "https://calendar.google.com/event?eid=new1",
        }

        argv = [
            EMAIL, "create", "primary",
            "--summary", "Vacation",
            "--start", "2024-01-20",
            "--end", "2024-01-25",
            "--attendees", "a@example.com, b@example.com",
            "--all-day",
        ]  # fmt: skip
        assert main(argv, service=service) == 0

        body = api.events.return_value.insert.call_args.kwargs["body"]
        assert body["start"] == {"date": "2024-01-20"}
        assert body["attendees"] == [{"email": "a@example.com"}, {"email": "b@example.com"}]
        assert "Created: new1" in capsys.readouterr().out

    def test_create_requires_summary(self, service, api, capsys):
        """Should fail when required options are missing."""
        argv = [EMAIL, "create", "primary", "--start", "2024-01-20", "--end", "2024-01-25"]
        assert main(argv, service=service) == 1
        assert "--summary" in capsys.readouterr().err
        api.events.return_value.insert.assert_not_called()

    def test_update(self, service, api, capsys):
        """Should only change the given fields."""
        api.events.return_value.get.return_value.execute.return_value = {
            "id": "e1",
            "summary": "A",
            "location": "Room 1",
        }
        api.events.return_value.update.return_value.execute.return_value = {"id": "e1"}

        assert main([EMAIL, "update", "primary", "e1", "--summary", "B"], service=service) == 0

        body = api.events.return_value.update.call_args.kwargs["body"]
        assert body == {"id": "e1", "summary": "B", "location": "Room 1"}
        assert "Updated: e1" in capsys.readouterr().out

    def test_delete(self, service, api, capsys):
        """Should delete an event."""
        assert main([EMAIL, "delete", "primary", "e1"], service=service) == 0
        api.events.return_value.delete.assert_called_once_with(calendarId="primary", eventId="e1")
        assert "Deleted" in capsys.readouterr().out

    def test_freebusy(self, service, api, capsys):
        """Should print busy intervals and mark free calendars."""
        api.freebusy.return_value.query.return_value.execute.return_value = {
            "calendars": {
                "primary": {
                    "busy": [{"start": "2024-01-15T10:00:00Z", "end": "2024-01-15T11:00:00Z"}]
                },
            }
        }

        argv = [
            EMAIL, "freebusy", "primary,team@group.calendar.google.com",
            "--from", "2024-01-15T00:00:00Z",
            "--to", "2024-01-16T00:00:00Z",
        ]  # fmt: skip
        assert main(argv, service=service) == 0

        assert capsys.readouterr().out.splitlines() == [
            "primary:",
            "  2024-01-15T10:00:00Z - 2024-01-15T11:00:00Z",
            "team@group.calendar.google.com:",
            "  (free)",
        ]

    def test_freebusy_requires_range(self, service, capsys):
        """Should require --from and --to."""
        assert main([EMAIL, "freebusy", "primary"], service=service) == 1
        assert "Error:" in capsys.readouterr().err
