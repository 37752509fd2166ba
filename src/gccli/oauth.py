"""Interactive Google OAuth authorization using Authlib.

Obtains a refresh token for a new account via the installed-app
authorization code flow, in one of two modes:

- automatic: a one-shot HTTP listener on 127.0.0.1 receives the redirect
  from the browser opened on the consent page
- manual: the consent URL is printed and the user pastes back the redirect
  URL (or just the code) shown after granting access
"""

from __future__ import annotations

import http.server
import logging
import webbrowser
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs, urlparse

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session

from gccli.config import AUTHORIZE_URL, CALENDAR_SCOPE, DEFAULT_AUTH_TIMEOUT, TOKEN_URL
from gccli.exceptions import AuthorizationFailedError

logger = logging.getLogger(__name__)

MANUAL_REDIRECT_URI = "http://localhost"

SUCCESS_PAGE = (
    "<html><body><h2>Authorization complete</h2>"
    "<p>You can close this window and return to the terminal.</p></body></html>"
)
FAILURE_PAGE = (
    "<html><body><h2>Authorization failed</h2>"
    "<p>Return to the terminal for details.</p></body></html>"
)


class _RedirectHandler(http.server.BaseHTTPRequestHandler):
    """Captures the OAuth redirect path and answers with a short page."""

    def do_GET(self) -> None:
        self.server.redirect_path = self.path
        params = parse_qs(urlparse(self.path).query)
        page = FAILURE_PAGE if "error" in params or "code" not in params else SUCCESS_PAGE

        body = page.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, fmt: str, *args) -> None:
        return


class RedirectListener(http.server.HTTPServer):
    """Loopback HTTP server that accepts at most one OAuth redirect.

    Use as a context manager so the port is released on every exit path:

        with RedirectListener(timeout=120) as listener:
            webbrowser.open(url_using(listener.redirect_uri))
            path = listener.wait_for_redirect()
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0, timeout: float = 120):
        super().__init__((host, port), _RedirectHandler)
        self.timeout = timeout
        self.redirect_path: str | None = None

    @property
    def redirect_uri(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}/"

    def wait_for_redirect(self) -> str:
        """Block until one request arrives or the timeout expires.

        Returns:
            The request path including its query string.

        Raises:
            AuthorizationFailedError: If no redirect arrived in time.
        """
        self.handle_request()
        if self.redirect_path is None:
            raise AuthorizationFailedError(
                f"Timed out after {self.timeout:g}s waiting for the OAuth redirect"
            )
        return self.redirect_path


def extract_code(value: str) -> str:
    """Get the authorization code from a pasted redirect URL or bare code.

    Raises:
        AuthorizationFailedError: If the value is empty, carries an OAuth
            error, or is a URL without a code.
    """
    value = value.strip()
    if not value:
        raise AuthorizationFailedError("No authorization code provided")

    if "=" not in value:
        return value

    query = urlparse(value).query if "?" in value else value
    params = parse_qs(query)
    if "error" in params:
        raise AuthorizationFailedError(f"Authorization denied: {params['error'][0]}")
    if "code" not in params:
        raise AuthorizationFailedError("No authorization code found in the pasted URL")
    return params["code"][0]


class CalendarOAuthFlow:
    """Google OAuth authorization code flow for one new account.

    Example:
        >>> flow = CalendarOAuthFlow(client_id, client_secret)
        >>> refresh_token = flow.authorize()            # opens a browser
        >>> refresh_token = flow.authorize(manual=True) # copy/paste flow
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        open_browser: Callable[[str], Any] = webbrowser.open,
        input_func: Callable[[str], str] = input,
    ):
        """Initialize the flow.

        Args:
            client_id: OAuth client ID.
            client_secret: OAuth client secret.
            open_browser: Called with the consent URL in automatic mode.
            input_func: Prompts for the pasted redirect URL in manual mode.
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self._open_browser = open_browser
        self._input = input_func

    def _create_session(self, redirect_uri: str) -> OAuth2Session:
        return OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=CALENDAR_SCOPE,
            redirect_uri=redirect_uri,
            token_endpoint_auth_method="client_secret_post",
        )

    def _authorization_url(self, session: OAuth2Session) -> tuple[str, str]:
        # offline + consent so Google always issues a refresh token
        return session.create_authorization_url(
            AUTHORIZE_URL,
            access_type="offline",
            prompt="consent",
        )

    def authorize(self, manual: bool = False, timeout: float = DEFAULT_AUTH_TIMEOUT) -> str:
        """Run the authorization flow once.

        Args:
            manual: Print the URL and read the redirect from the console
                instead of opening a browser and listening locally.
            timeout: Seconds to wait for the redirect in automatic mode.

        Returns:
            The refresh token for the authorized account.

        Raises:
            AuthorizationFailedError: On timeout, cancellation, provider
                error or rejected code exchange.
        """
        if manual:
            return self._authorize_manual()
        return self._authorize_automatic(timeout)

    def _authorize_automatic(self, timeout: float) -> str:
        with RedirectListener(timeout=timeout) as listener:
            redirect_uri = listener.redirect_uri
            session = self._create_session(redirect_uri)
            url, state = self._authorization_url(session)
            logger.info(f"Listening for OAuth redirect on {redirect_uri}")

            print("Opening browser for Google authorization...")
            print(f"If it does not open, visit:\n{url}\n")
            if not self._open_browser(url):
                logger.warning("Could not open a browser automatically")

            try:
                path = listener.wait_for_redirect()
            except KeyboardInterrupt as e:
                raise AuthorizationFailedError("Authorization cancelled") from e

        params = parse_qs(urlparse(path).query)
        if "error" in params:
            raise AuthorizationFailedError(f"Authorization denied: {params['error'][0]}")
        if "code" not in params:
            raise AuthorizationFailedError("OAuth redirect did not include an authorization code")

        return self._exchange(
            session,
            authorization_response=redirect_uri.rstrip("/") + path,
            state=state,
        )

    def _authorize_manual(self) -> str:
        session = self._create_session(MANUAL_REDIRECT_URI)
        url, _ = self._authorization_url(session)

        print(f"Visit this URL to authorize:\n{url}\n")
        print("After granting access the browser is redirected to a localhost page")
        print("that fails to load. Copy the full URL from the address bar.\n")

        try:
            pasted = self._input("Paste redirect URL (or code): ")
        except (EOFError, KeyboardInterrupt) as e:
            raise AuthorizationFailedError("Authorization cancelled") from e

        return self._exchange(session, code=extract_code(pasted))

    def _exchange(self, session: OAuth2Session, **kwargs: Any) -> str:
        """Exchange the authorization code for tokens."""
        try:
            token = session.fetch_token(TOKEN_URL, **kwargs)
        except (AuthlibBaseError, requests.RequestException) as e:
            raise AuthorizationFailedError(f"Token exchange failed: {e}") from e

        refresh_token = token.get("refresh_token")
        if not refresh_token:
            raise AuthorizationFailedError("Token response did not include a refresh token")

        logger.info("Authorization completed")
        return refresh_token
