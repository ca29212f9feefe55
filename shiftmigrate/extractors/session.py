"""Session-based authentication against the legacy admin panel.

The panel issues a CSRF token on its login page and rotates session cookies
on arbitrary responses. The cookie set is held by an explicit
``LegacySession`` value and updated only through ``merge_cookies`` under a
lock, so concurrent scrapes always send a consistent snapshot.
"""

import logging
import re
import threading
from dataclasses import dataclass
from http import cookiejar
from typing import Any, Dict, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import AuthError, LegacyRequestError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

CSRF_META_PATTERN = re.compile(r'<meta name="csrf-token" content="([^"]+)"')
CSRF_INPUT_PATTERN = re.compile(r'name="_token"[^>]*value="([^"]+)"')


class _BlockAllCookies(cookiejar.CookiePolicy):
    """Keep requests from managing cookies behind our back."""
    return_ok = set_ok = domain_return_ok = path_return_ok = lambda self, *args, **kwargs: False
    netscape = True
    rfc2965 = hide_cookie2 = False


@dataclass
class Credentials:
    """Operator credentials for the legacy panel."""
    email: str
    password: str


def extract_csrf_token(html: str) -> Optional[str]:
    """Find the CSRF token in a login page: meta tag first, hidden input second."""
    match = CSRF_META_PATTERN.search(html)
    if match:
        return match.group(1)
    match = CSRF_INPUT_PATTERN.search(html)
    if match:
        return match.group(1)
    return None


def merge_cookies(current: Mapping[str, str], new: Mapping[str, str]) -> Dict[str, str]:
    """Merge cookies from a response into the working set.

    New cookies come first and replace same-named ones; the rest of the
    current set is kept in order.
    """
    merged = dict(new)
    for name, value in current.items():
        if name not in merged:
            merged[name] = value
    return merged


def response_cookies(response: requests.Response) -> Dict[str, str]:
    """Get the name=value pairs a response set."""
    cookies = getattr(response, "cookies", None)
    if not cookies:
        return {}
    return {name: value for name, value in cookies.items()}


def create_http_session(max_retries: int = 3, backoff_factor: float = 2.0) -> requests.Session:
    """Create a requests session with retry logic and no implicit cookie jar."""
    session = requests.Session()
    session.cookies.set_policy(_BlockAllCookies())

    retries = Retry(
        total=max_retries,
        # Timed-out reads are reported, not retried
        read=0,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session


class LegacySession:
    """An authenticated session: base URL, CSRF token and the live cookie set."""

    def __init__(
        self,
        base_url: str,
        csrf_token: str,
        cookies: Optional[Mapping[str, str]] = None,
        http: Optional[requests.Session] = None,
        api_prefix: str = "/nova-api",
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.csrf_token = csrf_token
        self.api_prefix = api_prefix
        self.timeout = timeout
        self._http = http or create_http_session()
        self._cookies: Dict[str, str] = dict(cookies or {})
        self._lock = threading.Lock()

    @property
    def cookies(self) -> Dict[str, str]:
        """Snapshot of the current cookie set."""
        with self._lock:
            return dict(self._cookies)

    def cookie_header(self) -> str:
        with self._lock:
            return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    def update_cookies(self, new: Mapping[str, str]) -> None:
        """Merge rotated cookies into the working set atomically."""
        if not new:
            return
        with self._lock:
            self._cookies = merge_cookies(self._cookies, new)

    def resolve_url(self, path: str, api: bool = True) -> str:
        """Turn an API path or site-relative path into an absolute URL."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = f"/{path}"
        prefix = self.api_prefix if api else ""
        return f"{self.base_url}{prefix}{path}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        api: bool = True,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """Send an authenticated request, replaying and re-merging cookies.

        Raises:
            LegacyRequestError: for any non-2xx response
            requests.RequestException: for transport failures and timeouts
        """
        url = self.resolve_url(path, api=api)
        request_headers = {
            "Accept": "application/json" if api else "*/*",
            "X-CSRF-TOKEN": self.csrf_token,
            "X-Requested-With": "XMLHttpRequest",
            "Cookie": self.cookie_header(),
            "User-Agent": USER_AGENT,
        }
        if headers:
            request_headers.update(headers)

        response = self._http.request(
            method,
            url,
            params=params,
            headers=request_headers,
            timeout=self.timeout,
        )

        # The panel may rotate the session cookie on any response
        self.update_cookies(response_cookies(response))

        if not 200 <= response.status_code < 300:
            raise LegacyRequestError(url, response.status_code, response.text or "")

        return response

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET an API path and decode its JSON envelope."""
        response = self.request("GET", path, params=params)
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object from {path}, got {type(data).__name__}")
        return data


class SessionAuthenticator:
    """
    Logs into the legacy panel and hands out ``LegacySession`` objects.

    Flow:
    - GET the login page unauthenticated, collect cookies and the CSRF token
    - POST the credentials form-encoded without following redirects
    - 200 or 3xx means success; anything else is an ``AuthError``
    """

    def __init__(
        self,
        base_url: str,
        login_path: str = "/nova/login",
        api_prefix: str = "/nova-api",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        http: Optional[requests.Session] = None,
    ):
        """
        Initialize the authenticator.

        Args:
            base_url: Root URL of the legacy panel
            login_path: Path of the login page and form
            api_prefix: Prefix of the JSON resource API
            timeout: Per-request timeout in seconds
            max_retries: Retries for idempotent requests
            backoff_factor: Retry backoff factor
            http: Custom requests session (tests inject fakes here)
        """
        self.base_url = base_url.rstrip("/")
        self.login_path = login_path
        self.api_prefix = api_prefix
        self.timeout = timeout
        self._http = http or create_http_session(max_retries, backoff_factor)

    @property
    def login_url(self) -> str:
        return f"{self.base_url}{self.login_path}"

    def authenticate(self, credentials: Credentials) -> LegacySession:
        """Log in and return an authenticated session."""
        logger.info(f"Authenticating against {self.base_url} as {credentials.email}")

        try:
            page = self._http.get(
                self.login_url,
                headers={"User-Agent": USER_AGENT, "Accept": HTML_ACCEPT},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Could not load login page: {e}") from e

        if not 200 <= page.status_code < 300:
            raise AuthError("Failed to load login page", page.status_code, page.text or "")

        cookies = response_cookies(page)
        logger.debug(f"Collected {len(cookies)} cookies from login page")

        html = page.text or ""
        token = extract_csrf_token(html)
        if not token:
            logger.debug(f"Login page snippet: {html[:1000]}")
            raise AuthError("Could not extract CSRF token from login page", page.status_code, html)

        logger.debug(f"Found CSRF token {token[:10]}...")

        try:
            response = self._http.post(
                self.login_url,
                data={
                    "email": credentials.email,
                    "password": credentials.password,
                    "_token": token,
                },
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "X-CSRF-TOKEN": token,
                    "Cookie": "; ".join(f"{k}={v}" for k, v in cookies.items()),
                    "User-Agent": USER_AGENT,
                    "Accept": HTML_ACCEPT,
                    "Referer": self.login_url,
                },
                allow_redirects=False,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Login request failed: {e}") from e

        cookies = merge_cookies(cookies, response_cookies(response))

        if response.status_code != 200 and not 300 <= response.status_code < 400:
            raise AuthError("Login failed", response.status_code, response.text or "")

        location = response.headers.get("location") if response.headers else None
        if location:
            logger.debug(f"Login redirected to {location}")
        logger.info(f"Authenticated with {self.base_url} ({len(cookies)} cookies)")

        return LegacySession(
            base_url=self.base_url,
            csrf_token=token,
            cookies=cookies,
            http=self._http,
            api_prefix=self.api_prefix,
            timeout=self.timeout,
        )

    def test_connection(self, session: LegacySession) -> bool:
        """Check the session can read the resource API."""
        try:
            data = session.get_json("/users", params={"page": 1, "perPage": 1})
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False

        logger.info(
            f"Connection test succeeded: {len(data.get('resources') or data.get('data') or [])} "
            f"resources on first page"
        )
        return True
