"""
SportFengur API client.

Provides methods for interacting with the SportFengur competition API.
Handles login, rate limiting, retries and stale-response fallback.

Behaviour:
- One bearer token per process, renewed after token_ttl or on a 401
- All requests pass through a single FIFO gate spaced by min_interval
- Network errors, non-JSON bodies, 429 and 5xx are retried with
  exponential backoff
- When retries run out, the last good response for the same path is
  returned instead of failing (if there is one)
"""

import asyncio
import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


# =============================================================================
# Exceptions
# =============================================================================

class SportFengurError(Exception):
    """Base SportFengur error."""
    pass


class SportFengurAuthError(SportFengurError):
    """Missing credentials or failed login."""
    pass


class SportFengurHTTPError(SportFengurError):
    """Non-2xx response, or no response at all (status is None)."""

    def __init__(self, path: str, status: Optional[int] = None, detail: str = ""):
        self.path = path
        self.status = status
        self.detail = detail
        reason = status if status is not None else "network error"
        super().__init__(f"SportFengur GET {path} failed ({reason}) {detail}".strip())

    @property
    def is_retryable(self) -> bool:
        return self.status is None or self.status == 429 or self.status >= 500


# =============================================================================
# Rate Limiter
# =============================================================================

class RequestGate:
    """
    Serializes outbound requests and spaces them by a minimum interval.

    asyncio.Lock wakes waiters in arrival order, so this is one global FIFO
    regardless of which caller or endpoint issued the request.
    """

    def __init__(
        self,
        min_interval: float = 1.5,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_at: Optional[float] = None

    @asynccontextmanager
    async def slot(self):
        """Hold the gate for one request."""
        async with self._lock:
            if self._last_at is not None:
                wait_for = self.min_interval - (self._clock() - self._last_at)
                if wait_for > 0:
                    await self._sleep(wait_for)
            self._last_at = self._clock()
            yield

    def reset(self):
        self._last_at = None


# =============================================================================
# Response Cache
# =============================================================================

class ResponseCache:
    """
    Last-known-good responses keyed by request path.

    Bounded LRU: only used as a fallback when the API keeps failing,
    never served while the API is healthy.
    """

    def __init__(self, maxsize: int = 256):
        self.maxsize = maxsize
        self._items: OrderedDict[str, Any] = OrderedDict()

    def get(self, path: str) -> Any:
        if path not in self._items:
            return None
        self._items.move_to_end(path)
        return self._items[path]

    def set(self, path: str, data: Any):
        self._items[path] = data
        self._items.move_to_end(path)
        while len(self._items) > self.maxsize:
            self._items.popitem(last=False)

    def __contains__(self, path: str) -> bool:
        return path in self._items

    def __len__(self) -> int:
        return len(self._items)

    def clear(self):
        self._items.clear()


# =============================================================================
# SportFengur Client
# =============================================================================

class SportFengurClient:
    """
    Async client for the SportFengur API.

    Usage:
        client = SportFengurClient(base_url, username, password)
        starting_list = await client.get_starting_list(class_id, competition_id)
        results = await client.get_results(class_id, competition_id)
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        username: Optional[str],
        password: Optional[str],
        locale: str = "is",
        min_interval: float = 1.5,
        max_retries: int = 3,
        retry_base: float = 0.75,
        cache_size: int = 256,
        token_ttl: float = 3600,
        timeout: float = 15.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.locale = locale
        self.max_retries = max_retries
        self.retry_base = retry_base
        self.token_ttl = token_ttl
        self.timeout = timeout

        self._clock = clock
        self._sleep = sleep
        self.gate = RequestGate(min_interval, clock=clock, sleep=sleep)
        self.responses = ResponseCache(cache_size)

        self._client: Optional[httpx.AsyncClient] = None
        self._token: Optional[str] = None
        self._token_obtained_at: Optional[float] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def _token_expired(self) -> bool:
        if not self.token_ttl or self._token_obtained_at is None:
            return False
        return self._clock() - self._token_obtained_at >= self.token_ttl

    async def login(self) -> str:
        """
        Exchange credentials for a bearer token.

        Raises:
            SportFengurAuthError: Credentials missing or rejected
        """
        if not self.username or not self.password:
            raise SportFengurAuthError(
                "Missing SportFengur credentials (EIDFAXI_USERNAME / EIDFAXI_PASSWORD)"
            )

        try:
            response = await self._get_client().post(
                f"{self.base_url}/login",
                json={"username": self.username, "password": self.password},
            )
        except httpx.HTTPError as e:
            raise SportFengurAuthError(f"Login failed ({e})") from e

        if not response.is_success:
            raise SportFengurAuthError(f"Login failed ({response.status_code})")

        try:
            data = response.json()
        except ValueError as e:
            raise SportFengurAuthError("Login failed (invalid JSON body)") from e

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise SportFengurAuthError("Login failed (no token)")

        self._token = token
        self._token_obtained_at = self._clock()
        logger.info("Logged in to SportFengur")
        return token

    async def get_token(self) -> str:
        """Get a valid token, logging in if needed."""
        if self._token and self._token_expired():
            logger.info("SportFengur token expired, logging in again")
            self._token = None
        if self._token:
            return self._token
        return await self.login()

    def invalidate_token(self):
        self._token = None
        self._token_obtained_at = None

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def _request(self, path: str) -> Any:
        """One rate-limited GET, with a single re-login on 401."""
        async with self.gate.slot():
            for attempt in range(2):
                token = await self.get_token()
                try:
                    response = await self._get_client().get(
                        f"{self.base_url}{path}",
                        headers={"Authorization": f"Bearer {token}"},
                    )
                except httpx.HTTPError as e:
                    raise SportFengurHTTPError(path, None, str(e)) from e

                if response.status_code == 401 and attempt == 0:
                    logger.warning(f"SportFengur rejected token for {path}, logging in again")
                    self.invalidate_token()
                    continue

                if not response.is_success:
                    raise SportFengurHTTPError(path, response.status_code)

                try:
                    return response.json()
                except ValueError as e:
                    # status None: retried like a network error
                    raise SportFengurHTTPError(path, None, "invalid JSON body") from e

    async def get(self, path: str) -> Any:
        """
        GET a path with retries and stale fallback.

        Raises:
            SportFengurAuthError: Credentials missing or login failed
            SportFengurHTTPError: Non-retryable status, or retries exhausted
                                  with nothing cached for this path
        """
        for attempt in range(self.max_retries + 1):
            try:
                data = await self._request(path)
            except SportFengurHTTPError as e:
                if not e.is_retryable:
                    raise
                if attempt < self.max_retries:
                    backoff = self.retry_base * 2 ** attempt
                    logger.debug(f"Retrying {path} in {backoff:.2f}s after {e}")
                    await self._sleep(backoff)
                    continue
                if path in self.responses:
                    logger.warning(f"Using cached response for {path} after failure: {e}")
                    return self.responses.get(path)
                raise
            self.responses.set(path, data)
            return data

    def _path(self, *parts: Any) -> str:
        return "/" + "/".join([self.locale] + [str(p) for p in parts])

    async def get_starting_list(self, class_id: int, competition_id: int) -> Any:
        """Starting list (raslisti) for one class/competition."""
        return await self.get(self._path("startinglist", class_id, competition_id))

    async def get_results(self, class_id: int, competition_id: int) -> Any:
        """Judge scores (einkunnir) for one class/competition."""
        return await self.get(self._path("test", "results", class_id, competition_id))

    async def get_participants(self, event_id: int) -> Any:
        return await self.get(self._path("participants", event_id))

    async def get_event_tests(self, event_id: int) -> Any:
        """Classes and competitions of an event."""
        return await self.get(self._path("event", "tests", event_id))

    async def search_events(self, params: Optional[dict] = None) -> Any:
        path = self._path("events", "search")
        if params:
            path = f"{path}?{urlencode(params)}"
        return await self.get(path)

    def reset(self):
        """Forget token, rate-limit history and cached responses."""
        self.invalidate_token()
        self.gate.reset()
        self.responses.clear()
