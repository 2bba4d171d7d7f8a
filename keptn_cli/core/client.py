"""
Core HTTP client for the Keptn control plane API.

Handles authentication, request/response classification, pagination,
retries and error handling.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from keptn_cli.core.types import EventContext, Page

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_SCHEME = "http"

# Status bands. Writes only accept up to 204, reads and deletes the whole 2xx range.
WRITE_STATUS = range(200, 205)
READ_STATUS = range(200, 300)

T = TypeVar("T")


class KeptnError(Exception):
    """Base error class for client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class APIError(KeptnError):
    """API error with status code and message."""

    def __init__(self, message: str, status: int = 0, details: dict | None = None):
        super().__init__(message, details)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        return result


class TransportError(APIError):
    """The request never produced a response (connection, DNS, timeout)."""


class DecodeError(APIError):
    """Successful status but the body could not be decoded."""


class StructuredError(APIError):
    """Error message declared by the server in the error envelope."""


class UnexpectedStatusError(APIError):
    """Non-success status without a usable error message."""


class ValidationError(KeptnError):
    """Validation error for local input/data issues (not API errors)."""


class RetryExhaustedError(KeptnError):
    """No satisfactory result within the retry budget."""

    def __init__(self, message: str, attempts: int, delay: float):
        super().__init__(message, {"attempts": attempts, "delay": delay})
        self.attempts = attempts
        self.delay = delay


# =============================================================================
# Credentials
# =============================================================================


@dataclass(frozen=True)
class Credentials:
    """Where and how to reach one backend service."""

    base_url: str
    scheme: str = DEFAULT_SCHEME
    auth_header: str = ""
    auth_token: str = ""

    @classmethod
    def from_endpoint(
        cls,
        endpoint: str,
        auth_token: str | None = None,
        auth_header: str | None = None,
        scheme: str | None = None,
        service: str | None = None,
    ) -> "Credentials":
        """
        Build credentials from a user supplied endpoint.

        Args:
            endpoint: URL with or without scheme, e.g. https://keptn.example.com/api
            auth_token: Token value for the auth header
            auth_header: Name of the auth header
            scheme: Scheme override; defaults to the endpoint's scheme, else http
            service: Path segment of the backend service, appended if missing

        Returns:
            Credentials with a scheme-less base URL

        """
        base_url = endpoint.strip()
        detected = DEFAULT_SCHEME
        for prefix in ("https://", "http://"):
            if base_url.startswith(prefix):
                detected = prefix[:-3]
                base_url = base_url[len(prefix) :]
                break
        base_url = base_url.rstrip("/")

        if service and not base_url.endswith(service):
            base_url = f"{base_url}/{service}"

        return cls(
            base_url=base_url,
            scheme=scheme or detected,
            auth_header=auth_header or "",
            auth_token=auth_token or "",
        )

    def auth_headers(self) -> dict[str, str]:
        """Auth header, only when both name and token are set."""
        if self.auth_header and self.auth_token:
            return {self.auth_header: self.auth_token}
        return {}


# =============================================================================
# Response classification
# =============================================================================


def error_from_response(status_code: int, reason: str, body: bytes) -> APIError:
    """
    Map a non-success response to an error.

    The server's ``{"message": ...}`` envelope wins when present; anything else
    (empty body, malformed JSON, missing message) degrades to a generic error
    carrying the status code. Never raises.
    """
    if body:
        try:
            payload = json.loads(body)
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            return StructuredError(payload["message"], status=status_code, details=payload)

    return UnexpectedStatusError(f"unexpected status {status_code} {reason}".rstrip(), status=status_code)


def classify_response(
    status_code: int,
    reason: str,
    body: bytes,
    parser: Callable[[Any], T] | None = None,
    success: range = READ_STATUS,
) -> T | Any | None:
    """
    Turn a status code and body into a decoded value, None or an error.

    Args:
        status_code: HTTP status code
        reason: HTTP reason phrase
        body: Raw response body
        parser: Converts the decoded JSON into the endpoint's type
        success: Status codes counted as success for this kind of endpoint

    Returns:
        Parsed value, raw JSON if no parser given, or None for an empty body

    Raises:
        DecodeError: Success status but the body does not decode
        APIError: Non-success status

    """
    if status_code not in success:
        raise error_from_response(status_code, reason, body)

    if not body:
        return None

    try:
        data = json.loads(body)
        return parser(data) if parser else data
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raw = body.decode("utf-8", errors="replace")
        raise DecodeError(f"{e}\n-----DETAILS-----{raw}", status=status_code) from e


# =============================================================================
# Client
# =============================================================================


class APIClient:
    """
    Low-level HTTP client for one Keptn backend service.

    Handles:
    - Authentication via a caller-named header
    - HTTP methods (GET, POST, PUT, DELETE)
    - Error handling and response parsing
    - Pagination for list endpoints
    - Fixed-delay retries for eventually consistent reads

    Holds no mutable state; one instance can serve concurrent calls.
    """

    def __init__(self, credentials: Credentials, http_client: httpx.AsyncClient):
        """
        Initialize the API client.

        Args:
            credentials: Base URL, scheme and auth for the service
            http_client: Shared client, see keptn_cli.core.transport.build_http_client

        """
        self.credentials = credentials
        self._http = http_client

    def _build_url(self, path: str) -> str:
        """Build full URL from path."""
        if path.startswith("http"):
            return path
        return f"{self.credentials.scheme}://{self.credentials.base_url}{path}"

    async def _make_request(
        self,
        method: str,
        path: str,
        data: dict | None = None,
        params: dict[str, Any] | None = None,
        parser: Callable[[Any], T] | None = None,
        success: range = READ_STATUS,
    ) -> T | Any | None:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: API path (e.g., /v1/project)
            data: Request body for POST/PUT
            params: Query parameters, None values dropped
            parser: Converts the decoded JSON body
            success: Status band for this kind of endpoint

        Returns:
            Parsed response, or None on an empty success

        Raises:
            TransportError: On connection errors and timeouts
            APIError: On error responses or undecodable bodies

        """
        url = self._build_url(path)
        headers = {"Accept": "application/json", **self.credentials.auth_headers()}

        body = None
        if data is not None:
            body = json.dumps(data).encode("utf-8")
            headers["Content-Type"] = "application/json"

        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._http.request(method, url, content=body, headers=headers, params=params or None)
        except httpx.HTTPError as e:
            raise TransportError(f"Connection error: {e}") from e

        logger.debug("%s %s -> %s", method, response.request.url, response.status_code)
        return classify_response(
            response.status_code,
            response.reason_phrase,
            response.content,
            parser=parser,
            success=success,
        )

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        parser: Callable[[Any], T] | None = None,
    ) -> T | Any | None:
        """Make a GET request."""
        return await self._make_request("GET", path, params=params, parser=parser)

    async def post(self, path: str, data: dict | None = None, parser: Callable[[Any], T] | None = None) -> T | Any | None:
        """Make a POST request."""
        return await self._make_request("POST", path, data, parser=parser, success=WRITE_STATUS)

    async def put(self, path: str, data: dict | None = None, parser: Callable[[Any], T] | None = None) -> T | Any | None:
        """Make a PUT request."""
        return await self._make_request("PUT", path, data, parser=parser, success=WRITE_STATUS)

    async def delete(self, path: str, parser: Callable[[Any], T] | None = None) -> T | Any | None:
        """Make a DELETE request."""
        return await self._make_request("DELETE", path, parser=parser)

    # =========================================================================
    # Tracking context helpers
    # =========================================================================

    async def post_with_context(self, path: str, data: dict | None = None) -> EventContext | None:
        """POST and return the tracking context, or None if the server sent none."""
        return _log_context(await self.post(path, data, parser=EventContext.from_dict))

    async def put_with_context(self, path: str, data: dict | None = None) -> EventContext | None:
        """PUT and return the tracking context, or None if the server sent none."""
        return _log_context(await self.put(path, data, parser=EventContext.from_dict))

    async def delete_with_context(self, path: str) -> EventContext | None:
        """DELETE and return the tracking context, or None if the server sent none."""
        return _log_context(await self.delete(path, parser=EventContext.from_dict))

    # =========================================================================
    # Pagination
    # =========================================================================

    async def paginate_all(
        self,
        path: str,
        item_key: str,
        parser: Callable[[dict[str, Any]], T] | None = None,
        params: dict[str, Any] | None = None,
        page_limit: int = 0,
    ) -> list[T]:
        """
        Fetch all items from a nextPageKey-paginated endpoint.

        Args:
            path: API path
            item_key: Envelope field holding the page's items
            parser: Optional function to parse each item
            params: Query parameters sent with every page
            page_limit: Stop once the numeric cursor reaches this value (0 = no limit)

        Returns:
            Items of all pages in arrival order

        Raises:
            APIError: From the first failing page; earlier pages are dropped

        """
        items: list[T] = []
        next_page_key = ""

        while True:
            page_params = dict(params or {})
            if next_page_key:
                page_params["nextPageKey"] = next_page_key

            page = await self.get(path, page_params, parser=lambda data: Page.from_dict(data, item_key, parser))
            if page is None:
                break

            items.extend(page.items)

            if not page.has_more:
                break
            if page_limit > 0 and page.cursor_value >= page_limit:
                break

            next_page_key = page.next_page_key

        return items

    # =========================================================================
    # Retries
    # =========================================================================

    async def retry(
        self,
        fetch: Callable[[], Awaitable[list[T]]],
        max_attempts: int,
        delay: float,
        what: str = "matching items",
    ) -> list[T]:
        """
        Repeat a fetch until it returns at least one item.

        Errors and empty results both count as "not there yet". The delay is
        fixed, there is no backoff. Cancellation propagates from the request
        or the sleep.

        Args:
            fetch: Coroutine function performing one complete lookup
            max_attempts: Maximum number of calls to fetch
            delay: Seconds to sleep between attempts
            what: Description used in the exhaustion error

        Returns:
            The first non-empty result

        Raises:
            RetryExhaustedError: When no attempt produced items

        """
        for attempt in range(1, max_attempts + 1):
            try:
                result = await fetch()
            except APIError as e:
                logger.debug("Attempt %d/%d failed: %s", attempt, max_attempts, e.message)
            else:
                if result:
                    return result
                logger.debug("Attempt %d/%d returned no items", attempt, max_attempts)

            if attempt < max_attempts:
                await asyncio.sleep(delay)

        raise RetryExhaustedError(f"could not find {what} after {max_attempts} x {delay}s", max_attempts, delay)


def _log_context(context: EventContext | None) -> EventContext | None:
    if context is not None and context.keptn_context:
        logger.info("ID of Keptn context: %s", context.keptn_context)
    return context
