"""
HTTP client construction.

Every KeptnClient builds its own httpx.AsyncClient here; nothing is shared or
mutated process-wide.
"""

import logging

import httpx

try:
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
except ImportError:  # pragma: no cover
    HTTPXClientInstrumentor = None  # type: ignore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


def is_standard_transport(transport: httpx.AsyncBaseTransport | None) -> bool:
    """True for no transport or a plain httpx.AsyncHTTPTransport (not a subclass)."""
    return transport is None or type(transport) is httpx.AsyncHTTPTransport


def build_http_client(
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.AsyncClient:
    """
    Create the client used for all API calls.

    With no transport, or the standard one, the client skips certificate
    verification and reads proxy settings from HTTP_PROXY/HTTPS_PROXY/NO_PROXY.
    A standard transport passed in is replaced by a freshly configured one.
    Custom transports are used untouched.

    The client is traced with OpenTelemetry when
    opentelemetry-instrumentation-httpx is installed.

    Args:
        transport: Optional transport to send requests through
        timeout: Request timeout in seconds

    Returns:
        A new httpx.AsyncClient

    """
    if is_standard_transport(transport):
        if transport is not None:
            logger.warning(
                "Discarding %r and its settings; using an insecure, proxy-aware %s instead",
                transport,
                type(transport).__name__,
            )
        client = httpx.AsyncClient(verify=False, trust_env=True, timeout=timeout)
    else:
        logger.debug("Using custom transport %s as-is", type(transport).__name__)
        client = httpx.AsyncClient(transport=transport, timeout=timeout)

    return instrument(client)


def instrument(client: httpx.AsyncClient) -> httpx.AsyncClient:
    """Add request tracing to the client if the instrumentation is available."""
    if HTTPXClientInstrumentor is None:
        logger.debug("opentelemetry-instrumentation-httpx not installed, requests are not traced")
        return client
    HTTPXClientInstrumentor.instrument_client(client)
    return client
