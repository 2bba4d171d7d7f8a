"""
Core layer - Raw types and HTTP client.

This layer provides:
- Typed dataclasses for the Keptn API payloads
- Low-level HTTP client with auth, error handling, pagination and retries
- HTTP client construction (TLS, proxies, tracing)
"""

from keptn_cli.core.client import (
    APIClient,
    APIError,
    Credentials,
    DecodeError,
    KeptnError,
    RetryExhaustedError,
    StructuredError,
    TransportError,
    UnexpectedStatusError,
    ValidationError,
)
from keptn_cli.core.transport import build_http_client
from keptn_cli.core.types import (
    Event,
    EventContext,
    EventFilter,
    Page,
    Project,
    SequenceControlParams,
    Service,
    Stage,
)

__all__ = [
    "APIClient",
    "APIError",
    "Credentials",
    "DecodeError",
    "Event",
    "EventContext",
    "EventFilter",
    "KeptnError",
    "Page",
    "Project",
    "RetryExhaustedError",
    "SequenceControlParams",
    "Service",
    "Stage",
    "StructuredError",
    "TransportError",
    "UnexpectedStatusError",
    "ValidationError",
    "build_http_client",
]
