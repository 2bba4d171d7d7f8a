"""
Keptn SDK - High-level client with nice ergonomics.

This layer provides a clean, typed interface for project, event and sequence
operations. Built on top of the core APIClient.
"""

import builtins
import os

import httpx

from keptn_cli.core.client import APIClient, Credentials, ValidationError
from keptn_cli.core.transport import DEFAULT_TIMEOUT, build_http_client
from keptn_cli.core.types import (
    Event,
    EventContext,
    EventFilter,
    Project,
    SequenceControlParams,
)

# Configuration
DEFAULT_ENDPOINT = "http://localhost:8080/api"
DEFAULT_AUTH_HEADER = "x-token"

CONTROL_PLANE_SERVICE = "controlPlane"
DATASTORE_SERVICE = "mongodb-datastore"

PROJECT_PATH = "/v1/project"
EVENT_PATH = "/event"
SEQUENCE_CONTROL_PATH = "/v1/sequence/{project}/{keptn_context}/control"


class KeptnClient:
    """
    High-level Keptn API client with typed methods.

    Example:
        async with KeptnClient("https://keptn.example.com/api", api_token="...") as client:
            context = await client.projects.create(Project("sockshop", shipyard=shipyard))
            events = await client.events.list_with_retry(
                EventFilter(project="sockshop", keptn_context=context.keptn_context),
                max_attempts=5,
                delay=2.0,
            )

    """

    def __init__(
        self,
        endpoint: str | None = None,
        api_token: str | None = None,
        auth_header: str | None = None,
        scheme: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the Keptn client.

        Args:
            endpoint: Keptn API URL (or KEPTN_ENDPOINT env var)
            api_token: API token (or KEPTN_API_TOKEN env var)
            auth_header: Name of the auth header (or KEPTN_AUTH_HEADER env var), "" to send none
            scheme: Scheme override, defaults to the endpoint's scheme
            transport: Custom httpx transport (e.g. httpx.MockTransport)
            timeout: Request timeout in seconds

        """
        self.endpoint = endpoint or os.environ.get("KEPTN_ENDPOINT", DEFAULT_ENDPOINT)
        api_token = api_token or os.environ.get("KEPTN_API_TOKEN")
        if auth_header is None:
            auth_header = os.environ.get("KEPTN_AUTH_HEADER", DEFAULT_AUTH_HEADER)

        self._http = build_http_client(transport, timeout=timeout)

        def service_client(service: str) -> APIClient:
            credentials = Credentials.from_endpoint(
                self.endpoint,
                auth_token=api_token,
                auth_header=auth_header,
                scheme=scheme,
                service=service,
            )
            return APIClient(credentials, self._http)

        control_plane = service_client(CONTROL_PLANE_SERVICE)

        # Sub-clients for different domains
        self.projects = ProjectOperations(control_plane)
        self.events = EventOperations(service_client(DATASTORE_SERVICE))
        self.sequences = SequenceOperations(control_plane)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> "KeptnClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


# =============================================================================
# Project Operations
# =============================================================================


class ProjectOperations:
    """Operations for managing projects."""

    def __init__(self, client: APIClient):
        self._client = client

    async def create(self, project: Project) -> EventContext | None:
        """
        Create a new project.

        Args:
            project: Project to create, typically with a shipyard

        Returns:
            Tracking context of the creation, or None if none was returned

        """
        return await self._client.post_with_context(PROJECT_PATH, project.to_dict())

    async def delete(self, project_name: str) -> EventContext | None:
        """
        Delete a project.

        Args:
            project_name: Name of the project

        Returns:
            Tracking context of the deletion, or None if none was returned

        """
        return await self._client.delete_with_context(f"{PROJECT_PATH}/{project_name}")

    async def get(self, project_name: str) -> Project | None:
        """
        Get a project by name.

        Args:
            project_name: Name of the project

        Returns:
            Project details, None if the server answered with an empty body

        """
        return await self._client.get(f"{PROJECT_PATH}/{project_name}", parser=Project.from_dict)

    async def list_all(self) -> builtins.list[Project]:
        """
        List all projects.

        Returns:
            List of all Projects across all pages

        """
        return await self._client.paginate_all(PROJECT_PATH, "projects", parser=Project.from_dict)

    async def update(self, project: Project) -> EventContext | None:
        """
        Update a project (e.g. its git upstream).

        Args:
            project: Project with the new settings

        Returns:
            Tracking context of the update, or None if none was returned

        """
        return await self._client.put_with_context(f"{PROJECT_PATH}/{project.project_name}", project.to_dict())


# =============================================================================
# Event Operations
# =============================================================================


class EventOperations:
    """Operations for querying the event datastore."""

    def __init__(self, client: APIClient):
        self._client = client

    async def list(self, event_filter: EventFilter) -> builtins.list[Event]:
        """
        List events matching the filter.

        Args:
            event_filter: Filter; number_of_pages caps the pages fetched

        Returns:
            Matching events in server order

        """
        return await self._client.paginate_all(
            EVENT_PATH,
            "events",
            parser=Event.from_dict,
            params=event_filter.to_params(),
            page_limit=event_filter.number_of_pages,
        )

    async def list_with_retry(
        self,
        event_filter: EventFilter,
        max_attempts: int,
        delay: float,
    ) -> builtins.list[Event]:
        """
        List events, retrying until at least one matches.

        Args:
            event_filter: Filter for the events
            max_attempts: Number of lookups before giving up
            delay: Seconds between lookups

        Returns:
            Matching events of the first non-empty lookup

        Raises:
            RetryExhaustedError: No matching event after max_attempts lookups

        """
        return await self._client.retry(
            lambda: self.list(event_filter),
            max_attempts,
            delay,
            what="matching event",
        )


# =============================================================================
# Sequence Operations
# =============================================================================


class SequenceOperations:
    """Operations for controlling running sequences."""

    def __init__(self, client: APIClient):
        self._client = client

    async def control(self, params: SequenceControlParams) -> None:
        """
        Change the state of a sequence.

        Args:
            params: Project, context, optional stage and the new state

        Raises:
            ValidationError: Required parameters missing; no request is sent

        """
        missing = params.missing_fields()
        if missing:
            raise ValidationError(
                f"failed to validate sequence control parameters: {','.join(missing)}",
                details={"missing": missing},
            )

        path = SEQUENCE_CONTROL_PATH.format(project=params.project, keptn_context=params.keptn_context)
        await self._client.post(path, params.to_body())
