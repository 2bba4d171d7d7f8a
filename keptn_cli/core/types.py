"""
Core types for the Keptn control plane API.

These dataclasses provide type safety and IDE support for API responses.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

# =============================================================================
# Pagination
# =============================================================================


T = TypeVar("T")

# Both values mean "no further pages".
LAST_PAGE_KEYS = ("", "0")

# Optional sign and ASCII digits only; int() alone also takes "1_0", " 3" and non-ASCII digits.
INTEGER_CURSOR = re.compile(r"[+-]?[0-9]+")


@dataclass
class Page(Generic[T]):
    """One page of a nextPageKey-paginated response."""

    items: list[T]
    next_page_key: str = ""

    @property
    def has_more(self) -> bool:
        """Check if the server announced another page."""
        return self.next_page_key not in LAST_PAGE_KEYS

    @property
    def cursor_value(self) -> int:
        """Numeric value of the cursor, 0 if it is not a plain ASCII integer."""
        if not INTEGER_CURSOR.fullmatch(self.next_page_key):
            return 0
        return int(self.next_page_key)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        item_key: str,
        parser: Callable[[dict[str, Any]], T] | None = None,
    ) -> "Page[T]":
        """Create from API response dict."""
        raw_items = data.get(item_key) or []
        items = [parser(item) for item in raw_items] if parser else list(raw_items)
        return cls(items=items, next_page_key=str(data.get("nextPageKey") or ""))


# =============================================================================
# Tracking context
# =============================================================================


@dataclass
class EventContext:
    """Tracking context returned by writes that trigger a sequence."""

    keptn_context: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EventContext":
        """Create from API response dict."""
        return cls(keptn_context=data.get("keptnContext"))


# =============================================================================
# Project Types
# =============================================================================


@dataclass
class Service:
    """A service within a stage."""

    service_name: str
    creation_date: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Service":
        """Create from API response dict."""
        return cls(
            service_name=data["serviceName"],
            creation_date=data.get("creationDate"),
        )


@dataclass
class Stage:
    """A stage of a project."""

    stage_name: str
    services: list[Service] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Stage":
        """Create from API response dict."""
        return cls(
            stage_name=data["stageName"],
            services=[Service.from_dict(s) for s in data.get("services") or []],
        )


@dataclass
class Project:
    """A Keptn project."""

    project_name: str
    creation_date: str | None = None
    shipyard: str | None = None
    shipyard_version: str | None = None
    git_user: str | None = None
    git_remote_url: str | None = None
    stages: list[Stage] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Create from API response dict."""
        return cls(
            project_name=data["projectName"],
            creation_date=data.get("creationDate"),
            shipyard=data.get("shipyard"),
            shipyard_version=data.get("shipyardVersion"),
            git_user=data.get("gitUser"),
            git_remote_url=data.get("gitRemoteURL"),
            stages=[Stage.from_dict(s) for s in data.get("stages") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for API request, leaving out unset fields."""
        result: dict[str, Any] = {"projectName": self.project_name}
        optional = {
            "creationDate": self.creation_date,
            "shipyard": self.shipyard,
            "shipyardVersion": self.shipyard_version,
            "gitUser": self.git_user,
            "gitRemoteURL": self.git_remote_url,
        }
        result.update({k: v for k, v in optional.items() if v is not None})
        if self.stages:
            result["stages"] = [
                {
                    "stageName": stage.stage_name,
                    "services": [{"serviceName": s.service_name} for s in stage.services],
                }
                for stage in self.stages
            ]
        return result


# =============================================================================
# Event Types
# =============================================================================


@dataclass
class Event:
    """A CloudEvent extended with Keptn context fields."""

    id: str
    type: str
    source: str | None = None
    specversion: str | None = None
    time: str | None = None
    shkeptncontext: str | None = None
    triggeredid: str | None = None
    contenttype: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def project(self) -> str | None:
        """Project named in the event payload."""
        return self.data.get("project")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        """Create from API response dict."""
        return cls(
            id=data["id"],
            type=data.get("type", ""),
            source=data.get("source"),
            specversion=data.get("specversion"),
            time=data.get("time"),
            shkeptncontext=data.get("shkeptncontext"),
            triggeredid=data.get("triggeredid"),
            contenttype=data.get("contenttype") or data.get("datacontenttype"),
            data=data.get("data") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "specversion": self.specversion,
            "time": self.time,
            "shkeptncontext": self.shkeptncontext,
            "triggeredid": self.triggeredid,
            "data": self.data,
        }


@dataclass
class EventFilter:
    """Filter for event queries. Empty fields are not sent."""

    project: str = ""
    stage: str = ""
    service: str = ""
    event_type: str = ""
    keptn_context: str = ""
    event_id: str = ""
    page_size: str = ""
    number_of_pages: int = 0
    from_time: str = ""

    def to_params(self) -> dict[str, str]:
        """Query parameters for the event endpoint."""
        params = {
            "project": self.project,
            "stage": self.stage,
            "service": self.service,
            "keptnContext": self.keptn_context,
            "eventID": self.event_id,
            "type": self.event_type,
            "pageSize": self.page_size,
            "fromTime": self.from_time,
        }
        return {k: v for k, v in params.items() if v}


# =============================================================================
# Sequence Types
# =============================================================================


@dataclass
class SequenceControlParams:
    """Target and new state of a sequence (e.g. pause, resume, abort)."""

    project: str
    keptn_context: str
    state: str
    stage: str = ""

    def missing_fields(self) -> list[str]:
        """Names of required parameters that are not set."""
        missing = []
        if not self.project:
            missing.append("project parameter not set")
        if not self.keptn_context:
            missing.append("keptn context parameter not set")
        if not self.state:
            missing.append("sequence state parameter not set")
        return missing

    def to_body(self) -> dict[str, str]:
        """Convert to dict for API request."""
        return {"stage": self.stage, "state": self.state}
