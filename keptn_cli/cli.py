"""
Keptn CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- TTY detection for human vs machine output
- Pretty formatting for human output
- JSON output for piping/automation
"""

import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from keptn_cli.core.client import KeptnError, ValidationError
from keptn_cli.core.types import EventFilter, Project, SequenceControlParams
from keptn_cli.sdk import KeptnClient

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: KeptnError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    print(header_line)
    print("-" * len(header_line))

    for row in rows:
        print("  ".join(str(v)[:w].ljust(w) for v, w in zip(row, widths)))


def context_output(context: Any, message: str) -> None:
    """Print the tracking context returned by a write."""
    json_output(
        {
            "keptn_context": context.keptn_context if context else None,
            "message": message,
        }
    )


# =============================================================================
# CLI Commands
# =============================================================================


async def cmd_projects_list(client: KeptnClient, _args: argparse.Namespace) -> None:
    """List all projects."""
    projects = await client.projects.list_all()

    if is_tty():
        if not projects:
            print("No projects found.")
            return
        table_output(
            ["Name", "Stages", "Created"],
            [[p.project_name, ",".join(s.stage_name for s in p.stages), p.creation_date or ""] for p in projects],
            [30, 40, 24],
        )
    else:
        json_output(
            {
                "data": [{"name": p.project_name, "stages": [s.stage_name for s in p.stages]} for p in projects],
                "total_count": len(projects),
            }
        )


async def cmd_projects_get(client: KeptnClient, args: argparse.Namespace) -> None:
    """Get a project by name."""
    project = await client.projects.get(args.name)
    if project is None:
        json_output({"name": args.name, "message": "Server returned no project data."})
        return

    json_output(
        {
            "name": project.project_name,
            "creation_date": project.creation_date,
            "git_remote_url": project.git_remote_url,
            "shipyard_version": project.shipyard_version,
            "stages": [
                {"name": s.stage_name, "services": [svc.service_name for svc in s.services]} for s in project.stages
            ],
        }
    )


async def cmd_projects_create(client: KeptnClient, args: argparse.Namespace) -> None:
    """Create a project from a shipyard file."""
    shipyard_path = Path(args.shipyard)
    if not shipyard_path.exists():
        raise ValidationError(f"Shipyard file not found: {args.shipyard}")

    shipyard = base64.b64encode(shipyard_path.read_bytes()).decode("ascii")
    project = Project(project_name=args.name, shipyard=shipyard, git_remote_url=args.git_remote_url)
    context = await client.projects.create(project)
    context_output(context, f"Project {args.name} creation triggered.")


async def cmd_projects_delete(client: KeptnClient, args: argparse.Namespace) -> None:
    """Delete a project."""
    context = await client.projects.delete(args.name)
    context_output(context, f"Project {args.name} deleted.")


async def cmd_events_list(client: KeptnClient, args: argparse.Namespace) -> None:
    """List events matching the given filters."""
    event_filter = EventFilter(
        project=args.project or "",
        stage=args.stage or "",
        service=args.service or "",
        event_type=args.type or "",
        keptn_context=args.keptn_context or "",
        event_id=args.event_id or "",
        page_size=args.page_size or "",
        number_of_pages=args.pages,
        from_time=args.from_time or "",
    )

    if args.retries > 0:
        events = await client.events.list_with_retry(event_filter, args.retries, args.retry_delay)
    else:
        events = await client.events.list(event_filter)

    if is_tty():
        if not events:
            print("No events found.")
            return
        table_output(
            ["ID", "Type", "Context", "Time"],
            [[e.id, e.type, e.shkeptncontext or "", e.time or ""] for e in events],
            [36, 45, 36, 24],
        )
    else:
        json_output({"data": [e.to_dict() for e in events], "total_count": len(events)})


async def cmd_sequence_control(client: KeptnClient, args: argparse.Namespace) -> None:
    """Pause, resume or abort a sequence."""
    params = SequenceControlParams(
        project=args.project,
        keptn_context=args.keptn_context,
        state=args.state,
        stage=args.stage or "",
    )
    await client.sequences.control(params)
    json_output({"keptn_context": args.keptn_context, "state": args.state, "message": "Sequence state changed."})


# =============================================================================
# Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="keptn-cli",
        description="Command-line client for the Keptn control plane API",
    )
    parser.add_argument("--endpoint", "-e", help="Keptn API endpoint (or KEPTN_ENDPOINT env var)")
    parser.add_argument("--token", "-t", help="API token (or KEPTN_API_TOKEN env var)")
    parser.add_argument("--auth-header", help="Auth header name (or KEPTN_AUTH_HEADER env var)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log requests to stderr")

    subparsers = parser.add_subparsers(dest="command")

    # ========== Projects ==========
    projects = subparsers.add_parser("projects", help="List and manage projects")
    projects.set_defaults(func=None, help_parser=projects)
    projects_sub = projects.add_subparsers(dest="subcommand")

    p_list = projects_sub.add_parser("list", help="List all projects")
    p_list.set_defaults(func=cmd_projects_list)

    p_get = projects_sub.add_parser("get", help="Get project details")
    p_get.add_argument("name", help="Project name")
    p_get.set_defaults(func=cmd_projects_get)

    p_create = projects_sub.add_parser("create", help="Create a project")
    p_create.add_argument("name", help="Project name")
    p_create.add_argument("--shipyard", "-s", required=True, help="Path to the shipyard YAML file")
    p_create.add_argument("--git-remote-url", help="Git upstream of the project")
    p_create.set_defaults(func=cmd_projects_create)

    p_delete = projects_sub.add_parser("delete", help="Delete a project")
    p_delete.add_argument("name", help="Project name")
    p_delete.set_defaults(func=cmd_projects_delete)

    # ========== Events ==========
    events = subparsers.add_parser("events", help="Query events")
    events.set_defaults(func=None, help_parser=events)
    events_sub = events.add_subparsers(dest="subcommand")

    ev_list = events_sub.add_parser("list", help="List events")
    ev_list.add_argument("--project", "-p", help="Filter by project")
    ev_list.add_argument("--stage", help="Filter by stage")
    ev_list.add_argument("--service", help="Filter by service")
    ev_list.add_argument("--type", help="Filter by event type")
    ev_list.add_argument("--keptn-context", help="Filter by Keptn context")
    ev_list.add_argument("--event-id", help="Filter by event ID")
    ev_list.add_argument("--from-time", help="Only events after this timestamp")
    ev_list.add_argument("--page-size", help="Events per page")
    ev_list.add_argument("--pages", type=int, default=0, help="Maximum pages to fetch (0 = all)")
    ev_list.add_argument("--retries", type=int, default=0, help="Retry until an event matches (0 = no retry)")
    ev_list.add_argument("--retry-delay", type=float, default=10.0, help="Seconds between retries")
    ev_list.set_defaults(func=cmd_events_list)

    # ========== Sequence ==========
    sequence = subparsers.add_parser("sequence", help="Control sequences")
    sequence.set_defaults(func=None, help_parser=sequence)
    sequence_sub = sequence.add_subparsers(dest="subcommand")

    s_control = sequence_sub.add_parser("control", help="Pause, resume or abort a sequence")
    s_control.add_argument("project", help="Project name")
    s_control.add_argument("keptn_context", help="Keptn context of the sequence")
    s_control.add_argument("--state", required=True, choices=["pause", "resume", "abort"], help="New state")
    s_control.add_argument("--stage", help="Limit to one stage")
    s_control.set_defaults(func=cmd_sequence_control)

    return parser


async def run(args: argparse.Namespace) -> None:
    """Run the selected command against a fresh client."""
    async with KeptnClient(endpoint=args.endpoint, api_token=args.token, auth_header=args.auth_header) as client:
        try:
            await args.func(client, args)
        except KeptnError as e:
            error_output(e)


def main() -> None:
    """Main CLI entry point."""
    load_dotenv()
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)
    if args.func is None:
        args.help_parser.print_help()
        sys.exit(0)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
