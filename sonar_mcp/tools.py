"""Tool registry — one named command per SonarClient operation.

Each command declares a pydantic model for its arguments (the published MCP
input schema is generated from it) and a handler that makes exactly one
client call. ``run_command`` wraps every outcome in the response envelope:

    {"content": [{"type": "text", "text": "..."}]}                  # success
    {"content": [{"type": "text", "text": "Error: ..."}], "isError": True}

Commands never raise: client errors, argument errors and unknown tool names
all come back as error envelopes.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from sonar_mcp.client import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, SonarClient
from sonar_mcp.errors import SonarError
from sonar_mcp.logging import log_operation, logger

Severity = Literal["BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO"]
IssueType = Literal["BUG", "VULNERABILITY", "CODE_SMELL", "SECURITY_HOTSPOT"]
LegacyStatus = Literal[
    "OPEN", "CONFIRMED", "REOPENED", "RESOLVED", "CLOSED", "TO_REVIEW", "IN_REVIEW", "REVIEWED",
]
IssueStatus = Literal["OPEN", "CONFIRMED", "FALSE_POSITIVE", "ACCEPTED", "FIXED"]
HotspotStatus = Literal["TO_REVIEW", "REVIEWED"]
HotspotResolution = Literal["FIXED", "SAFE", "ACKNOWLEDGED"]

PROJECT_KEY_HELP = "Project key (e.g., 'my-project-key')"
FILE_KEY_HELP = "File key (e.g., 'my-project:src/main/java/com/example/MyClass.java')"


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------

class ToolArguments(BaseModel):
    """Base for tool arguments: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, validate_by_name=True)


class PagedArguments(ToolArguments):
    page: int = Field(DEFAULT_PAGE, ge=1, description="Page number")
    page_size: int = Field(
        DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"
    )


class ProjectArguments(ToolArguments):
    project_key: str = Field(description=PROJECT_KEY_HELP)


class ProjectsArguments(PagedArguments):
    query: str | None = Field(
        None,
        description=(
            "Search projects by name. Use Git repository name (e.g., 'my-repo') to find "
            "projectKey automatically. SonarQube usually uses format 'organization_repo-name'."
        ),
    )


class IssuesArguments(PagedArguments):
    project_key: str = Field(description=PROJECT_KEY_HELP)
    severities: list[Severity] | None = Field(
        None, description="Filter by severities (BLOCKER, CRITICAL, MAJOR, MINOR, INFO)"
    )
    types: list[IssueType] | None = Field(
        None, description="Filter by types (BUG, VULNERABILITY, CODE_SMELL, SECURITY_HOTSPOT)"
    )
    statuses: list[LegacyStatus] | None = Field(
        None, description="Filter by old status (deprecated, use issueStatuses)"
    )
    issue_statuses: list[IssueStatus] | None = Field(
        None,
        description="Filter by issue status (OPEN, CONFIRMED, FALSE_POSITIVE, ACCEPTED, FIXED)",
    )
    branch: str | None = Field(
        None, description="Specific branch (e.g., 'develop', 'feature/my-branch')"
    )
    created_after: str | None = Field(
        None,
        description="Issues created after this date (format: YYYY-MM-DD or YYYY-MM-DDTHH:mm:ss)",
    )
    created_before: str | None = Field(
        None, description="Issues created before this date (format: YYYY-MM-DD)"
    )
    assignees: list[str] | None = Field(
        None, description="List of assignees (logins). Use '__me__' for current user"
    )
    tags: list[str] | None = Field(None, description="Filter by tags (e.g., ['security', 'bug'])")


class MetricsArguments(ToolArguments):
    project_key: str = Field(description=PROJECT_KEY_HELP)
    metric_keys: list[str] = Field(
        min_length=1,
        description=(
            "List of metrics to fetch (e.g., ['coverage', 'bugs', 'vulnerabilities', "
            "'code_smells', 'sqale_rating', 'reliability_rating', 'security_rating', "
            "'duplicated_lines_density', 'ncloc'])"
        ),
    )


class AnalysesArguments(PagedArguments):
    project_key: str = Field(description=PROJECT_KEY_HELP)


class HotspotsArguments(PagedArguments):
    project_key: str = Field(description=PROJECT_KEY_HELP)
    branch: str | None = Field(None, description="Specific branch (e.g., 'develop', 'feature/xyz')")
    status: HotspotStatus | None = Field(
        None, description="Hotspot status: TO_REVIEW (to review) or REVIEWED (reviewed)"
    )
    resolution: HotspotResolution | None = Field(
        None, description="Resolution (only for REVIEWED status): FIXED, SAFE, or ACKNOWLEDGED"
    )
    in_new_code_period: bool | None = Field(
        None, description="Filter only hotspots in new code period"
    )
    only_mine: bool | None = Field(None, description="Filter only hotspots assigned to me")
    files: list[str] | None = Field(None, description="List of specific files to filter")


class HotspotArguments(ToolArguments):
    hotspot_key: str = Field(description="Security Hotspot key (e.g., 'AWhXpLoInp4On-Y3xc8x')")


class FileArguments(ToolArguments):
    file_key: str = Field(description=FILE_KEY_HELP)


class SourceCodeArguments(FileArguments):
    from_line: int | None = Field(None, alias="from", ge=1, description="Start line (starting at 1)")
    to_line: int | None = Field(None, alias="to", ge=1, description="End line (inclusive)")


class RuleArguments(ToolArguments):
    rule_key: str = Field(
        description="Rule key (e.g., 'java:S1144', 'javascript:S1234'). Format: language:ruleId"
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

Handler = Callable[[SonarClient, Any], Any]


@dataclass(frozen=True)
class Command:
    name: str
    description: str
    arguments: type[ToolArguments]
    handler: Handler

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the arguments, with camelCase property names."""
        return self.arguments.model_json_schema(by_alias=True)


COMMANDS: dict[str, Command] = {}


def command(name: str, description: str, arguments: type[ToolArguments]):
    """Register the decorated function as the handler of tool *name*."""

    def decorator(func: Handler) -> Handler:
        COMMANDS[name] = Command(name, description, arguments, func)
        return func

    return decorator


def run_command(client: SonarClient, name: str, arguments: dict[str, Any] | None) -> dict:
    """Validate *arguments*, run tool *name* and return the response envelope."""
    cmd = COMMANDS.get(name)
    if cmd is None:
        return error_envelope(f"Unknown tool: {name}")

    try:
        args = cmd.arguments.model_validate(arguments or {})
    except ValidationError as exc:
        logger.info("Rejected %s arguments: %s", name, _describe(exc))
        return error_envelope(f"Invalid arguments for {name}: {_describe(exc)}")

    try:
        with log_operation(name, args.model_dump(exclude_none=True, by_alias=True)):
            data = cmd.handler(client, args)
    except (SonarError, ValueError) as exc:
        return error_envelope(str(exc))

    return text_envelope(json.dumps(data, indent=2, ensure_ascii=False))


def text_envelope(text: str) -> dict:
    return {"content": [{"type": "text", "text": text}]}


def error_envelope(message: str) -> dict:
    return {"content": [{"type": "text", "text": f"Error: {message}"}], "isError": True}


def _describe(exc: ValidationError) -> str:
    """One line per field: ``pageSize: Input should be less than or equal to 500``."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "arguments"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@command(
    "get-projects",
    "List all available projects in SonarQube. Use 'query' parameter to search by Git "
    "repository name (e.g., 'my-repo' will find 'org_my-repo').",
    ProjectsArguments,
)
def get_projects(client: SonarClient, args: ProjectsArguments):
    return client.get_projects(args.page, args.page_size, args.query)


@command(
    "get-project-details",
    "Get details of a specific SonarQube project",
    ProjectArguments,
)
def get_project_details(client: SonarClient, args: ProjectArguments):
    return client.get_project_details(args.project_key)


@command(
    "get-issues",
    "Search issues (code problems) in a SonarQube project. Supports advanced filters by "
    "severity, type, status, branch, dates, and more. If you don't know the projectKey, "
    "use get-projects with repository name first.",
    IssuesArguments,
)
def get_issues(client: SonarClient, args: IssuesArguments):
    return client.get_issues(
        args.project_key,
        severities=args.severities,
        types=args.types,
        statuses=args.statuses,
        issue_statuses=args.issue_statuses,
        branch=args.branch,
        created_after=args.created_after,
        created_before=args.created_before,
        assignees=args.assignees,
        tags=args.tags,
        page=args.page,
        page_size=args.page_size,
    )


@command(
    "get-metrics",
    "Get code quality metrics for a project",
    MetricsArguments,
)
def get_metrics(client: SonarClient, args: MetricsArguments):
    return client.get_metrics(args.project_key, args.metric_keys)


@command(
    "get-quality-gate-status",
    "Get Quality Gate status for a project",
    ProjectArguments,
)
def get_quality_gate_status(client: SonarClient, args: ProjectArguments):
    return client.get_quality_gate_status(args.project_key)


@command(
    "get-project-analyses",
    "Get project analysis history in SonarQube",
    AnalysesArguments,
)
def get_project_analyses(client: SonarClient, args: AnalysesArguments):
    return client.get_project_analyses(args.project_key, args.page, args.page_size)


@command(
    "get-hotspots",
    "Search Security Hotspots (security attention points) in a project. Hotspots require "
    "manual review to determine if they are real vulnerabilities.",
    HotspotsArguments,
)
def get_hotspots(client: SonarClient, args: HotspotsArguments):
    return client.get_hotspots(
        args.project_key,
        branch=args.branch,
        status=args.status,
        resolution=args.resolution,
        in_new_code_period=args.in_new_code_period,
        only_mine=args.only_mine,
        files=args.files,
        page=args.page,
        page_size=args.page_size,
    )


@command(
    "get-hotspot-details",
    "Get complete details of a specific Security Hotspot, including description, code "
    "location, and recommendations.",
    HotspotArguments,
)
def get_hotspot_details(client: SonarClient, args: HotspotArguments):
    return client.get_hotspot_details(args.hotspot_key)


@command(
    "get-duplications",
    "Search duplicate code blocks in a file. Helps identify refactoring opportunities.",
    FileArguments,
)
def get_duplications(client: SonarClient, args: FileArguments):
    return client.get_duplications(args.file_key)


@command(
    "get-source-code",
    "Get source code of a file with line numbers. Useful to see context of issues and hotspots.",
    SourceCodeArguments,
)
def get_source_code(client: SonarClient, args: SourceCodeArguments):
    return client.get_source_code(args.file_key, args.from_line, args.to_line)


@command(
    "get-rule-details",
    "Get detailed information about a SonarQube rule, including description, examples, "
    "and how to fix.",
    RuleArguments,
)
def get_rule_details(client: SonarClient, args: RuleArguments):
    return client.get_rule_details(args.rule_key)


@command(
    "get-project-branches",
    "List all analyzed branches of a project, with information about the last analysis "
    "of each one.",
    ProjectArguments,
)
def get_project_branches(client: SonarClient, args: ProjectArguments):
    return client.get_project_branches(args.project_key)
