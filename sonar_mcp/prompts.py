"""Prompt registry — canned analysis workflows that point at the tools by name.

Prompts never call the tools themselves; each one renders a single block of
text for the assistant to follow. MCP delivers prompt arguments as strings,
so every prompt validates them through a pydantic model (``"false"`` and
``"20"`` are accepted for booleans and integers).
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


class PromptArgumentError(ValueError):
    """Raised for an unknown prompt or invalid prompt arguments."""


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------

class PromptArguments(BaseModel):
    """Base for prompt arguments: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, validate_by_name=True)


class AnalyzeProjectArguments(PromptArguments):
    project_key: str = Field(
        description=(
            "Project key to analyze. If you don't know it, use Git repository name "
            "(e.g., 'my-repo') and it will be searched automatically."
        )
    )


class QualityReportArguments(PromptArguments):
    project_key: str = Field(description="Project key")
    include_issues: bool = Field(True, description="Include issues list in the report")


class PrioritizeIssuesArguments(PromptArguments):
    project_key: str = Field(description="Project key")
    max_issues: int = Field(20, ge=1, description="Maximum number of issues to prioritize")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Prompt:
    name: str
    title: str
    description: str
    arguments: type[PromptArguments]
    render: Callable[[Any], str]

    def argument_specs(self) -> list[dict[str, Any]]:
        """Name, description and required flag of each argument."""
        return [
            {
                "name": field.alias or field_name,
                "description": field.description,
                "required": field.is_required(),
            }
            for field_name, field in self.arguments.model_fields.items()
        ]

    def get(self, arguments: dict[str, Any] | None = None) -> str:
        try:
            args = self.arguments.model_validate(arguments or {})
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()
            )
            raise PromptArgumentError(f"Invalid arguments for {self.name}: {details}") from exc
        return self.render(args)


PROMPTS: dict[str, Prompt] = {}


def prompt(name: str, title: str, description: str, arguments: type[PromptArguments]):
    def decorator(func: Callable[[Any], str]) -> Callable[[Any], str]:
        PROMPTS[name] = Prompt(name, title, description, arguments, func)
        return func

    return decorator


def render_prompt(name: str, arguments: dict[str, Any] | None = None) -> str:
    """Render prompt *name* with *arguments*.

    Raises:
        PromptArgumentError: unknown prompt, or arguments that fail validation.
    """
    if name not in PROMPTS:
        raise PromptArgumentError(f"Unknown prompt: {name}")
    return PROMPTS[name].get(arguments)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

@prompt(
    "analyze-project-quality",
    "Analyze Project Quality",
    "Analyzes the overall quality of a SonarQube project and provides insights",
    AnalyzeProjectArguments,
)
def analyze_project_quality(args: AnalyzeProjectArguments) -> str:
    key = args.project_key
    return f"""Analyze the quality of project "{key}" in SonarQube.

IMPORTANT: If "{key}" is not a valid projectKey (format: org_project), first search for the project:
1. Use get-projects with query="{key}" to find the correct projectKey
2. Git repository name usually corresponds to projectKey (e.g., "my-repo" → "org_my-repo")
3. Use the found projectKey for the following analyses

After confirming the correct projectKey, provide:

1. A general summary of code health
2. Main metrics (coverage, bugs, vulnerabilities, code smells)
3. Quality Gate status
4. Critical issues requiring immediate attention
5. Pending Security Hotspots for review
6. Trends over time (if history available)
7. Priority action recommendations

Use SonarQube MCP tools to fetch:
- get-projects (if you need to find projectKey)
- get-project-details
- get-metrics
- get-quality-gate-status
- get-issues (critical and blocker issues)
- get-hotspots (security hotspots)
- get-project-analyses (history)

Provide a complete and actionable analysis."""


_ISSUES_DETAILED = """
- Total issues by severity
- Total issues by type
- Detailed list of BLOCKER and CRITICAL issues"""

_ISSUES_SUMMARY = """
- Statistical summary of issues"""


@prompt(
    "generate-quality-report",
    "Generate Quality Report",
    "Generates a detailed code quality report for a project",
    QualityReportArguments,
)
def generate_quality_report(args: QualityReportArguments) -> str:
    issues_section = _ISSUES_DETAILED if args.include_issues else _ISSUES_SUMMARY
    return f"""Generate a detailed code quality report for project "{args.project_key}".

The report should include:

## 1. Project Information
- Project name and key
- Last analysis date

## 2. Quality Gate Status
- Current status (PASSED/FAILED)
- Unmet conditions (if any)

## 3. Main Metrics
- Test coverage
- Number of bugs
- Number of vulnerabilities
- Number of code smells
- Maintainability rating
- Reliability rating
- Security rating
- Code duplication
- Lines of code (ncloc)

## 4. Issues Analysis{issues_section}

## 5. Recommendations
- Priority actions based on data
- Improvement suggestions

Use appropriate SonarQube MCP tools to collect all necessary data and format the report clearly and professionally."""


@prompt(
    "prioritize-issues",
    "Prioritize Issues",
    "Analyzes and prioritizes project issues for fixing",
    PrioritizeIssuesArguments,
)
def prioritize_issues(args: PrioritizeIssuesArguments) -> str:
    return f"""Analyze issues from project "{args.project_key}" and create a prioritized list of up to {args.max_issues} issues that should be fixed first.

Prioritization criteria:
1. Severity (BLOCKER > CRITICAL > MAJOR > MINOR > INFO)
2. Type (VULNERABILITY > BUG > CODE_SMELL > SECURITY_HOTSPOT)
3. Component/file (group issues from the same file)
4. Impact on security and reliability

For each prioritized issue, provide:
- Issue key
- Severity and type
- File and line
- Problem description
- Priority justification
- Action suggestion

Use the get-issues tool from SonarQube MCP to fetch issues and organize them clearly and actionably for the development team."""
