"""SonarQube API client.

Usage:
    client   = SonarClient(url="https://sonarcloud.io", token="squ_xxx")
    projects = client.get_projects(query="my-repo")
    issues   = client.get_issues("org_my-repo", severities=["BLOCKER"])

Each public method performs exactly one GET and returns the upstream JSON
(or the sub-object noted in its docstring). Failures are raised as a
``SonarClientError`` subclass whose message is ``"<operation>: <detail>"``.
No retries, no pagination aggregation.
"""

from typing import Any

import requests

from sonar_mcp.config import DEFAULT_URL, Config
from sonar_mcp.errors import (
    AuthenticationError,
    ConfigError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    UpstreamError,
)
from sonar_mcp.logging import logger
from sonar_mcp.models import (
    IssuesResponse,
    JSONObject,
    MetricsResponse,
    Project,
    ProjectsResponse,
    QualityGate,
)

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 500

UNAUTHORIZED_MESSAGE = "invalid or expired credential"
FORBIDDEN_MESSAGE = "access denied / insufficient permissions"
NOT_FOUND_MESSAGE = "resource not found"


class SonarClient:
    """Thin wrapper around the SonarQube REST API."""

    def __init__(self, url: str | None, token: str | None, timeout: float | None = None) -> None:
        if not token:
            raise ConfigError("SONARQUBE_TOKEN not configured. Set environment variable.")
        self.base_url = (url or DEFAULT_URL).rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()
        # SonarQube auth: token as username, empty password -> base64("<token>:")
        self._session.auth = (token, "")
        self._session.headers["Accept"] = "application/json"

    @classmethod
    def from_config(cls, config: Config) -> "SonarClient":
        return cls(url=config.url, token=config.token, timeout=config.timeout)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_projects(
        self,
        page: int = DEFAULT_PAGE,
        page_size: int = DEFAULT_PAGE_SIZE,
        query: str | None = None,
    ) -> ProjectsResponse:
        """List projects (qualifier TRK), optionally filtered by a name query."""
        params: dict[str, Any] = {"qualifiers": "TRK", **_paging(page, page_size)}
        if query:
            params["q"] = query
        return self._request("/api/components/search", params, "Error fetching projects")

    def get_project_details(self, project_key: str) -> Project:
        """Return the ``component`` object of a single project."""
        data = self._request(
            "/api/components/show",
            {"component": project_key},
            "Error fetching project details",
        )
        return data.get("component")

    def get_project_branches(self, project_key: str) -> JSONObject:
        return self._request(
            "/api/project_branches/list",
            {"project": project_key},
            "Error fetching project branches",
        )

    def get_project_analyses(
        self,
        project_key: str,
        page: int = DEFAULT_PAGE,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> JSONObject:
        """Analysis history, one page at a time."""
        params = {"project": project_key, **_paging(page, page_size)}
        return self._request(
            "/api/project_analyses/search", params, "Error fetching project analyses"
        )

    # ------------------------------------------------------------------
    # Issues, metrics, quality gate
    # ------------------------------------------------------------------

    def get_issues(
        self,
        project_key: str,
        *,
        severities: list[str] | None = None,
        types: list[str] | None = None,
        statuses: list[str] | None = None,
        issue_statuses: list[str] | None = None,
        branch: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
        assignees: list[str] | None = None,
        tags: list[str] | None = None,
        page: int = DEFAULT_PAGE,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> IssuesResponse:
        """Search issues of a project.

        Multi-valued filters are sent comma-joined in input order, and only
        when non-empty. ``statuses`` is the legacy status filter; prefer
        ``issue_statuses`` on recent SonarQube versions.
        """
        params: dict[str, Any] = {"projects": project_key, **_paging(page, page_size)}
        _add_list(params, "severities", severities)
        _add_list(params, "types", types)
        _add_list(params, "statuses", statuses)
        _add_list(params, "issueStatuses", issue_statuses)
        _add_value(params, "branch", branch)
        _add_value(params, "createdAfter", created_after)
        _add_value(params, "createdBefore", created_before)
        _add_list(params, "assignees", assignees)
        _add_list(params, "tags", tags)
        return self._request("/api/issues/search", params, "Error fetching issues")

    def get_metrics(self, project_key: str, metric_keys: list[str]) -> MetricsResponse:
        """Fetch measures for *metric_keys* on a project.

        Raises:
            ValueError: if *metric_keys* is empty (no request is sent).
        """
        if not metric_keys:
            raise ValueError("At least one metric key is required")
        params = {"component": project_key, "metricKeys": ",".join(metric_keys)}
        return self._request("/api/measures/component", params, "Error fetching metrics")

    def get_quality_gate_status(self, project_key: str) -> QualityGate:
        """Return the ``projectStatus`` object of the project's quality gate."""
        data = self._request(
            "/api/qualitygates/project_status",
            {"projectKey": project_key},
            "Error fetching Quality Gate status",
        )
        return data.get("projectStatus")

    # ------------------------------------------------------------------
    # Security hotspots
    # ------------------------------------------------------------------

    def get_hotspots(
        self,
        project_key: str,
        *,
        branch: str | None = None,
        status: str | None = None,
        resolution: str | None = None,
        in_new_code_period: bool | None = None,
        only_mine: bool | None = None,
        files: list[str] | None = None,
        page: int = DEFAULT_PAGE,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> JSONObject:
        """Search security hotspots of a project.

        ``resolution`` only makes sense with ``status="REVIEWED"``; it is
        passed through and left for SonarQube to judge.
        """
        params: dict[str, Any] = {"project": project_key, **_paging(page, page_size)}
        _add_value(params, "branch", branch)
        _add_value(params, "status", status)
        _add_value(params, "resolution", resolution)
        if in_new_code_period:
            params["inNewCodePeriod"] = "true"
        if only_mine:
            params["onlyMine"] = "true"
        _add_list(params, "files", files)
        return self._request("/api/hotspots/search", params, "Error fetching security hotspots")

    def get_hotspot_details(self, hotspot_key: str) -> JSONObject:
        return self._request(
            "/api/hotspots/show", {"hotspot": hotspot_key}, "Error fetching hotspot details"
        )

    # ------------------------------------------------------------------
    # Files and rules
    # ------------------------------------------------------------------

    def get_duplications(self, file_key: str) -> JSONObject:
        return self._request(
            "/api/duplications/show", {"key": file_key}, "Error fetching duplications"
        )

    def get_source_code(
        self,
        file_key: str,
        from_line: int | None = None,
        to_line: int | None = None,
    ) -> JSONObject:
        """Source lines of a file; *from_line*/*to_line* are 1-based and inclusive."""
        params: dict[str, Any] = {"key": file_key}
        if from_line:
            params["from"] = from_line
        if to_line:
            params["to"] = to_line
        return self._request("/api/sources/show", params, "Error fetching source code")

    def get_rule_details(self, rule_key: str) -> JSONObject:
        """Rule description; *rule_key* has the form ``language:ruleId``."""
        return self._request("/api/rules/show", {"key": rule_key}, "Error fetching rule details")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _request(self, endpoint: str, params: dict[str, Any], operation: str) -> dict:
        url = f"{self.base_url}{endpoint}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.exceptions.RequestException as exc:
            raise NetworkError(operation, str(exc)) from exc

        status = response.status_code
        if status == 401:
            raise AuthenticationError(operation, UNAUTHORIZED_MESSAGE, status)
        if status == 403:
            raise ForbiddenError(operation, FORBIDDEN_MESSAGE, status)
        if status == 404:
            raise NotFoundError(operation, NOT_FOUND_MESSAGE, status)

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            raise UpstreamError(operation, _upstream_message(response) or str(exc), status) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(operation, f"invalid JSON in response: {exc}", status) from exc
        if not isinstance(data, dict):
            raise UpstreamError(
                operation,
                f"unexpected response body: expected a JSON object, got {type(data).__name__}",
                status,
            )
        return data


# ---------------------------------------------------------------------------
# Parameter shaping
# ---------------------------------------------------------------------------

def _paging(page: int, page_size: int) -> dict[str, int]:
    """Return SonarQube ``p``/``ps`` parameters, rejecting out-of-range values."""
    if page < 1:
        raise ValueError(f"page must be >= 1 (got {page})")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE} (got {page_size})")
    return {"p": page, "ps": page_size}


def _add_list(params: dict[str, Any], name: str, values: list[str] | None) -> None:
    if values:
        params[name] = ",".join(values)


def _add_value(params: dict[str, Any], name: str, value: str | None) -> None:
    if value:
        params[name] = value


def _upstream_message(response: requests.Response) -> str | None:
    """Return ``errors[0].msg`` from a SonarQube error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return errors[0].get("msg") or None
    return None
