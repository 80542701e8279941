"""Tests for sonar_mcp/client.py"""

import base64
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from sonar_mcp.client import SonarClient
from sonar_mcp.config import Config
from sonar_mcp.errors import (
    AuthenticationError,
    ConfigError,
    ErrorKind,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    UpstreamError,
)

BASE = "https://sonar.example.com"


@pytest.fixture
def client() -> SonarClient:
    return SonarClient(url=BASE, token="squ_test")


def _query(adapter) -> dict[str, str]:
    """Query string of the last request, case preserved."""
    qs = parse_qs(urlparse(adapter.last_request.url).query, keep_blank_values=True)
    return {k: v[0] for k, v in qs.items()}


# ---------------------------------------------------------------------------
# Construction and credentials
# ---------------------------------------------------------------------------

def test_basic_auth_header_is_base64_of_token_and_colon(requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/components/show", json={"component": {}})
    SonarClient(url=BASE, token="abc").get_project_details("p")
    expected = "Basic " + base64.b64encode(b"abc:").decode()
    assert adapter.last_request.headers["Authorization"] == expected


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token_fails_construction(token, requests_mock):
    with pytest.raises(ConfigError) as info:
        SonarClient(url=BASE, token=token)
    assert info.value.kind is ErrorKind.CONFIGURATION
    assert not requests_mock.called


def test_default_url_when_unset():
    assert SonarClient(url=None, token="t").base_url == "https://sonarcloud.io"


def test_trailing_slash_stripped():
    assert SonarClient(url=f"{BASE}/", token="t").base_url == BASE


def test_from_config():
    client = SonarClient.from_config(Config(url=BASE, token="t", timeout=5))
    assert client.base_url == BASE


# ---------------------------------------------------------------------------
# get_projects()
# ---------------------------------------------------------------------------

def test_get_projects_with_query(client, requests_mock):
    payload = {
        "paging": {"pageIndex": 1, "pageSize": 100, "total": 1},
        "components": [{"key": "org_my-repo", "name": "my-repo", "qualifier": "TRK"}],
    }
    adapter = requests_mock.get(f"{BASE}/api/components/search", json=payload)
    data = client.get_projects(query="my-repo")
    assert _query(adapter) == {"qualifiers": "TRK", "q": "my-repo", "p": "1", "ps": "100"}
    assert data == payload


def test_get_projects_without_query_omits_q(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/components/search", json={"components": []})
    client.get_projects(page=3, page_size=20)
    assert _query(adapter) == {"qualifiers": "TRK", "p": "3", "ps": "20"}


@pytest.mark.parametrize("page_size", [0, 501])
def test_page_size_out_of_range_sends_nothing(client, requests_mock, page_size):
    with pytest.raises(ValueError, match="page_size"):
        client.get_projects(page_size=page_size)
    assert not requests_mock.called


def test_page_below_one_sends_nothing(client, requests_mock):
    with pytest.raises(ValueError, match="page"):
        client.get_project_analyses("p", page=0)
    assert not requests_mock.called


# ---------------------------------------------------------------------------
# get_issues()
# ---------------------------------------------------------------------------

def test_get_issues_only_severities(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/issues/search", json={"issues": []})
    client.get_issues("org_repo", severities=["BLOCKER", "CRITICAL"])
    assert _query(adapter) == {
        "projects": "org_repo",
        "severities": "BLOCKER,CRITICAL",
        "p": "1",
        "ps": "100",
    }


def test_get_issues_empty_lists_are_not_sent(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/issues/search", json={"issues": []})
    client.get_issues(
        "org_repo", severities=[], types=[], statuses=[], issue_statuses=[],
        assignees=[], tags=[],
    )
    assert _query(adapter) == {"projects": "org_repo", "p": "1", "ps": "100"}


def test_get_issues_all_filters(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/issues/search", json={"issues": []})
    client.get_issues(
        "org_repo",
        severities=["MINOR", "BLOCKER"],
        types=["BUG"],
        statuses=["OPEN", "REOPENED"],
        issue_statuses=["ACCEPTED"],
        branch="develop",
        created_after="2024-01-01",
        created_before="2024-02-01",
        assignees=["__me__", "alice"],
        tags=["security", "cwe"],
        page=2,
        page_size=50,
    )
    assert _query(adapter) == {
        "projects": "org_repo",
        "severities": "MINOR,BLOCKER",
        "types": "BUG",
        "statuses": "OPEN,REOPENED",
        "issueStatuses": "ACCEPTED",
        "branch": "develop",
        "createdAfter": "2024-01-01",
        "createdBefore": "2024-02-01",
        "assignees": "__me__,alice",
        "tags": "security,cwe",
        "p": "2",
        "ps": "50",
    }


def test_get_issues_returns_paging_verbatim(client, requests_mock):
    payload = {
        "total": 742, "p": 2, "ps": 100,
        "paging": {"pageIndex": 2, "pageSize": 100, "total": 742},
        "issues": [{"key": "i1", "severity": "MAJOR"}],
    }
    requests_mock.get(f"{BASE}/api/issues/search", json=payload)
    assert client.get_issues("org_repo", page=2) == payload


# ---------------------------------------------------------------------------
# get_metrics() / get_quality_gate_status() / get_project_details()
# ---------------------------------------------------------------------------

def test_get_metrics_joins_keys(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/measures/component", json={"component": {}})
    client.get_metrics("org_repo", ["coverage", "bugs", "ncloc"])
    assert _query(adapter) == {"component": "org_repo", "metricKeys": "coverage,bugs,ncloc"}


def test_get_metrics_empty_keys_rejected_before_call(client, requests_mock):
    with pytest.raises(ValueError, match="metric key"):
        client.get_metrics("org_repo", [])
    assert not requests_mock.called


def test_quality_gate_returns_project_status(client, requests_mock):
    status = {"status": "ERROR", "conditions": [{"status": "ERROR", "metricKey": "coverage"}]}
    adapter = requests_mock.get(
        f"{BASE}/api/qualitygates/project_status", json={"projectStatus": status}
    )
    assert client.get_quality_gate_status("org_repo") == status
    assert _query(adapter) == {"projectKey": "org_repo"}


def test_project_details_returns_component(client, requests_mock):
    component = {"key": "org_repo", "name": "repo", "qualifier": "TRK"}
    adapter = requests_mock.get(f"{BASE}/api/components/show", json={"component": component})
    assert client.get_project_details("org_repo") == component
    assert _query(adapter) == {"component": "org_repo"}


# ---------------------------------------------------------------------------
# Hotspots
# ---------------------------------------------------------------------------

def test_get_hotspots_defaults(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/hotspots/search", json={"hotspots": []})
    client.get_hotspots("org_repo", in_new_code_period=False, only_mine=False, files=[])
    assert _query(adapter) == {"project": "org_repo", "p": "1", "ps": "100"}


def test_get_hotspots_all_filters(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/hotspots/search", json={"hotspots": []})
    client.get_hotspots(
        "org_repo",
        branch="main",
        status="REVIEWED",
        resolution="SAFE",
        in_new_code_period=True,
        only_mine=True,
        files=["src/a.py", "src/b.py"],
    )
    assert _query(adapter) == {
        "project": "org_repo",
        "branch": "main",
        "status": "REVIEWED",
        "resolution": "SAFE",
        "inNewCodePeriod": "true",
        "onlyMine": "true",
        "files": "src/a.py,src/b.py",
        "p": "1",
        "ps": "100",
    }


def test_resolution_passed_through_without_status(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/hotspots/search", json={})
    client.get_hotspots("org_repo", resolution="FIXED")
    assert _query(adapter)["resolution"] == "FIXED"
    assert "status" not in _query(adapter)


def test_get_hotspot_details(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/hotspots/show", json={"key": "hs1"})
    assert client.get_hotspot_details("hs1") == {"key": "hs1"}
    assert _query(adapter) == {"hotspot": "hs1"}


# ---------------------------------------------------------------------------
# Files, rules, branches, analyses
# ---------------------------------------------------------------------------

def test_get_source_code_with_range(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/sources/show", json={"sources": []})
    client.get_source_code("org_repo:src/a.py", from_line=10, to_line=20)
    assert _query(adapter) == {"key": "org_repo:src/a.py", "from": "10", "to": "20"}


def test_get_source_code_without_range(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/sources/show", json={"sources": []})
    client.get_source_code("org_repo:src/a.py")
    assert _query(adapter) == {"key": "org_repo:src/a.py"}


def test_get_duplications(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/duplications/show", json={"duplications": []})
    client.get_duplications("org_repo:src/a.py")
    assert _query(adapter) == {"key": "org_repo:src/a.py"}


def test_get_rule_details(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/rules/show", json={"rule": {"key": "java:S1144"}})
    assert client.get_rule_details("java:S1144") == {"rule": {"key": "java:S1144"}}
    assert _query(adapter) == {"key": "java:S1144"}


def test_get_project_branches(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/project_branches/list", json={"branches": []})
    client.get_project_branches("org_repo")
    assert _query(adapter) == {"project": "org_repo"}


def test_get_project_analyses(client, requests_mock):
    adapter = requests_mock.get(f"{BASE}/api/project_analyses/search", json={"analyses": []})
    client.get_project_analyses("org_repo", page=2, page_size=10)
    assert _query(adapter) == {"project": "org_repo", "p": "2", "ps": "10"}


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

def test_401_maps_to_fixed_message(client, requests_mock):
    requests_mock.get(f"{BASE}/api/issues/search", status_code=401)
    with pytest.raises(AuthenticationError) as info:
        client.get_issues("org_repo")
    assert str(info.value) == "Error fetching issues: invalid or expired credential"
    assert info.value.kind is ErrorKind.UNAUTHORIZED
    assert info.value.status_code == 401


def test_403_maps_to_fixed_message(client, requests_mock):
    requests_mock.get(f"{BASE}/api/hotspots/search", status_code=403,
                      json={"errors": [{"msg": "Insufficient privileges"}]})
    with pytest.raises(ForbiddenError) as info:
        client.get_hotspots("org_repo")
    assert str(info.value) == (
        "Error fetching security hotspots: access denied / insufficient permissions"
    )
    assert info.value.kind is ErrorKind.FORBIDDEN


def test_404_maps_to_fixed_message(client, requests_mock):
    requests_mock.get(f"{BASE}/api/rules/show", status_code=404)
    with pytest.raises(NotFoundError) as info:
        client.get_rule_details("java:S0000")
    assert str(info.value) == "Error fetching rule details: resource not found"
    assert info.value.kind is ErrorKind.NOT_FOUND


def test_500_surfaces_upstream_message(client, requests_mock):
    requests_mock.get(f"{BASE}/api/measures/component", status_code=500,
                      json={"errors": [{"msg": "Metric 'foo' not found"}]})
    with pytest.raises(UpstreamError) as info:
        client.get_metrics("org_repo", ["foo"])
    assert str(info.value) == "Error fetching metrics: Metric 'foo' not found"
    assert info.value.kind is ErrorKind.UPSTREAM
    assert info.value.status_code == 500


def test_400_surfaces_upstream_message(client, requests_mock):
    requests_mock.get(f"{BASE}/api/issues/search", status_code=400,
                      json={"errors": [{"msg": "Date 'x' cannot be parsed"}]})
    with pytest.raises(UpstreamError, match="Error fetching issues: Date 'x' cannot be parsed"):
        client.get_issues("org_repo", created_after="x")


def test_500_without_body_falls_back_to_transport_message(client, requests_mock):
    requests_mock.get(f"{BASE}/api/project_branches/list", status_code=500, text="boom")
    with pytest.raises(UpstreamError) as info:
        client.get_project_branches("org_repo")
    message = str(info.value)
    assert message.startswith("Error fetching project branches: ")
    assert "500" in message


def test_connection_error_uses_transport_message(client, requests_mock):
    requests_mock.get(f"{BASE}/api/components/search",
                      exc=requests.exceptions.ConnectionError("Connection refused"))
    with pytest.raises(NetworkError) as info:
        client.get_projects()
    assert str(info.value) == "Error fetching projects: Connection refused"
    assert info.value.status_code is None
    assert info.value.kind is ErrorKind.UPSTREAM


def test_timeout_raises_network_error(client, requests_mock):
    requests_mock.get(f"{BASE}/api/hotspots/show", exc=requests.exceptions.Timeout("timed out"))
    with pytest.raises(NetworkError, match="Error fetching hotspot details: timed out"):
        client.get_hotspot_details("hs1")


def test_non_json_success_body_is_upstream_error(client, requests_mock):
    requests_mock.get(f"{BASE}/api/duplications/show", text="<html>login</html>")
    with pytest.raises(UpstreamError, match="Error fetching duplications: invalid JSON"):
        client.get_duplications("f")


def test_non_object_json_body_is_upstream_error(client, requests_mock):
    requests_mock.get(f"{BASE}/api/qualitygates/project_status", json=["unexpected"])
    with pytest.raises(UpstreamError) as info:
        client.get_quality_gate_status("org_repo")
    assert str(info.value) == (
        "Error fetching Quality Gate status: "
        "unexpected response body: expected a JSON object, got list"
    )
    assert info.value.status_code == 200
