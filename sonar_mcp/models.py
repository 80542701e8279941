"""Typed shapes of the SonarQube responses the server relays.

The client returns upstream JSON untouched, so the modeled entities are
TypedDicts over that JSON rather than classes that would drop unknown fields.
Endpoints whose shape nothing here depends on (hotspots, duplications,
sources, rules, branches, analyses) are typed as ``JSONObject``.
"""

from typing import Any, NotRequired, TypedDict

JSONObject = dict[str, Any]


class Paging(TypedDict):
    pageIndex: int
    pageSize: int
    total: int


class Project(TypedDict):
    key: str
    name: str
    qualifier: str
    visibility: str
    lastAnalysisDate: NotRequired[str]


class ProjectsResponse(TypedDict):
    paging: Paging
    components: list[Project]


class Issue(TypedDict):
    key: str
    rule: str
    severity: str
    component: str
    project: str
    line: NotRequired[int]
    message: str
    author: NotRequired[str]
    status: str
    type: str
    creationDate: str
    updateDate: str


class IssuesResponse(TypedDict):
    total: int
    p: int
    ps: int
    paging: Paging
    issues: list[Issue]


class Measure(TypedDict):
    metric: str
    value: NotRequired[str]
    component: NotRequired[str]
    bestValue: NotRequired[bool]


class ComponentMeasures(TypedDict):
    key: str
    qualifier: NotRequired[str]
    measures: list[Measure]


class MetricsResponse(TypedDict):
    component: ComponentMeasures


class QualityGateCondition(TypedDict):
    status: str
    metricKey: str
    comparator: str
    errorThreshold: NotRequired[str]
    actualValue: NotRequired[str]


class QualityGate(TypedDict):
    name: str
    status: str
    conditions: NotRequired[list[QualityGateCondition]]
