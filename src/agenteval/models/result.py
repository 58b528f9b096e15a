"""Result data models for agenteval outputs.

AssertionResult is the per-assertion evidence contract produced by the
engine; TestCaseResult is what the runner persists and reports for each
test case.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from agenteval.models.spec import Severity
from agenteval.models.trace import AdapterInfo

AssertionStatus = Literal["pass", "fail", "skip"]
CapabilityStatus = Literal["not_applicable", "satisfied", "missing"]
TestCaseStatus = Literal["pass", "fail", "error"]

RESULT_SCHEMA_VERSION = "0.1"


class Evidence(BaseModel):
    event_refs: list[str] = Field(default_factory=list)


class CapabilityCheck(BaseModel):
    """Which capabilities an assertion asked for and which were present."""

    required: list[str] = Field(default_factory=list)
    available: list[str] = Field(default_factory=list)
    status: CapabilityStatus = "not_applicable"


class AssertionResult(BaseModel):
    """Verdict of one assertion, with the evidence that justifies it."""

    id: str
    type: str
    severity: Severity
    status: AssertionStatus
    message: str
    params: dict[str, Any] = Field(default_factory=dict)
    observed: dict[str, Any] = Field(default_factory=dict)
    evidence: Evidence = Field(default_factory=Evidence)
    capability_check: CapabilityCheck = Field(default_factory=CapabilityCheck)


class ResultSummary(BaseModel):
    assertions_total: int = 0
    assertions_passed: int = 0
    assertions_failed: int = 0
    assertions_skipped: int = 0
    critical_failures: int = 0

    @classmethod
    def from_assertions(
        cls, assertions: list[AssertionResult], critical_failures: int
    ) -> ResultSummary:
        return cls(
            assertions_total=len(assertions),
            assertions_passed=sum(1 for a in assertions if a.status == "pass"),
            assertions_failed=sum(1 for a in assertions if a.status == "fail"),
            assertions_skipped=sum(1 for a in assertions if a.status == "skip"),
            critical_failures=critical_failures,
        )


class ToolCallCount(BaseModel):
    tool: str
    count: int


class TraceSummary(BaseModel):
    """Compact view of a trace embedded in each test case result."""

    trace_id: str | None = None
    status: str | None = None
    tool_calls: list[ToolCallCount] = Field(default_factory=list)
    retry_count: int = 0
    timing_ms_total: float = 0


class TestCaseResult(BaseModel):
    """Complete result of evaluating one test case.

    Designed for JSON serialization and lossless round-trip
    deserialization, like the trace it was derived from.
    """

    __test__ = False  # not a pytest test class

    schema_version: str = RESULT_SCHEMA_VERSION
    result_id: str
    test_case_id: str
    test_run_id: str
    adapter: AdapterInfo
    status: TestCaseStatus
    started_at: str
    finished_at: str
    duration_ms: float = 0
    summary: ResultSummary = Field(default_factory=ResultSummary)
    failure_categories: list[str] = Field(default_factory=list)
    assertions: list[AssertionResult] = Field(default_factory=list)
    trace_summary: TraceSummary = Field(default_factory=TraceSummary)
    evidence: dict[str, Any] = Field(default_factory=dict)
    artifacts: dict[str, str] = Field(default_factory=dict)
