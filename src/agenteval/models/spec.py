"""Test specification models for agenteval test files.

These models encode the user-facing YAML contract: which replay bundle
to load, optional scenario overrides, and the declarative assertions
evaluated against the normalized trace.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from agenteval.models.trace import ScopeId

Severity = Literal["critical", "warning"]


class AssertionSpec(BaseModel):
    """A single declarative assertion authored against a test case.

    ``type`` stays a free string here so that an unknown type becomes a
    failing assertion at evaluation time instead of rejecting the file.
    """

    model_config = {"extra": "forbid", "frozen": True}

    id: str
    type: str
    severity: Severity = "critical"
    params: dict[str, Any] = Field(default_factory=dict)
    requires_capabilities: list[str] = Field(default_factory=list)


class AdapterInput(BaseModel):
    """Where the recorded replay bundle for this test lives."""

    model_config = {"extra": "forbid"}

    replay_file: str


class ScenarioOverrides(BaseModel):
    """Scenario values used when the replay bundle leaves them out."""

    model_config = {"extra": "forbid"}

    group_id: ScopeId | None = None
    session_id: ScopeId | None = None
    task_id: ScopeId | None = None
    trigger: Literal["user_message", "scheduler"] | None = None
    scheduler_context: dict[str, Any] | None = None
    input_messages: list[Any] | None = None


class Expected(BaseModel):
    model_config = {"extra": "forbid"}

    failure_categories: list[str] = Field(default_factory=list)


class ReportingOptions(BaseModel):
    model_config = {"extra": "forbid"}

    save_trace: bool = False


class TestSpec(BaseModel):
    """A complete test case definition loaded from test.yaml."""

    __test__ = False  # not a pytest test class

    model_config = {"extra": "forbid"}

    id: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    adapter: str | None = None
    adapter_input: AdapterInput
    scenario: ScenarioOverrides = Field(default_factory=ScenarioOverrides)
    assertions: list[AssertionSpec] = Field(default_factory=list)
    expected: Expected = Field(default_factory=Expected)
    reporting: ReportingOptions = Field(default_factory=ReportingOptions)
