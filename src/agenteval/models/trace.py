"""Canonical trace models produced by the replay normalizer.

Traces are frozen pydantic models: built once per test case, then only
read by the assertion engine. model_dump(mode="json") gives the
artifact format written to disk.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

EventType = Literal[
    "message_received",
    "tool_call",
    "tool_result",
    "memory_read",
    "memory_write",
    "error",
    "final_output",
]

EVENT_TYPES: tuple[str, ...] = (
    "message_received",
    "tool_call",
    "tool_result",
    "memory_read",
    "memory_write",
    "error",
    "final_output",
)

MEMORY_EVENT_TYPES = frozenset({"memory_read", "memory_write"})

Trigger = Literal["user_message", "scheduler"]
TraceStatus = Literal["success", "failure", "error"]

# Recorded group, session, task and agent ids may be strings or integers.
ScopeId = str | int


class Event(BaseModel):
    """A single sequenced event in a trace."""

    model_config = {"frozen": True}

    event_id: str
    seq: int = Field(ge=1)
    timestamp: str
    type: EventType
    actor: str
    group_id: ScopeId | None = None
    session_id: ScopeId | None = None
    task_id: ScopeId | None = None
    agent_id: ScopeId = "agent-main"
    parent_event_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def tool(self) -> Any:
        """Tool name from the event payload, if any."""
        return self.data.get("tool")


class AdapterInfo(BaseModel):
    model_config = {"frozen": True}

    name: str
    version: str


class ScenarioContext(BaseModel):
    """Resolved scenario the replay was recorded under."""

    model_config = {"frozen": True}

    group_id: ScopeId | None = None
    session_id: ScopeId | None = None
    task_id: ScopeId | None = None
    trigger: Trigger
    scheduler_context: dict[str, Any] | None = None


class FinalOutput(BaseModel):
    model_config = {"frozen": True, "extra": "allow"}

    role: str = "assistant"
    content: str = ""


class TraceMetrics(BaseModel):
    model_config = {"frozen": True}

    timing_ms_total: float = 0
    tool_call_count: int = 0
    retry_count: int = 0
    token_usage: dict[str, Any] | None = None


class TraceArtifacts(BaseModel):
    model_config = {"frozen": True}

    source_test_file: str | None = None
    source_replay_file: str | None = None


class Trace(BaseModel):
    """Canonical, validated, sequenced event log for one test case."""

    model_config = {"frozen": True}

    schema_version: str = "0.1"
    trace_id: str
    test_case_id: str
    test_run_id: str
    adapter: AdapterInfo
    capabilities: dict[str, bool] = Field(default_factory=dict)
    scenario: ScenarioContext
    input_messages: list[Any] = Field(default_factory=list)
    events: list[Event] = Field(default_factory=list)
    final_output: FinalOutput = Field(default_factory=FinalOutput)
    status: TraceStatus
    metrics: TraceMetrics = Field(default_factory=TraceMetrics)
    artifacts: TraceArtifacts = Field(default_factory=TraceArtifacts)

    @property
    def output_text(self) -> str:
        return self.final_output.content or ""

    def events_of_type(self, *types: str) -> list[Event]:
        """Return events whose type is one of *types*, in sequence order."""
        return [e for e in self.events if e.type in types]

    def tool_calls(self, tool: str | None = None) -> list[Event]:
        """Return tool_call events, optionally filtered by tool name."""
        return [
            e
            for e in self.events
            if e.type == "tool_call" and (tool is None or e.data.get("tool") == tool)
        ]
