"""agenteval data models - re-exports all public model classes."""

from agenteval.models.config import HeuristicSettings, ProjectConfig
from agenteval.models.result import (
    AssertionResult,
    CapabilityCheck,
    Evidence,
    ResultSummary,
    TestCaseResult,
    ToolCallCount,
    TraceSummary,
)
from agenteval.models.spec import (
    AdapterInput,
    AssertionSpec,
    Expected,
    ReportingOptions,
    ScenarioOverrides,
    TestSpec,
)
from agenteval.models.trace import (
    AdapterInfo,
    Event,
    FinalOutput,
    ScenarioContext,
    Trace,
    TraceArtifacts,
    TraceMetrics,
)

__all__ = [
    "AdapterInfo",
    "AdapterInput",
    "AssertionResult",
    "AssertionSpec",
    "CapabilityCheck",
    "Event",
    "Evidence",
    "Expected",
    "FinalOutput",
    "HeuristicSettings",
    "ProjectConfig",
    "ReportingOptions",
    "ResultSummary",
    "ScenarioContext",
    "ScenarioOverrides",
    "TestCaseResult",
    "TestSpec",
    "ToolCallCount",
    "Trace",
    "TraceArtifacts",
    "TraceMetrics",
    "TraceSummary",
]
