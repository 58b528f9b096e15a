"""Replay normalizer -- converts a validated replay bundle into a Trace.

Assigns sequence numbers, event ids, actors and parent links, resolves
the scenario and final output, and merges adapter capabilities. Every
derived field is a deterministic function of the inputs plus the base
time used for synthesized timestamps; only the trace id is random.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from agenteval import __version__
from agenteval.logging_config import get_logger
from agenteval.models.spec import TestSpec
from agenteval.models.trace import (
    AdapterInfo,
    Event,
    FinalOutput,
    ScenarioContext,
    Trace,
    TraceArtifacts,
    TraceMetrics,
)
from agenteval.replay.validator import ReplayValidationError, validate_replay

logger = get_logger(__name__)

TRACE_SCHEMA_VERSION = "0.1"
DEFAULT_ADAPTER_NAME = "replay"
DEFAULT_AGENT_ID = "agent-main"

DEFAULT_CAPABILITIES: dict[str, bool] = {
    "supports_tool_trace": True,
    "supports_memory_events": False,
    "supports_scheduler_context": False,
    "supports_container_metadata": False,
    "supports_live_run": False,
    "supports_replay": True,
}

ACTOR_BY_TYPE: dict[str, str] = {
    "message_received": "user",
    "tool_call": "agent",
    "tool_result": "tool",
    "memory_read": "agent",
    "memory_write": "agent",
    "error": "system",
    "final_output": "agent",
}

# Step keys that become event fields rather than payload data.
STRUCTURAL_STEP_KEYS = frozenset(
    {"type", "ts", "group_id", "session_id", "task_id", "agent_id"}
)

_PARENTED_TYPES = frozenset({"tool_result", "error"})


def normalize_replay(
    spec: TestSpec,
    replay: Any,
    *,
    test_file: str | None,
    replay_file: str | None,
    run_id: str,
    base_time: datetime | None = None,
    default_adapter: str = DEFAULT_ADAPTER_NAME,
) -> Trace:
    """Validate a raw replay bundle and build the canonical Trace.

    Args:
        spec: The test case the replay belongs to.
        replay: Raw replay bundle as parsed from JSON.
        test_file: Display path of the test file, recorded in artifacts.
        replay_file: Display path of the replay file, recorded in artifacts.
        run_id: Identifier of the surrounding test run.
        base_time: Anchor for synthesized timestamps. Defaults to now;
            pass the run start time to get identical traces within a run.
        default_adapter: Adapter name used when the spec names none.

    Returns:
        The frozen Trace.

    Raises:
        ReplayValidationError: If the bundle is structurally invalid.
    """
    validate_replay(replay)

    scenario = resolve_scenario(spec, replay["scenario"])
    events = normalize_events(replay["script"], scenario, base_time=base_time)
    capabilities = merge_capabilities(replay.get("capabilities"))
    metrics = replay["metrics"]

    input_messages = replay["input_messages"]
    if not input_messages and spec.scenario.input_messages:
        input_messages = spec.scenario.input_messages

    try:
        return Trace(
            schema_version=TRACE_SCHEMA_VERSION,
            trace_id=f"trace-{uuid.uuid4()}",
            test_case_id=spec.id,
            test_run_id=run_id,
            adapter=AdapterInfo(name=spec.adapter or default_adapter, version=__version__),
            capabilities=capabilities,
            scenario=scenario,
            input_messages=list(input_messages),
            events=events,
            final_output=resolve_final_output(replay.get("final_output"), events),
            status=replay["status"],
            metrics=TraceMetrics(
                timing_ms_total=metrics.get("timing_ms_total") or 0,
                tool_call_count=sum(1 for e in events if e.type == "tool_call"),
                retry_count=metrics.get("retry_count") or 0,
                token_usage=metrics.get("token_usage"),
            ),
            artifacts=TraceArtifacts(
                source_test_file=test_file,
                source_replay_file=replay_file,
            ),
        )
    except ValidationError as exc:
        raise ReplayValidationError(f"Replay could not be normalized: {exc}") from exc


def resolve_scenario(spec: TestSpec, scenario: Mapping[str, Any]) -> ScenarioContext:
    """Resolve scenario fields from the replay, falling back to the spec."""
    overrides = spec.scenario
    scheduler_context = scenario.get("scheduler_context") or overrides.scheduler_context
    task_id = _first_present(scenario.get("task_id"), overrides.task_id)
    if task_id is None and isinstance(scheduler_context, Mapping):
        task_id = scheduler_context.get("task_id")

    try:
        return ScenarioContext(
            group_id=_first_present(scenario.get("group_id"), overrides.group_id),
            session_id=_first_present(scenario.get("session_id"), overrides.session_id),
            task_id=task_id,
            trigger=scenario.get("trigger") or overrides.trigger,
            scheduler_context=scheduler_context,
        )
    except ValidationError as exc:
        raise ReplayValidationError(f"Replay scenario is invalid: {exc}") from exc


def merge_capabilities(declared: Mapping[str, Any] | None) -> dict[str, bool]:
    """Merge adapter-declared capability flags over the defaults."""
    capabilities = dict(DEFAULT_CAPABILITIES)
    for name, value in (declared or {}).items():
        capabilities[str(name)] = bool(value)
    return capabilities


def normalize_events(
    script: list[Mapping[str, Any]],
    scenario: ScenarioContext,
    *,
    base_time: datetime | None = None,
) -> list[Event]:
    """Convert script steps into sequenced events.

    Parent links for tool_result and error steps point at the nearest
    earlier tool_call with the same call_id. The index below always holds
    the latest tool_call per call_id, which is what a backward scan finds.
    """
    anchor = base_time or datetime.now(timezone.utc)
    latest_call_by_id: dict[Any, str] = {}
    events: list[Event] = []
    synthesized = 0

    for idx, step in enumerate(script):
        step_type = step["type"]
        event_id = f"evt-{idx + 1}"

        if step.get("ts") is not None:
            timestamp = str(step["ts"])
        else:
            timestamp = _format_timestamp(anchor + timedelta(milliseconds=idx))
            synthesized += 1

        parent_event_id = None
        call_id = step.get("call_id")
        if step_type in _PARENTED_TYPES and call_id is not None:
            parent_event_id = latest_call_by_id.get(_hashable(call_id))

        try:
            event = Event(
                event_id=event_id,
                seq=idx + 1,
                timestamp=timestamp,
                type=step_type,
                actor=ACTOR_BY_TYPE.get(step_type, "system"),
                group_id=_first_present(step.get("group_id"), scenario.group_id),
                session_id=_first_present(step.get("session_id"), scenario.session_id),
                task_id=_first_present(step.get("task_id"), scenario.task_id),
                agent_id=_first_present(step.get("agent_id"), DEFAULT_AGENT_ID),
                parent_event_id=parent_event_id,
                data={k: v for k, v in step.items() if k not in STRUCTURAL_STEP_KEYS},
            )
        except ValidationError as exc:
            raise ReplayValidationError(
                f"Replay script step {idx} could not be normalized: {exc}",
                step_index=idx,
            ) from exc
        events.append(event)

        if step_type == "tool_call":
            latest_call_by_id[_hashable(call_id)] = event_id

    if synthesized:
        logger.debug("Synthesized %d of %d event timestamps", synthesized, len(events))
    return events


def resolve_final_output(explicit: Any, events: list[Event]) -> FinalOutput:
    """Pick the final output: explicit object, else last final_output event."""
    if isinstance(explicit, Mapping):
        payload = dict(explicit)
        payload["role"] = payload.get("role") or "assistant"
        payload["content"] = _as_text(payload.get("content"))
        return FinalOutput.model_validate(payload)

    for event in reversed(events):
        if event.type == "final_output":
            return FinalOutput(
                role=event.data.get("role") or "assistant",
                content=_as_text(event.data.get("content")),
            )
    return FinalOutput(role="assistant", content="")


def _format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _first_present(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value


def _hashable(value: Any) -> Any:
    return value if isinstance(value, (str, int, float, bool)) else repr(value)
