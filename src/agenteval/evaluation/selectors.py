"""Event selectors -- declarative patterns that locate events in a trace.

A selector names a required event type plus optional filters on the
event payload::

    {event_type: tool_result, tool: search, success: true}
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from agenteval.models.trace import Event


class EventSelector(BaseModel):
    """Event type plus optional tool/success/call_id payload filters.

    ``success`` is compared whenever the author wrote the key, even as
    null; ``tool`` and ``call_id`` only when they carry a value.
    """

    model_config = {"frozen": True}

    event_type: str
    tool: str | None = None
    success: bool | None = None
    call_id: str | int | None = None

    @property
    def label(self) -> str:
        return selector_label(self)


def _coerce(selector: EventSelector | Mapping[str, Any]) -> EventSelector:
    if isinstance(selector, EventSelector):
        return selector
    return EventSelector.model_validate(selector)


def matches(event: Event, selector: EventSelector | Mapping[str, Any]) -> bool:
    """Return True if *event* satisfies every field present in *selector*."""
    sel = _coerce(selector)
    if event.type != sel.event_type:
        return False
    if sel.tool is not None and event.data.get("tool") != sel.tool:
        return False
    if "success" in sel.model_fields_set and event.data.get("success") != sel.success:
        return False
    if sel.call_id is not None and event.data.get("call_id") != sel.call_id:
        return False
    return True


def first_match(
    events: Iterable[Event], selector: EventSelector | Mapping[str, Any]
) -> Event | None:
    """Return the first event in sequence order matching *selector*."""
    sel = _coerce(selector)
    return next((e for e in events if matches(e, sel)), None)


def selector_label(selector: EventSelector | Mapping[str, Any] | None) -> str:
    """Render a selector as ``event_type(tool)`` or plain ``event_type``."""
    if selector is None:
        return "unknown"
    sel = _coerce(selector)
    return f"{sel.event_type}({sel.tool})" if sel.tool else sel.event_type
