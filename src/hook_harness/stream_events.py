from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

import httpx

SSE_CONTENT_TYPE = "text/event-stream"


@dataclass(frozen=True)
class ScriptedEvent:
    """One server-sent event: a kind plus an optional payload.

    The payload never carries the ``type`` key; ``to_dict`` puts the kind back
    in, which is the shape written on the ``data:`` line.
    """

    kind: str
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.kind, str) or self.kind == "":
            raise ValueError("event kind must be a non-empty string")
        payload = {k: v for k, v in dict(self.payload).items() if k != "type"}
        object.__setattr__(self, "payload", MappingProxyType(payload))

    @classmethod
    def from_dict(cls, value: Mapping[str, Any]) -> "ScriptedEvent":
        kind = value.get("type")
        if not isinstance(kind, str):
            raise ValueError("event dict must carry a string 'type'")
        return cls(kind=kind, payload=value)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, **self.payload}

    def encode(self) -> str:
        if not self.payload:
            return f"event: {self.kind}\n\n"
        data = json.dumps(self.to_dict(), separators=(",", ":"))
        return f"event: {self.kind}\ndata: {data}\n\n"


@dataclass(frozen=True)
class ScriptedExchange:
    """The ordered events answering one create-response request."""

    events: tuple[ScriptedEvent, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "events", tuple(self.events))

    @classmethod
    def of(cls, *events: ScriptedEvent | Mapping[str, Any]) -> "ScriptedExchange":
        return cls(
            events=tuple(
                ev if isinstance(ev, ScriptedEvent) else ScriptedEvent.from_dict(ev)
                for ev in events
            )
        )

    def encode(self) -> str:
        return "".join(ev.encode() for ev in self.events)

    def frames(self) -> Iterator[bytes]:
        for ev in self.events:
            yield ev.encode().encode("utf-8")


def _dispatch(kind: str | None, data_lines: list[str]) -> ScriptedEvent | None:
    if kind is None and not data_lines:
        return None
    payload: dict[str, Any] = {}
    if data_lines:
        raw = "\n".join(data_lines)
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            decoded = {"raw": raw}
        if isinstance(decoded, Mapping):
            payload = dict(decoded)
        else:
            payload = {"raw": decoded}
    if not kind:
        declared = payload.get("type")
        kind = declared if isinstance(declared, str) and declared else "message"
    return ScriptedEvent(kind=kind, payload=payload)


def _iter_events(lines: Iterable[str]) -> Iterator[ScriptedEvent]:
    kind: str | None = None
    data_lines: list[str] = []
    for line in lines:
        line = line.rstrip("\r\n")
        if line == "":
            event = _dispatch(kind, data_lines)
            if event is not None:
                yield event
            kind, data_lines = None, []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            kind = value
        elif name == "data":
            data_lines.append(value)
    event = _dispatch(kind, data_lines)
    if event is not None:
        yield event


def parse_sse_lines(lines: Iterable[str]) -> list[ScriptedEvent]:
    """Parse server-sent-event lines back into events.

    Follows the usual client rules: ``event:`` names the frame, ``data:`` lines
    accumulate, a blank line dispatches, ``:`` lines are comments. A trailing
    frame without its blank line is still emitted.
    """
    return list(_iter_events(lines))


def parse_sse_text(text: str) -> list[ScriptedEvent]:
    return parse_sse_lines(text.split("\n"))


def iter_sse_events(response: httpx.Response) -> Iterator[ScriptedEvent]:
    """Yield events from a streamed response as each frame completes."""
    yield from _iter_events(response.iter_lines())
