"""
Scripted Responses-API turns for the one-tool-call hook scenario.

Turn one asks the agent to run a single shell command; turn two ends the run
with a plain assistant message. Between them the agent is expected to fire
exactly the hooks in EXPECTED_HOOK_EVENTS, in that order.
"""
from __future__ import annotations

import json
import shlex
from pathlib import Path

from .stream_events import ScriptedEvent, ScriptedExchange

EXPECTED_HOOK_EVENTS: tuple[str, ...] = (
    "turn_started",
    "exec_command_begin",
    "exec_command_end",
    "turn_complete",
)

SHELL_TOOL_NAME = "shell_command"
SHELL_TIMEOUT_MS = 1000


def response_created(response_id: str) -> ScriptedEvent:
    return ScriptedEvent("response.created", {"response": {"id": response_id}})


def response_completed(response_id: str) -> ScriptedEvent:
    return ScriptedEvent(
        "response.completed",
        {
            "response": {
                "id": response_id,
                "usage": {
                    "input_tokens": 0,
                    "input_tokens_details": None,
                    "output_tokens": 0,
                    "output_tokens_details": None,
                    "total_tokens": 0,
                },
            }
        },
    )


def function_call_done(call_id: str, name: str, arguments: str) -> ScriptedEvent:
    return ScriptedEvent(
        "response.output_item.done",
        {
            "item": {
                "type": "function_call",
                "call_id": call_id,
                "name": name,
                "arguments": arguments,
            }
        },
    )


def assistant_message_done(message_id: str, text: str) -> ScriptedEvent:
    return ScriptedEvent(
        "response.output_item.done",
        {
            "item": {
                "type": "message",
                "role": "assistant",
                "id": message_id,
                "content": [{"type": "output_text", "text": text}],
            }
        },
    )


def touch_file_command(target: Path | str) -> str:
    return f"echo hook-ok > {shlex.quote(str(target))}"


def one_tool_call_exchanges(command: str) -> list[ScriptedExchange]:
    arguments = json.dumps({"command": command, "timeout_ms": SHELL_TIMEOUT_MS})
    return [
        ScriptedExchange.of(
            response_created("resp-1"),
            function_call_done("call-1", SHELL_TOOL_NAME, arguments),
            response_completed("resp-1"),
        ),
        ScriptedExchange.of(
            response_created("resp-2"),
            assistant_message_done("msg-1", "done"),
            response_completed("resp-2"),
        ),
    ]
