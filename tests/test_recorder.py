from __future__ import annotations

import json
from pathlib import Path

from hook_harness.collector import read_hook_calls_once
from hook_harness.recorder import record_from_env, write_hook_record


def test_write_hook_record_leaves_only_final_file(tmp_path: Path) -> None:
    out = tmp_path / "calls"
    path = write_hook_record(
        out, seq="3", expected="turn_started", event="turn_started", submission_id="s-1"
    )
    assert path == out / "3.json"
    assert sorted(p.name for p in out.iterdir()) == ["3.json"]
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "seq": "3",
        "expected": "turn_started",
        "event": "turn_started",
        "submission_id": "s-1",
    }


def test_record_from_env_reads_hook_variables(tmp_path: Path) -> None:
    env = {
        "CODEX_HOOK_SEQ": "0",
        "CODEX_HOOK_EVENT": "turn_started",
        "CODEX_HOOK_SUBMISSION_ID": "sub-9",
    }
    record_from_env(tmp_path, "turn_started", env)
    [call] = read_hook_calls_once(tmp_path)
    assert (call.seq, call.expected, call.event, call.submission_id) == (
        0,
        "turn_started",
        "turn_started",
        "sub-9",
    )


def test_record_from_env_defaults_to_unset(tmp_path: Path) -> None:
    path = record_from_env(tmp_path, None, {"CODEX_HOOK_SEQ": ""})
    assert path.name == "unset.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data.values()) == {"unset"}
    assert read_hook_calls_once(tmp_path) == []
