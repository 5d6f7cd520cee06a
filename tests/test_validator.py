from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from hook_harness.collector import HookCallRecord
from hook_harness.errors import ConsistencyViolationError
from hook_harness.scenario import EXPECTED_HOOK_EVENTS
from hook_harness.validator import check_hook_sequence, validate_hook_sequence


def _records(events: list[str]) -> list[HookCallRecord]:
    return [
        HookCallRecord(
            seq=i,
            seq_str=str(i),
            expected=event,
            event=event,
            submission_id="sub-1",
            path=Path(f"/calls/{i}.json"),
        )
        for i, event in enumerate(events)
    ]


def test_matching_sequence_passes() -> None:
    records = _records(list(EXPECTED_HOOK_EVENTS))
    assert check_hook_sequence(records, EXPECTED_HOOK_EVENTS) == []
    assert validate_hook_sequence(records, EXPECTED_HOOK_EVENTS) == list(EXPECTED_HOOK_EVENTS)


def test_event_label_mismatch_is_reported_on_its_own() -> None:
    records = _records(list(EXPECTED_HOOK_EVENTS))
    records[2] = replace(records[2], event="exec_approval_request")
    with pytest.raises(ConsistencyViolationError) as exc:
        validate_hook_sequence(records, EXPECTED_HOOK_EVENTS)
    assert exc.value.kinds == ["event_mismatch"]
    [violation] = exc.value.violations
    assert violation.expected == "exec_command_end"
    assert violation.actual == "exec_approval_request"
    assert "seq=2" in violation.message


def test_seq_mismatch_between_filename_and_content() -> None:
    records = _records(list(EXPECTED_HOOK_EVENTS))
    records[1] = replace(records[1], seq_str="7")
    violations = check_hook_sequence(records, EXPECTED_HOOK_EVENTS)
    assert [v.kind for v in violations] == ["seq_mismatch"]
    assert violations[0].expected == "1"
    assert violations[0].actual == "7"


def test_empty_seq_string_is_not_checked() -> None:
    records = [replace(r, seq_str="") for r in _records(list(EXPECTED_HOOK_EVENTS))]
    assert check_hook_sequence(records, EXPECTED_HOOK_EVENTS) == []


def test_reordered_hooks_fail_ordering_only() -> None:
    events = ["turn_started", "exec_command_end", "exec_command_begin", "turn_complete"]
    violations = check_hook_sequence(_records(events), EXPECTED_HOOK_EVENTS)
    assert [v.kind for v in violations] == ["order_mismatch"]
    assert violations[0].expected == list(EXPECTED_HOOK_EVENTS)
    assert violations[0].actual == events
    assert "registered under" in violations[0].message


def test_extra_late_hook_fails_ordering_and_count() -> None:
    events = list(EXPECTED_HOOK_EVENTS) + ["turn_started"]
    violations = check_hook_sequence(_records(events), EXPECTED_HOOK_EVENTS)
    assert [v.kind for v in violations] == ["order_mismatch", "count_mismatch"]
    assert violations[1].expected == 4
    assert violations[1].actual == 5


def test_all_violations_are_reported_together() -> None:
    events = ["turn_started", "exec_command_begin", "turn_complete"]
    records = _records(events)
    records[0] = replace(records[0], seq_str="9", event="task_started")
    with pytest.raises(ConsistencyViolationError) as exc:
        validate_hook_sequence(records, EXPECTED_HOOK_EVENTS)
    assert exc.value.kinds == [
        "seq_mismatch",
        "event_mismatch",
        "order_mismatch",
        "count_mismatch",
    ]
    message = str(exc.value)
    assert "got:" in message and "want:" in message
