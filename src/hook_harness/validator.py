from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Sequence

from .collector import HookCallRecord
from .errors import ConsistencyViolationError

ViolationKind = Literal["seq_mismatch", "event_mismatch", "order_mismatch", "count_mismatch"]


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str
    expected: Any
    actual: Any


def fired_hooks(records: Sequence[HookCallRecord]) -> list[str]:
    """Names of the hooks that fired, in sequence order.

    A record's ``expected`` field is the hook it was registered under; the
    runtime label in ``event`` is checked against it separately.
    """
    return [record.expected for record in records]


def check_hook_sequence(
    records: Sequence[HookCallRecord],
    expected: Sequence[str],
) -> list[Violation]:
    """Run every consistency check and return all violations found."""
    violations: list[Violation] = []
    want = list(expected)

    for record in records:
        if record.seq_str != "" and record.seq_str != str(record.seq):
            violations.append(
                Violation(
                    kind="seq_mismatch",
                    message=(
                        f"hook record seq mismatch: file seq={record.seq} "
                        f"json seq={record.seq_str!r} ({record.path})"
                    ),
                    expected=str(record.seq),
                    actual=record.seq_str,
                )
            )

    for record in records:
        if record.expected != record.event:
            violations.append(
                Violation(
                    kind="event_mismatch",
                    message=(
                        f"hook record expected/event mismatch: expected={record.expected!r} "
                        f"event={record.event!r} seq={record.seq} ({record.path})"
                    ),
                    expected=record.expected,
                    actual=record.event,
                )
            )

    got = fired_hooks(records)
    if got != want:
        violations.append(
            Violation(
                kind="order_mismatch",
                message=(
                    "unexpected hook sequence (got lists the hook each record was "
                    "registered under, in seq order):\n"
                    f"  got:  {got}\n  want: {want}"
                ),
                expected=want,
                actual=got,
            )
        )

    if len(records) != len(want):
        violations.append(
            Violation(
                kind="count_mismatch",
                message=(
                    f"unexpected hook call count: got {len(records)} calls ({got}), "
                    f"want {len(want)}"
                ),
                expected=len(want),
                actual=len(records),
            )
        )

    return violations


def validate_hook_sequence(
    records: Sequence[HookCallRecord],
    expected: Sequence[str],
) -> list[str]:
    """
    Validate collected hook records against the expected hook order.

    Returns:
        The fired hook names, in order.

    Raises:
        ConsistencyViolationError: Carrying every violation found.
    """
    violations = check_hook_sequence(records, expected)
    if violations:
        raise ConsistencyViolationError(violations)
    return fired_hooks(records)
