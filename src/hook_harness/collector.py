from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from .config import get_harness_config
from .errors import CollectTimeoutError, MalformedRecordError
from .logs import log_json

__all__ = [
    "HookCallRecord",
    "list_directory",
    "read_hook_calls_once",
    "collect",
]

Lister = Callable[[Path], Iterable[Path]]
Clock = Callable[[], float]
Sleep = Callable[[float], None]

_SEQ_RE = re.compile(r"[+-]?[0-9]+")
_RECORD_FIELDS = ("seq", "expected", "event", "submission_id")


@dataclass(frozen=True)
class HookCallRecord:
    seq: int
    seq_str: str
    expected: str
    event: str
    submission_id: str
    path: Path


def list_directory(directory: Path) -> list[Path]:
    """Directory entries in filesystem order, which is unspecified."""
    return list(directory.iterdir())


def _parse_seq(path: Path) -> int | None:
    # "3.json" -> 3; "3.json.tmp.41" has stem "3.json.tmp" and is skipped.
    stem = path.stem
    if not _SEQ_RE.fullmatch(stem):
        return None
    return int(stem)


def _decode_record(path: Path, seq: int, raw: bytes) -> HookCallRecord:
    try:
        parsed: Any = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedRecordError(path, str(exc)) from exc
    if not isinstance(parsed, Mapping):
        raise MalformedRecordError(path, "record must be a JSON object")
    fields: dict[str, str] = {}
    for name in _RECORD_FIELDS:
        value = parsed.get(name, "")
        if not isinstance(value, str):
            raise MalformedRecordError(path, f"{name} must be a string")
        fields[name] = value
    return HookCallRecord(
        seq=seq,
        seq_str=fields["seq"],
        expected=fields["expected"],
        event=fields["event"],
        submission_id=fields["submission_id"],
        path=path,
    )


def read_hook_calls_once(
    directory: Path,
    *,
    lister: Lister = list_directory,
) -> list[HookCallRecord]:
    """Read every hook record currently in ``directory``, sorted by sequence."""
    calls: list[HookCallRecord] = []
    for path in lister(directory):
        if path.is_dir():
            continue
        seq = _parse_seq(path)
        if seq is None:
            continue
        calls.append(_decode_record(path, seq, path.read_bytes()))
    calls.sort(key=lambda call: call.seq)
    return calls


def collect(
    directory: Path,
    minimum_count: int | None = None,
    overall_timeout: float | None = None,
    *,
    quiet_for: float | None = None,
    poll_interval: float | None = None,
    lister: Lister = list_directory,
    clock: Clock = time.monotonic,
    sleep: Sleep = time.sleep,
) -> list[HookCallRecord]:
    """
    Wait for the hook record set in ``directory`` to settle.

    Returns once at least ``minimum_count`` records exist and the count has not
    changed for ``quiet_for`` seconds. Times are in seconds; unset values come
    from the harness config.

    Raises:
        CollectTimeoutError: If ``overall_timeout`` elapses first.
        MalformedRecordError: If any record fails to decode.
    """
    cfg = get_harness_config()
    directory = Path(directory)
    if minimum_count is None:
        minimum_count = cfg.min_events
    if overall_timeout is None:
        overall_timeout = cfg.collect_timeout_s
    if quiet_for is None:
        quiet_for = cfg.quiet_s
    if poll_interval is None:
        poll_interval = cfg.poll_interval_s

    deadline = clock() + overall_timeout
    last_count = -1
    stable_since: float | None = None
    while True:
        calls = read_hook_calls_once(directory, lister=lister)
        now = clock()
        count = len(calls)
        if count < minimum_count:
            stable_since = None
        elif count != last_count or stable_since is None:
            stable_since = now
        elif now - stable_since >= quiet_for:
            log_json(
                logging.INFO,
                "collect.stable",
                directory=str(directory),
                count=count,
                quiet_ms=int(quiet_for * 1000),
            )
            return calls
        last_count = count
        if now >= deadline:
            log_json(
                logging.ERROR,
                "collect.timeout",
                directory=str(directory),
                wanted=minimum_count,
                found=count,
            )
            raise CollectTimeoutError(directory, minimum_count, count)
        sleep(poll_interval)
