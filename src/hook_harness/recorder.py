from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Mapping

SEQ_ENV = "CODEX_HOOK_SEQ"
EVENT_ENV = "CODEX_HOOK_EVENT"
SUBMISSION_ID_ENV = "CODEX_HOOK_SUBMISSION_ID"
UNSET = "unset"


def write_hook_record(
    directory: Path,
    *,
    seq: str,
    expected: str,
    event: str,
    submission_id: str,
) -> Path:
    """Write ``<seq>.json`` into ``directory`` via a temp file and rename.

    Readers polling the directory never see a partially written record; the
    temp name does not parse as a sequence number.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    record = {
        "seq": seq,
        "expected": expected,
        "event": event,
        "submission_id": submission_id,
    }
    target = directory / f"{seq}.json"
    tmp = directory / f"{seq}.json.tmp.{os.getpid()}"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(json.dumps(record) + "\n")
    os.replace(tmp, target)
    return target


def record_from_env(
    directory: Path,
    expected: str | None = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    env = os.environ if env is None else env
    return write_hook_record(
        directory,
        seq=env.get(SEQ_ENV) or UNSET,
        expected=expected or UNSET,
        event=env.get(EVENT_ENV) or UNSET,
        submission_id=env.get(SUBMISSION_ID_ENV) or UNSET,
    )
