"""On-disk helpers for checklist and template documents and their event logs."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


def utcnow_iso() -> str:
    return datetime.now(UTC).isoformat()


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _encode(payload: Any, indent: int | None = None) -> str:
    # Datetimes and enums that slip past model_dump(mode="json") are stored as strings.
    return json.dumps(payload, indent=indent, default=str)


def write_json(path: Path, payload: Any) -> None:
    """Store a document so that a crash leaves either the previous version or the new one."""
    ensure_dir(path.parent)
    staging = path.parent / f".{path.name}.partial"
    staging.write_text(_encode(payload, indent=2), encoding="utf-8")
    staging.replace(path)


def read_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def append_jsonl(path: Path, payload: dict[str, Any]) -> None:
    ensure_dir(path.parent)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(_encode(payload) + "\n")


def read_jsonl(path: Path) -> list[dict[str, Any]]:
    """Load a checklist event log in append order.

    A missing log reads as empty. An interrupted append can leave a partial
    last line; lines that do not decode are dropped.
    """
    if not path.exists():
        return []
    records: list[dict[str, Any]] = []
    for raw in path.read_text(encoding="utf-8").splitlines():
        if not raw.strip():
            continue
        try:
            records.append(json.loads(raw))
        except json.JSONDecodeError:
            continue
    return records
