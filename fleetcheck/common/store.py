"""Persistence helpers for templates, checklists, and event streams."""

from __future__ import annotations

import json
import queue
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fleetcheck.catalog import find_predefined_template
from fleetcheck.common.io import append_jsonl, ensure_dir, read_json, read_jsonl, write_json
from fleetcheck.common.models import Checklist, ChecklistRecord, LifecycleState, Template
from fleetcheck.common.paths import CHECKLISTS_DIR, TEMPLATES_DIR
from fleetcheck.common.schemas import is_storage_id


def _now() -> datetime:
    return datetime.now(UTC)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class InvalidIdentifierError(ValueError):
    """Raised for an id that cannot name a file inside a store root."""


def _located(root: Path, identifier: str, name: str) -> Path:
    if not is_storage_id(identifier):
        raise InvalidIdentifierError(f"Invalid identifier: {identifier!r}")
    return root / name


class TemplateStore:
    """Stored templates, with the predefined catalog as read-only fallback."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root or TEMPLATES_DIR
        ensure_dir(self.root)

    def template_path(self, template_id: str) -> Path:
        return _located(self.root, template_id, f"{template_id}.json")

    def _write(self, template: Template) -> None:
        write_json(self.template_path(template.id), template.model_dump(mode="json"))

    def create(self, template: Template) -> Template:
        now = _now()
        stored = template.model_copy(update={"created_at": now, "updated_at": now})
        self._write(stored)
        return stored

    def get(self, template_id: str) -> Template:
        path = self.template_path(template_id)
        if path.exists():
            return Template.model_validate(read_json(path))
        predefined = find_predefined_template(template_id)
        if predefined is None:
            raise FileNotFoundError(f"Template not found: {template_id}")
        return predefined

    def list(self, include_inactive: bool = False) -> list[Template]:
        templates = [Template.model_validate(read_json(path)) for path in self.root.glob("*.json")]
        if not include_inactive:
            templates = [template for template in templates if template.is_active]
        oldest = datetime.min.replace(tzinfo=UTC)
        return sorted(templates, key=lambda template: template.created_at or oldest, reverse=True)

    def update(self, template: Template) -> Template:
        path = self.template_path(template.id)
        if not path.exists():
            raise FileNotFoundError(f"Template not found: {template.id}")
        current = Template.model_validate(read_json(path))
        stored = template.model_copy(update={"created_at": current.created_at, "updated_at": _now()})
        self._write(stored)
        return stored

    def deactivate(self, template_id: str) -> Template:
        path = self.template_path(template_id)
        if not path.exists():
            raise FileNotFoundError(f"Template not found: {template_id}")
        template = Template.model_validate(read_json(path))
        template.is_active = False
        template.updated_at = _now()
        self._write(template)
        return template


class ChecklistStore:
    """One directory per checklist: the record document plus its event log."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root or CHECKLISTS_DIR
        ensure_dir(self.root)

    def checklist_dir(self, checklist_id: str) -> Path:
        return _located(self.root, checklist_id, checklist_id)

    def record_path(self, checklist_id: str) -> Path:
        return self.checklist_dir(checklist_id) / "checklist.json"

    def log_path(self, checklist_id: str) -> Path:
        return self.checklist_dir(checklist_id) / "events.jsonl"

    def exists(self, checklist_id: str) -> bool:
        if not is_storage_id(checklist_id):
            return False
        return self.record_path(checklist_id).exists()

    def upsert(self, checklist_id: str | None, record: ChecklistRecord) -> Checklist:
        """Create a checklist, or overwrite every mutable field of an existing one."""
        now = _now()
        fields = {name: getattr(record, name) for name in ChecklistRecord.model_fields}
        if checklist_id:
            existing = self.get(checklist_id)
            checklist = existing.model_copy(update={**fields, "updated_at": now})
        else:
            checklist = Checklist(
                id=new_id("chk"),
                created_at=now,
                updated_at=now,
                created_by=record.updated_by,
                **fields,
            )
        write_json(self.record_path(checklist.id), checklist.model_dump(mode="json"))
        return checklist

    def get(self, checklist_id: str) -> Checklist:
        payload = read_json(self.record_path(checklist_id))
        return Checklist.model_validate(payload)

    def list(
        self,
        state: LifecycleState | None = None,
        user: str | None = None,
        template_id: str | None = None,
    ) -> list[Checklist]:
        checklists: list[Checklist] = []
        for path in self.root.glob("chk_*/checklist.json"):
            checklist = Checklist.model_validate(read_json(path))
            if state is not None and checklist.lifecycle_state is not state:
                continue
            if user is not None and checklist.created_by != user:
                continue
            if template_id is not None and checklist.template_id != template_id:
                continue
            checklists.append(checklist)
        return sorted(checklists, key=lambda checklist: checklist.updated_at, reverse=True)

    def list_in_progress(self, user: str | None) -> list[Checklist]:
        if not user:
            return []
        return self.list(state=LifecycleState.IN_PROGRESS, user=user)

    def list_by_template(self, template_id: str) -> list[Checklist]:
        return sorted(
            self.list(template_id=template_id),
            key=lambda checklist: checklist.effective_date,
            reverse=True,
        )

    def append_log(self, checklist_id: str, event: dict[str, Any]) -> None:
        append_jsonl(self.log_path(checklist_id), event)

    def read_log(self, checklist_id: str) -> list[dict[str, Any]]:
        return read_jsonl(self.log_path(checklist_id))


@dataclass
class EventBus:
    """In-memory per-checklist event queues used by the SSE endpoint."""

    queues: dict[str, queue.Queue[str]]

    def __init__(self) -> None:
        self.queues = {}

    def publish(self, checklist_id: str, event: dict[str, Any]) -> None:
        self.get_queue(checklist_id).put(json.dumps(event, default=str))

    def get_queue(self, checklist_id: str) -> queue.Queue[str]:
        if checklist_id not in self.queues:
            self.queues[checklist_id] = queue.Queue()
        return self.queues[checklist_id]
