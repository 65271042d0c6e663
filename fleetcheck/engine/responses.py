"""Recording answers: item snapshots, stored verdicts and per-item display status."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime

from fleetcheck.common.models import (
    Item,
    ItemSnapshot,
    ItemStatus,
    Response,
    ResponseMetadata,
    ResponseValidation,
    Section,
    Template,
    VerdictKind,
)
from fleetcheck.engine.progress import is_answered
from fleetcheck.engine.validator import validate_item


_STATUS_BY_KIND = {
    VerdictKind.ERROR: ItemStatus.ERROR,
    VerdictKind.WARNING: ItemStatus.WARNING,
    VerdictKind.CORRECT: ItemStatus.CORRECT,
}


def snapshot_item(section: Section, item: Item) -> ItemSnapshot:
    # Round-trip through a plain dict so the snapshot shares no objects with the template.
    payload = item.model_dump()
    payload["section_id"] = section.id
    payload["section_title"] = section.title
    return ItemSnapshot.model_validate(payload)


def build_response(
    template: Template,
    item_id: str,
    value: str,
    *,
    note: str | None = None,
    acting_user: str | None = None,
    device: str | None = None,
    previous: Response | None = None,
    now: datetime | None = None,
) -> Response:
    """Build the stored response for one answer.

    The item definition is snapshotted as it is right now, together with the
    section it belongs to, so later template edits do not change how this
    answer is displayed. Passing the previous response marks the answer as an
    edit and keeps its note unless a new one is given.
    """
    located = template.find_item(item_id)
    if located is None:
        raise KeyError(f"Item not found in template {template.id}: {item_id}")
    section, item = located
    timestamp = now or datetime.now(UTC)
    verdict = validate_item(item, value)

    if note is None:
        note = previous.note if previous is not None else ""

    return Response(
        value=value,
        note=note,
        timestamp=timestamp,
        item_snapshot=snapshot_item(section, item),
        validation=ResponseValidation(kind=verdict.kind, message=verdict.message, timestamp=timestamp),
        metadata=ResponseMetadata(
            user=acting_user,
            device=device,
            template_version=template.version,
            is_edited=previous is not None,
            edited_timestamp=timestamp if previous is not None else None,
        ),
    )


def record_answer(
    responses: Mapping[str, Response],
    template: Template,
    item_id: str,
    value: str,
    **kwargs,
) -> dict[str, Response]:
    """Return a new response map with item_id answered; the input map is left untouched."""
    updated = dict(responses)
    updated[item_id] = build_response(template, item_id, value, previous=responses.get(item_id), **kwargs)
    return updated


def item_status(template: Template, responses: Mapping[str, Response], item_id: str) -> ItemStatus:
    response = responses.get(item_id)
    if not is_answered(response):
        return ItemStatus.PENDING

    if response.validation is not None:
        return _STATUS_BY_KIND[response.validation.kind]

    located = template.find_item(item_id)
    if located is None:
        return ItemStatus.PENDING
    _, item = located
    return _STATUS_BY_KIND[validate_item(item, response.value).kind]
