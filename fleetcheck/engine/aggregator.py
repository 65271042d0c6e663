"""Whole-checklist validation bucketed into errors, warnings and correct items."""

from __future__ import annotations

from collections.abc import Mapping

from fleetcheck.common.models import (
    Item,
    Response,
    Section,
    Template,
    ValidationEntry,
    ValidationSummary,
)
from fleetcheck.engine.validator import validate_item


def _response_value(responses: Mapping[str, Response], item_id: str) -> str:
    response = responses.get(item_id)
    return response.value if response is not None else ""


def _add_verdict(summary: ValidationSummary, section: Section, item: Item, value: str) -> None:
    result = validate_item(item, value)
    summary.bucket(result.kind).append(
        ValidationEntry(
            item=item.description,
            message=result.message,
            item_id=item.id,
            section=section.title,
        )
    )


def validate_checklist(template: Template, responses: Mapping[str, Response]) -> ValidationSummary:
    """Validate every item of the template, in template order.

    Each item lands in exactly one bucket; the same inputs always give the
    same buckets in the same order.
    """
    summary = ValidationSummary()
    for section, item in template.iter_items():
        _add_verdict(summary, section, item, _response_value(responses, item.id))
    return summary


def revalidate_item(
    summary: ValidationSummary,
    template: Template,
    responses: Mapping[str, Response],
    item_id: str,
) -> ValidationSummary:
    """Return a copy of summary with item_id's verdict recomputed.

    Every previous entry for the item is dropped from all three buckets first.
    """
    located = template.find_item(item_id)
    if located is None:
        raise KeyError(f"Item not found in template {template.id}: {item_id}")
    section, item = located

    refreshed = ValidationSummary(
        errors=[entry for entry in summary.errors if entry.item_id != item_id],
        warnings=[entry for entry in summary.warnings if entry.item_id != item_id],
        correct=[entry for entry in summary.correct if entry.item_id != item_id],
    )
    _add_verdict(refreshed, section, item, _response_value(responses, item_id))
    return refreshed
