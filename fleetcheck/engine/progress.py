"""Checklist progress: how many items are answered and which are still missing."""

from __future__ import annotations

import math
from collections.abc import Mapping

from fleetcheck.common.models import Progress, Response, Template


def is_answered(response: Response | None) -> bool:
    return response is not None and bool(response.value.strip())


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_progress(template: Template, responses: Mapping[str, Response]) -> Progress:
    total_items = 0
    completed_items = 0
    missing: list[str] = []

    for _, item in template.iter_items():
        total_items += 1
        if is_answered(responses.get(item.id)):
            completed_items += 1
        else:
            missing.append(item.description)

    percent = round_half_up(100 * completed_items / total_items) if total_items > 0 else 0
    return Progress(
        total_items=total_items,
        completed_items=completed_items,
        percent_complete=percent,
        missing_item_descriptions=missing,
    )
