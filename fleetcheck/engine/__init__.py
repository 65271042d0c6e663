"""Checklist validation and progress engine."""

from .aggregator import revalidate_item, validate_checklist
from .lifecycle import (
    ChecklistLifecycle,
    ChecklistNotFoundError,
    PreconditionError,
    compose_rejection_message,
    derive_lifecycle_state,
    find_missing_required,
)
from .progress import compute_progress, is_answered
from .responses import build_response, item_status, record_answer, snapshot_item
from .validator import parse_number, validate_item

__all__ = [
    "ChecklistLifecycle",
    "ChecklistNotFoundError",
    "PreconditionError",
    "build_response",
    "compose_rejection_message",
    "compute_progress",
    "derive_lifecycle_state",
    "find_missing_required",
    "is_answered",
    "item_status",
    "parse_number",
    "record_answer",
    "revalidate_item",
    "snapshot_item",
    "validate_checklist",
    "validate_item",
]
