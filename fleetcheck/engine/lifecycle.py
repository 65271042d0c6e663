"""Checklist lifecycle: draft saves, the finalization gate, and terminal state selection."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime

from fleetcheck.common.io import utcnow_iso
from fleetcheck.common.models import (
    Checklist,
    ChecklistFormData,
    ChecklistRecord,
    FinalizeResult,
    LifecycleState,
    Progress,
    ResourceType,
    Response,
    Template,
    ValidationSummary,
)
from fleetcheck.common.store import ChecklistStore, EventBus
from fleetcheck.engine.aggregator import validate_checklist
from fleetcheck.engine.progress import compute_progress, is_answered


REJECTION_PREVIEW_LIMIT = 5
FINALIZED_MESSAGE = "Checklist finalized successfully"

_RESOURCE_LABELS = {
    ResourceType.VEHICLE: "A vehicle",
    ResourceType.DRIVER: "A driver",
    ResourceType.UNIT: "A unit",
    ResourceType.MACHINE: "A machine",
    ResourceType.SECTOR: "A sector",
}


class PreconditionError(Exception):
    """Raised when the engine is called with inputs it cannot act on."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ChecklistNotFoundError(PreconditionError):
    def __init__(self, checklist_id: str) -> None:
        super().__init__(f"Checklist not found: {checklist_id}", field="checklist_id")
        self.checklist_id = checklist_id


def find_missing_required(template: Template, responses: Mapping[str, Response]) -> list[str]:
    return [
        item.description
        for _, item in template.iter_items()
        if item.is_required and not is_answered(responses.get(item.id))
    ]


def derive_lifecycle_state(progress: Progress, error_count: int) -> LifecycleState:
    if progress.completed_items == progress.total_items and error_count == 0:
        return LifecycleState.COMPLETED
    if progress.completed_items < progress.total_items:
        return LifecycleState.PARTIAL
    return LifecycleState.ERRORED


def compose_rejection_message(missing_required: list[str], summary: ValidationSummary) -> str:
    message = "Cannot finalize the checklist:\n\n"

    if missing_required:
        preview = missing_required[:REJECTION_PREVIEW_LIMIT]
        message += "Missing required items:\n• " + "\n• ".join(preview)
        if len(missing_required) > REJECTION_PREVIEW_LIMIT:
            message += f"\n... and {len(missing_required) - REJECTION_PREVIEW_LIMIT} more"

    if summary.errors:
        if missing_required:
            message += "\n\n"
        first = summary.errors[0]
        message += f"Validation errors: {len(summary.errors)}\n• {first.item}: {first.message}"

    return message


class ChecklistLifecycle:
    """Saves drafts and finalizes checklists against a checklist store.

    Every call recomputes progress and validation from the inputs it is given.
    Calls for the same checklist id are not serialized here.
    """

    def __init__(self, checklist_store: ChecklistStore, event_bus: EventBus | None = None) -> None:
        self.checklist_store = checklist_store
        self.event_bus = event_bus or EventBus()

    def save_in_progress(
        self,
        existing_id: str | None,
        template: Template | None,
        form_data: ChecklistFormData,
        responses: Mapping[str, Response],
        notes: Mapping[str, str],
        effective_date: datetime | None,
        acting_user: str | None = None,
    ) -> Checklist:
        self._check_preconditions(existing_id, template, form_data, action="save")
        effective_date = effective_date or datetime.now(UTC)

        progress = compute_progress(template, responses)
        summary = validate_checklist(template, responses)
        record = self._build_record(
            template,
            form_data,
            responses,
            notes,
            effective_date,
            progress,
            summary,
            state=LifecycleState.IN_PROGRESS,
            requires_review=False,
            acting_user=acting_user,
        )
        checklist = self._persist(existing_id, record, action="save_in_progress")
        self._event(
            checklist.id,
            "save_in_progress",
            checklist.lifecycle_state.value,
            details={"completed_items": progress.completed_items, "error_count": len(summary.errors)},
        )
        return checklist

    def finalize(
        self,
        existing_id: str | None,
        template: Template | None,
        form_data: ChecklistFormData,
        responses: Mapping[str, Response],
        notes: Mapping[str, str],
        effective_date: datetime | None,
        acting_user: str | None = None,
    ) -> FinalizeResult:
        """Finalize a checklist if the gate passes.

        The gate refuses while any required item is unanswered or any item
        has an error verdict. A refusal writes nothing and comes back as an
        unsuccessful result carrying the message to show the user. Without an
        effective date the checklist is dated now.
        """
        self._check_preconditions(existing_id, template, form_data, action="finalize")
        effective_date = effective_date or datetime.now(UTC)

        missing_required = find_missing_required(template, responses)
        summary = validate_checklist(template, responses)
        error_count = len(summary.errors)

        if missing_required or error_count > 0:
            message = compose_rejection_message(missing_required, summary)
            self._event(
                existing_id or None,
                "finalize",
                "rejected",
                error=message,
                persist=False,
                details={"missing_required": len(missing_required), "error_count": error_count},
            )
            return FinalizeResult(
                checklist=None,
                success=False,
                message=message,
                missing_required=missing_required,
                error_count=error_count,
            )

        progress = compute_progress(template, responses)
        state = derive_lifecycle_state(progress, error_count)
        record = self._build_record(
            template,
            form_data,
            responses,
            notes,
            effective_date,
            progress,
            summary,
            state=state,
            requires_review=error_count > 0,
            acting_user=acting_user,
        )
        checklist = self._persist(existing_id, record, action="finalize")
        self._event(checklist.id, "finalize", state.value)
        return FinalizeResult(
            checklist=checklist,
            success=True,
            message=FINALIZED_MESSAGE,
            missing_required=[],
            error_count=error_count,
        )

    def _check_preconditions(
        self,
        existing_id: str | None,
        template: Template | None,
        form_data: ChecklistFormData,
        action: str,
    ) -> None:
        if template is None:
            raise PreconditionError("No template loaded", field="template")
        if template.resource_type is not None and not form_data.resource_info:
            label = _RESOURCE_LABELS[template.resource_type]
            raise PreconditionError(f"{label} must be selected", field="resource_info")

        if existing_id:
            if not self.checklist_store.exists(existing_id):
                raise ChecklistNotFoundError(existing_id)
            existing = self.checklist_store.get(existing_id)
            if existing.lifecycle_state.is_terminal:
                if action == "finalize":
                    raise PreconditionError("This checklist is already finalized", field="checklist_id")
                raise PreconditionError(
                    "This checklist is already finalized and cannot be edited",
                    field="checklist_id",
                )

    def _build_record(
        self,
        template: Template,
        form_data: ChecklistFormData,
        responses: Mapping[str, Response],
        notes: Mapping[str, str],
        effective_date: datetime,
        progress: Progress,
        summary: ValidationSummary,
        state: LifecycleState,
        requires_review: bool,
        acting_user: str | None,
    ) -> ChecklistRecord:
        return ChecklistRecord(
            template_id=template.id,
            effective_date=effective_date,
            form_data=form_data,
            responses=dict(responses),
            notes=dict(notes),
            validation_summary=summary,
            total_items=progress.total_items,
            completed_items=progress.completed_items,
            error_count=len(summary.errors),
            warning_count=len(summary.warnings),
            correct_count=len(summary.correct),
            percent_complete=progress.percent_complete,
            lifecycle_state=state,
            requires_review=requires_review,
            updated_by=acting_user,
        )

    def _persist(self, existing_id: str | None, record: ChecklistRecord, action: str) -> Checklist:
        try:
            return self.checklist_store.upsert(existing_id, record)
        except Exception as exc:
            self._event(existing_id or None, action, "failed", error=str(exc), persist=False)
            raise

    def _event(
        self,
        checklist_id: str | None,
        action: str,
        outcome: str,
        error: str | None = None,
        persist: bool = True,
        details: dict[str, int] | None = None,
    ) -> None:
        # A checklist that was never saved has no event stream to publish on.
        if checklist_id is None:
            return
        payload = {
            "timestamp": utcnow_iso(),
            "checklist_id": checklist_id,
            "component": "lifecycle",
            "action": action,
            "outcome": outcome,
            "error": error,
            "details": details or {},
        }
        if persist:
            self.checklist_store.append_log(checklist_id, payload)
        self.event_bus.publish(checklist_id, payload)
