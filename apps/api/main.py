"""FastAPI application exposing the checklist engine, templates and SSE events."""

from __future__ import annotations

import queue
from collections.abc import Generator
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

from fleetcheck.catalog import CATALOG_NAMES, get_template
from fleetcheck.common.models import (
    ApiError,
    Checklist,
    ChecklistEvaluationRequest,
    ChecklistSubmitRequest,
    FinalizeResult,
    ItemValidationRequest,
    LifecycleState,
    Progress,
    Template,
    ValidationResult,
    ValidationSummary,
)
from fleetcheck.common.schemas import SchemaValidationError, validate_template_schema
from fleetcheck.common.store import ChecklistStore, EventBus, InvalidIdentifierError, TemplateStore, new_id
from fleetcheck.engine import (
    ChecklistLifecycle,
    ChecklistNotFoundError,
    PreconditionError,
    compute_progress,
    validate_checklist,
    validate_item,
)


template_store = TemplateStore()
checklist_store = ChecklistStore()
event_bus = EventBus()
lifecycle = ChecklistLifecycle(checklist_store=checklist_store, event_bus=event_bus)

app = FastAPI(title="Fleetcheck API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _api_error(
    status_code: int,
    code: str,
    message: str,
    retryable: bool = False,
    details: dict[str, Any] | None = None,
) -> HTTPException:
    error = ApiError(code=code, message=message, retryable=retryable, details=details or {})
    return HTTPException(status_code=status_code, detail=error.model_dump())


def _storage_fault(message: str) -> HTTPException:
    return _api_error(503, "collaborator_fault", message, retryable=True)


def _resolve_template(request: ChecklistEvaluationRequest) -> Template | None:
    if request.template is not None:
        return request.template
    if not request.template_id:
        return None
    try:
        return template_store.get(request.template_id)
    except (FileNotFoundError, InvalidIdentifierError) as exc:
        raise _api_error(404, "not_found", f"Template not found: {request.template_id}") from exc
    except (OSError, ValueError) as exc:
        raise _storage_fault("Could not load the template") from exc


def _require_template(request: ChecklistEvaluationRequest) -> Template:
    template = _resolve_template(request)
    if template is None:
        raise _api_error(400, "precondition_violation", "No template loaded", details={"field": "template"})
    return template


def _validated_template(payload: dict[str, Any]) -> Template:
    try:
        validate_template_schema(payload)
    except SchemaValidationError as exc:
        raise _api_error(422, "schema_validation", exc.message, details={"field": exc.field}) from exc
    return Template.model_validate(payload)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/templates")
def list_templates(include_inactive: bool = False) -> dict[str, list[Template]]:
    return {"templates": template_store.list(include_inactive=include_inactive)}


@app.post("/templates", response_model=Template)
def create_template(payload: dict[str, Any]) -> Template:
    payload = {**payload, "id": payload.get("id") or new_id("tpl")}
    return template_store.create(_validated_template(payload))


@app.get("/templates/catalog/{name}", response_model=Template)
def get_catalog_template(name: str) -> Template:
    template = get_template(name)
    if template is None:
        raise _api_error(
            404,
            "not_found",
            f"Unknown template name: {name}",
            details={"available": list(CATALOG_NAMES)},
        )
    return template


@app.get("/templates/{template_id}", response_model=Template)
def get_template_by_id(template_id: str) -> Template:
    try:
        return template_store.get(template_id)
    except (FileNotFoundError, InvalidIdentifierError) as exc:
        raise _api_error(404, "not_found", f"Template not found: {template_id}") from exc
    except (OSError, ValueError) as exc:
        raise _storage_fault("Could not load the template") from exc


@app.put("/templates/{template_id}", response_model=Template)
def update_template(template_id: str, payload: dict[str, Any]) -> Template:
    template = _validated_template({**payload, "id": template_id})
    try:
        return template_store.update(template)
    except FileNotFoundError as exc:
        raise _api_error(404, "not_found", f"Template not found: {template_id}") from exc


@app.delete("/templates/{template_id}", response_model=Template)
def deactivate_template(template_id: str) -> Template:
    try:
        return template_store.deactivate(template_id)
    except (FileNotFoundError, InvalidIdentifierError) as exc:
        raise _api_error(404, "not_found", f"Template not found: {template_id}") from exc


@app.post("/validate/item", response_model=ValidationResult)
def validate_single_item(request: ItemValidationRequest) -> ValidationResult:
    return validate_item(request.item, request.value)


@app.post("/validate/checklist", response_model=ValidationSummary)
def validate_whole_checklist(request: ChecklistEvaluationRequest) -> ValidationSummary:
    return validate_checklist(_require_template(request), request.responses)


@app.post("/progress", response_model=Progress)
def checklist_progress(request: ChecklistEvaluationRequest) -> Progress:
    return compute_progress(_require_template(request), request.responses)


@app.post("/checklists/save", response_model=Checklist)
def save_checklist(request: ChecklistSubmitRequest, x_user_id: str | None = Header(default=None)) -> Checklist:
    template = _resolve_template(request)
    try:
        return lifecycle.save_in_progress(
            request.checklist_id,
            template,
            request.form_data,
            request.responses,
            request.notes,
            request.effective_date,
            acting_user=x_user_id,
        )
    except ChecklistNotFoundError as exc:
        raise _api_error(404, "not_found", exc.message, details={"field": exc.field}) from exc
    except PreconditionError as exc:
        raise _api_error(400, "precondition_violation", exc.message, details={"field": exc.field}) from exc
    except (OSError, ValueError) as exc:
        raise _storage_fault("Could not save the checklist") from exc


@app.post("/checklists/finalize", response_model=FinalizeResult)
def finalize_checklist(request: ChecklistSubmitRequest, x_user_id: str | None = Header(default=None)) -> FinalizeResult:
    template = _resolve_template(request)
    try:
        result = lifecycle.finalize(
            request.checklist_id,
            template,
            request.form_data,
            request.responses,
            request.notes,
            request.effective_date,
            acting_user=x_user_id,
        )
    except ChecklistNotFoundError as exc:
        raise _api_error(404, "not_found", exc.message, details={"field": exc.field}) from exc
    except PreconditionError as exc:
        raise _api_error(400, "precondition_violation", exc.message, details={"field": exc.field}) from exc
    except (OSError, ValueError) as exc:
        raise _storage_fault("Could not save the checklist") from exc

    if not result.success:
        raise _api_error(
            422,
            "validation_rejection",
            result.message,
            details={"missing_required": result.missing_required, "error_count": result.error_count},
        )
    return result


@app.get("/checklists")
def list_checklists(
    state: LifecycleState | None = None,
    user: str | None = None,
    template_id: str | None = None,
) -> dict[str, list[Checklist]]:
    return {"checklists": checklist_store.list(state=state, user=user, template_id=template_id)}


@app.get("/checklists/in-progress")
def list_my_drafts(x_user_id: str | None = Header(default=None)) -> dict[str, list[Checklist]]:
    return {"checklists": checklist_store.list_in_progress(x_user_id)}


@app.get("/templates/{template_id}/checklists")
def list_template_checklists(template_id: str) -> dict[str, list[Checklist]]:
    return {"checklists": checklist_store.list_by_template(template_id)}


@app.get("/checklists/{checklist_id}", response_model=Checklist)
def get_checklist(checklist_id: str) -> Checklist:
    try:
        return checklist_store.get(checklist_id)
    except (FileNotFoundError, InvalidIdentifierError) as exc:
        raise _api_error(404, "not_found", f"Checklist not found: {checklist_id}") from exc
    except (OSError, ValueError) as exc:
        raise _storage_fault("Could not load the checklist") from exc


@app.get("/checklists/{checklist_id}/log")
def get_checklist_log(checklist_id: str) -> dict[str, list[dict[str, Any]]]:
    if not checklist_store.exists(checklist_id):
        raise _api_error(404, "not_found", f"Checklist not found: {checklist_id}")
    return {"events": checklist_store.read_log(checklist_id)}


@app.get("/checklists/{checklist_id}/events")
def stream_events(checklist_id: str) -> StreamingResponse:
    checklist_queue = event_bus.get_queue(checklist_id)

    def gen() -> Generator[str, None, None]:
        while True:
            try:
                event = checklist_queue.get(timeout=25)
            except queue.Empty:
                yield ": keepalive\n\n"
                continue
            yield f"data: {event}\n\n"

    return StreamingResponse(gen(), media_type="text/event-stream")
