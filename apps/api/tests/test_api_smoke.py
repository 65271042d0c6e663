from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from apps.api.main import app, checklist_store, template_store

EFFECTIVE_DATE = "2026-03-02T07:30:00Z"
VEHICLE = {"resource_info": {"id": "truck-12", "plate": "AB-123-CD"}, "resource_type": "vehicle"}


def _passing_daily_answers() -> dict[str, dict[str, str]]:
    values = {
        "lights_complete": "yes",
        "windshield_wipers": "yes",
        "reverse_alarm": "yes",
        "horn": "yes",
        "fluids": "good",
        "brake_air_pressure": "100",
        "doors_seats": "yes",
        "stakes": "yes",
        "side_rails": "yes",
        "tailgate": "yes",
        "damage": "no",
        "fluid_leaks": "no",
        "brakes": "good",
    }
    return {item_id: {"value": value} for item_id, value in values.items()}


def _submit(**overrides) -> dict:
    body = {
        "template_id": "daily_inspection",
        "responses": _passing_daily_answers(),
        "form_data": VEHICLE,
        "effective_date": EFFECTIVE_DATE,
    }
    body.update(overrides)
    return body


def test_health() -> None:
    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok"}


def test_catalog_lookup() -> None:
    client = TestClient(app)

    resp = client.get("/templates/catalog/partial")
    assert resp.status_code == 200
    assert resp.json()["id"] == "partial_inspection"

    missing = client.get("/templates/catalog/weekly")
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "not_found"
    assert missing.json()["detail"]["details"]["available"] == ["daily", "partial", "complete"]


def test_template_crud_and_schema_errors() -> None:
    client = TestClient(app)
    payload = {
        "name": "Sector walk-through",
        "resource_type": "sector",
        "sections": [{"id": "s1", "title": "1. EXITS", "items": [{"id": "exit_clear", "description": "Exit clear"}]}],
    }

    created = client.post("/templates", json=payload)
    assert created.status_code == 200
    template_id = created.json()["id"]
    assert template_id.startswith("tpl_")

    assert client.get(f"/templates/{template_id}").json()["name"] == "Sector walk-through"

    renamed = client.put(f"/templates/{template_id}", json={**payload, "name": "Sector walk-through v2"})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Sector walk-through v2"

    assert client.delete(f"/templates/{template_id}").json()["is_active"] is False
    assert template_id not in [t["id"] for t in client.get("/templates").json()["templates"]]

    bad = client.post("/templates", json={**payload, "resource_type": "boat"})
    assert bad.status_code == 422
    assert bad.json()["detail"]["details"]["field"] == "resource_type"

    assert client.get("/templates/tpl_missing").status_code == 404


def test_validate_item_endpoint() -> None:
    client = TestClient(app)
    item = {
        "id": "brake_air_pressure",
        "description": "Air pressure / brake system",
        "validation_type": "min_max",
        "validation_behavior": "raises_error",
        "is_required": True,
        "config": {"min": 80, "max": 120, "error_outside_range": True},
    }
    resp = client.post("/validate/item", json={"item": item, "value": "75"})
    assert resp.status_code == 200
    assert resp.json() == {"kind": "error", "message": "The value 75 is below minimum (80)"}


def test_validate_checklist_and_progress() -> None:
    client = TestClient(app)
    answers = {"horn": {"value": "no"}, "brake_air_pressure": {"value": "100"}}

    summary = client.post("/validate/checklist", json={"template_id": "daily_inspection", "responses": answers})
    assert summary.status_code == 200
    errors = {entry["item_id"] for entry in summary.json()["errors"]}
    assert "horn" in errors
    assert "brake_air_pressure" not in errors

    progress = client.post("/progress", json={"template_id": "daily_inspection", "responses": answers})
    assert progress.status_code == 200
    assert progress.json()["completed_items"] == 2
    assert progress.json()["percent_complete"] == 15

    assert client.post("/progress", json={"responses": answers}).status_code == 400
    assert client.post("/progress", json={"template_id": "nope"}).status_code == 404


def test_save_then_finalize_flow() -> None:
    client = TestClient(app)
    headers = {"x-user-id": "driver-7"}

    draft = client.post("/checklists/save", json=_submit(responses={"horn": {"value": "yes"}}), headers=headers)
    assert draft.status_code == 200
    checklist_id = draft.json()["id"]
    assert draft.json()["lifecycle_state"] == "in_progress"

    drafts = client.get("/checklists/in-progress", headers=headers).json()["checklists"]
    assert checklist_id in [checklist["id"] for checklist in drafts]

    final = client.post("/checklists/finalize", json=_submit(checklist_id=checklist_id), headers=headers)
    assert final.status_code == 200
    body = final.json()
    assert body["success"] is True
    assert body["message"] == "Checklist finalized successfully"
    assert body["checklist"]["id"] == checklist_id
    assert body["checklist"]["lifecycle_state"] == "completed"

    fetched = client.get(f"/checklists/{checklist_id}")
    assert fetched.json()["percent_complete"] == 100

    log = client.get(f"/checklists/{checklist_id}/log").json()["events"]
    assert [(event["action"], event["outcome"]) for event in log] == [
        ("save_in_progress", "in_progress"),
        ("finalize", "completed"),
    ]

    again = client.post("/checklists/finalize", json=_submit(checklist_id=checklist_id), headers=headers)
    assert again.status_code == 400
    assert again.json()["detail"]["message"] == "This checklist is already finalized"

    by_template = client.get("/templates/daily_inspection/checklists").json()["checklists"]
    assert checklist_id in [checklist["id"] for checklist in by_template]


def test_rejected_finalize_returns_validation_rejection() -> None:
    client = TestClient(app)
    answers = _passing_daily_answers()
    answers["brake_air_pressure"] = {"value": "75"}
    del answers["horn"]

    resp = client.post("/checklists/finalize", json=_submit(responses=answers))
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["code"] == "validation_rejection"
    assert detail["retryable"] is False
    assert detail["details"] == {"missing_required": ["Horn"], "error_count": 2}
    assert detail["message"].startswith("Cannot finalize the checklist:\n\nMissing required items:\n• Horn")


def test_submit_preconditions() -> None:
    client = TestClient(app)

    no_vehicle = client.post("/checklists/save", json=_submit(form_data={}))
    assert no_vehicle.status_code == 400
    assert no_vehicle.json()["detail"]["message"] == "A vehicle must be selected"

    no_template = client.post("/checklists/finalize", json=_submit(template_id=None))
    assert no_template.status_code == 400

    unknown = client.post("/checklists/save", json=_submit(checklist_id="chk_missing"))
    assert unknown.status_code == 404


def test_unknown_checklist_lookups() -> None:
    client = TestClient(app)
    assert client.get("/checklists/chk_missing").status_code == 404
    assert client.get("/checklists/chk_missing/log").status_code == 404


def test_save_without_effective_date_is_dated_now() -> None:
    client = TestClient(app)
    resp = client.post("/checklists/save", json=_submit(effective_date=None))
    assert resp.status_code == 200
    assert resp.json()["effective_date"]


def test_template_ids_cannot_leave_the_data_directory() -> None:
    client = TestClient(app)
    payload = {
        "id": "../../escaped_template",
        "name": "Escape",
        "sections": [{"id": "s1", "title": "S", "items": [{"id": "a", "description": "A"}]}],
    }

    resp = client.post("/templates", json=payload)

    assert resp.status_code == 422
    assert resp.json()["detail"]["details"]["field"] == "id"
    assert not (template_store.root.parent.parent / "escaped_template.json").exists()
    assert client.put("/templates/bad.id", json=payload).status_code == 422
    assert client.get("/templates/bad.id").status_code == 404
    assert client.delete("/templates/bad.id").status_code == 404


def test_checklist_ids_cannot_leave_the_data_directory() -> None:
    client = TestClient(app)
    resp = client.post("/checklists/save", json=_submit(checklist_id="../escaped"))
    assert resp.status_code == 404
    assert not (checklist_store.root.parent / "escaped").exists()
    assert client.get("/checklists/bad.id").status_code == 404


@pytest.mark.parametrize("endpoint", ["/checklists/save", "/checklists/finalize"])
def test_storage_fault_is_reported_as_retryable(monkeypatch: pytest.MonkeyPatch, endpoint: str) -> None:
    monkeypatch.setattr(checklist_store, "upsert", Mock(side_effect=OSError("disk full")))
    client = TestClient(app)

    resp = client.post(endpoint, json=_submit())

    assert resp.status_code == 503
    assert resp.json()["detail"] == {
        "code": "collaborator_fault",
        "message": "Could not save the checklist",
        "retryable": True,
        "details": {},
    }


def test_corrupt_stored_template_is_a_storage_fault() -> None:
    client = TestClient(app)
    corrupt = template_store.template_path("tpl_corrupt")
    corrupt.write_text("{not json", encoding="utf-8")
    try:
        resp = client.get("/templates/tpl_corrupt")
    finally:
        corrupt.unlink()

    assert resp.status_code == 503
    assert resp.json()["detail"]["code"] == "collaborator_fault"
    assert resp.json()["detail"]["retryable"] is True
