import base64
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from spliteasy.core.auth import get_current_user
from spliteasy.core.config import settings
from spliteasy.core.database import get_db
from spliteasy.main import app
from spliteasy.models.receipt import Receipt, ReceiptItem, Participant, Assignment
from spliteasy.models.user import User
from spliteasy.schemas.receipt import ParsedReceipt
from spliteasy.services.parsing_service import ReceiptParseError
from spliteasy.services.receipt_service import ReceiptValidationError

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
USER = User(id=uuid.uuid4(), firebase_uid="firebase-alice", email="alice@example.com", name="Alice", created_at=NOW)
ALICE = uuid.uuid4()


def stored_receipt():
    return Receipt(
        id=uuid.uuid4(),
        user_id=USER.id,
        name="Brunch",
        subtotal=Decimal("20.00"),
        tax=Decimal("2.00"),
        tip=Decimal("0.00"),
        total=Decimal("22.00"),
        is_fully_assigned=False,
        created_at=NOW,
        updated_at=NOW,
        participants=[Participant(id=ALICE, name="Alice", is_creator=True)],
        items=[
            ReceiptItem(
                id=uuid.uuid4(), description="Pancakes", price=Decimal("20.00"), quantity=Decimal("1"),
                is_multiplied=False, sort_order=0,
                assignments=[Assignment(participant_id=ALICE, amount=Decimal("15.00"))],
            ),
        ],
    )


@pytest.fixture
def client():
    async def _db():
        yield AsyncMock()

    app.dependency_overrides[get_current_user] = lambda: USER
    app.dependency_overrides[get_db] = _db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_requires_bearer_token():
    with TestClient(app) as c:
        resp = c.get("/api/receipts")
    assert resp.status_code in (401, 403)


def test_create_receipt(client):
    saved = stored_receipt()
    saved.is_fully_assigned = True
    with patch("spliteasy.api.receipts.create_receipt", AsyncMock(return_value=saved)) as create:
        resp = client.post("/api/receipts", json={
            "name": "Brunch",
            "subtotal": 20,
            "participants": [{"id": "p1", "name": "Alice"}],
            "items": [{"description": "Pancakes", "price": 20,
                       "assignments": [{"participantId": "p1", "amount": 20}]}],
        })
    assert resp.status_code == 201
    assert resp.json() == {"success": True, "receipt_id": str(saved.id), "is_fully_assigned": True}
    body = create.await_args.args[2]
    assert body.items[0].assignments[0].amount == Decimal("20")


def test_create_receipt_unassigned_is_422(client):
    error = ReceiptValidationError(
        "All funds must be assigned before saving",
        [{"index": 0, "description": "Pancakes", "kind": "unassigned", "amount": Decimal("5.00")}],
    )
    with patch("spliteasy.api.receipts.create_receipt", AsyncMock(side_effect=error)):
        resp = client.post("/api/receipts", json={"participants": [{"id": "p1", "name": "Alice"}]})
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["message"] == "All funds must be assigned before saving"
    assert detail["problems"][0]["amount"] == "5.00"


@pytest.mark.parametrize("body", [
    {"subtotal": -1},
    {"tax": "NaN"},
    {"participants": [{"id": "p1", "name": "   "}]},
    {"participants": [{"id": "p1", "name": "A"}, {"id": "p1", "name": "B"}]},
    {"items": [{"price": 5, "assignments": [{"participantId": "p1", "amount": 2},
                                            {"participantId": "p1", "amount": 3}]}]},
])
def test_create_receipt_rejects_malformed_payload(client, body):
    with patch("spliteasy.api.receipts.create_receipt", AsyncMock()) as create:
        resp = client.post("/api/receipts", json=body)
    assert resp.status_code == 422
    create.assert_not_awaited()


def test_get_receipt(client):
    receipt = stored_receipt()
    with patch("spliteasy.api.receipts.get_receipt", AsyncMock(return_value=receipt)):
        resp = client.get(f"/api/receipts/{receipt.id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Brunch"
    assert data["participants"][0]["name"] == "Alice"
    assert data["items"][0]["assignments"][0]["participant_id"] == str(ALICE)


def test_get_receipt_not_found(client):
    with patch("spliteasy.api.receipts.get_receipt", AsyncMock(return_value=None)):
        resp = client.get(f"/api/receipts/{uuid.uuid4()}")
    assert resp.status_code == 404


def test_delete_receipt(client):
    with patch("spliteasy.api.receipts.delete_receipt", AsyncMock(return_value=True)):
        assert client.delete(f"/api/receipts/{uuid.uuid4()}").status_code == 204
    with patch("spliteasy.api.receipts.delete_receipt", AsyncMock(return_value=False)):
        assert client.delete(f"/api/receipts/{uuid.uuid4()}").status_code == 404


def test_breakdown(client):
    receipt = stored_receipt()
    with patch("spliteasy.api.receipts.get_receipt", AsyncMock(return_value=receipt)):
        resp = client.get(f"/api/receipts/{receipt.id}/breakdown")
    assert resp.status_code == 200
    data = resp.json()
    alice = data["participants"][0]
    assert Decimal(alice["items_total"]) == Decimal("15.00")
    assert Decimal(alice["tax_share"]) == Decimal("1.50")
    assert Decimal(data["unassigned"]["total"]) == Decimal("5.50")


def test_pdf_export(client):
    receipt = stored_receipt()
    with patch("spliteasy.api.receipts.get_receipt", AsyncMock(return_value=receipt)):
        resp = client.get(f"/api/receipts/{receipt.id}/pdf")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")


def test_remove_creator_is_422(client):
    error = ReceiptValidationError("The bill's creator can't be removed")
    with patch("spliteasy.api.assignments.remove_participant", AsyncMock(side_effect=error)):
        resp = client.delete(f"/api/receipts/{uuid.uuid4()}/participants/{ALICE}")
    assert resp.status_code == 422


def test_split_item_missing_is_404(client):
    with patch("spliteasy.api.assignments.split_item_equally", AsyncMock(return_value=None)):
        resp = client.post(f"/api/receipts/{uuid.uuid4()}/items/{uuid.uuid4()}/split-equally")
    assert resp.status_code == 404


def test_process_receipt(client, monkeypatch):
    monkeypatch.setattr(settings, "google_api_key", "test-key")
    parsed = ParsedReceipt.model_validate({"items": [{"description": "Tea", "price": 3}], "total": 3})
    image = base64.b64encode(b"fake-jpeg").decode()
    with patch("spliteasy.api.parsing.parse_receipt_image", AsyncMock(return_value=parsed)) as parse:
        resp = client.post("/api/receipt/process", json={"image": image, "mimeType": "image/jpeg"})
    assert resp.status_code == 200
    assert resp.json()["items"][0]["description"] == "Tea"
    parse.assert_awaited_once_with(b"fake-jpeg", "image/jpeg")


@pytest.mark.parametrize("body,status", [
    ({"image": "", "mime_type": "image/png"}, 400),
    ({"image": "abcd", "mime_type": "application/pdf"}, 400),
    ({"image": "%%%", "mime_type": "image/png"}, 400),
])
def test_process_receipt_bad_input(client, monkeypatch, body, status):
    monkeypatch.setattr(settings, "google_api_key", "test-key")
    assert client.post("/api/receipt/process", json=body).status_code == status


def test_process_receipt_too_large(client, monkeypatch):
    monkeypatch.setattr(settings, "google_api_key", "test-key")
    monkeypatch.setattr(settings, "max_upload_bytes", 4)
    image = base64.b64encode(b"0123456789").decode()
    resp = client.post("/api/receipt/process", json={"image": image, "mime_type": "image/png"})
    assert resp.status_code == 413


def test_process_receipt_without_api_key(client, monkeypatch):
    monkeypatch.setattr(settings, "google_api_key", "")
    resp = client.post("/api/receipt/process", json={"image": "abcd", "mime_type": "image/png"})
    assert resp.status_code == 500


def test_process_receipt_model_failure_is_502(client, monkeypatch):
    monkeypatch.setattr(settings, "google_api_key", "test-key")
    error = ReceiptParseError("Invalid JSON from model", details="oops")
    image = base64.b64encode(b"fake").decode()
    with patch("spliteasy.api.parsing.parse_receipt_image", AsyncMock(side_effect=error)):
        resp = client.post("/api/receipt/process", json={"image": image, "mime_type": "image/png"})
    assert resp.status_code == 502
    assert resp.json()["detail"] == {"error": "Invalid JSON from model", "details": "oops"}
