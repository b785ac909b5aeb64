"""Tests for transition payload assembly."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from stageflow.auth import ActorContext
from stageflow.contracts import (
    DeliveryOrder,
    FeedbackDefinition,
    FormState,
    GeoPoint,
    OrderEnvelope,
    Task,
    TaskDetail,
)
from stageflow.payload import PayloadBuilder, format_amount, format_timestamp
from stageflow.resolver import StageDefinitionResolver

FIXTURES = Path(__file__).parent.parent / "fixtures"
SUBMITTED_AT = datetime(2026, 3, 4, 9, 30, 15, 123000, tzinfo=timezone.utc)


@pytest.fixture
def pickup_order():
    data = json.loads((FIXTURES / "pickup_order.json").read_text())
    return OrderEnvelope.model_validate({"order": data}).order


@pytest.fixture
def actor():
    return ActorContext(vehicle_id=12, user_id=3)


def test_pickup_lines_skip_cancelled_items(pickup_order, actor):
    requirement = StageDefinitionResolver().resolve("pickup", "picking", pickup_order.status)
    payload = PayloadBuilder().build(
        pickup_order, requirement, FormState(remarks="collected"), actor, submitted_at=SUBMITTED_AT
    ).to_wire()

    lines = payload["stages_Details"]
    assert [line["orderDetailsID"] for line in lines] == [9001, 9002]
    full, short = lines
    assert full["stageQty"] == full["orderQty"] == 10
    assert full["condition"] == "Good"
    assert short["stageQty"] == short["pickedQty"] == short["returnQty"] == 3
    assert short["reasonID"] == "7"
    assert short["condition"] == "Damaged"
    assert full["reasonID"] == "0"
    assert all(line["stageStatus"] == "REQUESTED" for line in lines)


def test_header_fields(pickup_order, actor):
    requirement = StageDefinitionResolver().resolve("pickup", "picking", "OPEN")
    payload = PayloadBuilder().build(
        pickup_order, requirement, FormState(remarks="collected"), actor, submitted_at=SUBMITTED_AT
    ).to_wire()

    assert payload["orderID"] == "501"
    assert payload["stageDate"] == "2026-03-04T09:30:15.123Z"
    assert payload["menuName"] == "Pickup Order"
    assert payload["stageStatus"] == "REQUESTED"
    assert payload["stageDefinitionID"] == "3"
    assert payload["stageDefinitionDetailsID"] == "10"
    assert payload["stageRemarks"] == "collected"
    assert payload["isSignatureAdded"] is False
    assert payload["signatures"] == ""
    assert payload["vehicleID"] == "12"
    assert payload["cby"] == "3"
    assert payload["expectedAmount"] == "1250"
    assert payload["latitude"] == payload["longitude"] == ""
    assert payload["isActive"] is True
    assert payload["locationID"] == "0"
    assert payload["FeedbackStage_Details"] == []


def test_build_is_deterministic_apart_from_stage_date(pickup_order, actor):
    requirement = StageDefinitionResolver().resolve("pickup", "picking", "OPEN")
    builder = PayloadBuilder()
    form = FormState(remarks="collected")

    first = builder.build(pickup_order, requirement, form, actor).to_wire()
    second = builder.build(pickup_order, requirement, form, actor).to_wire()
    first.pop("stageDate")
    second.pop("stageDate")

    assert first == second


def test_empty_order_emits_empty_line_array(actor):
    order = DeliveryOrder(id=1, status="OPEN")
    requirement = StageDefinitionResolver().resolve("delivery", "picking", "OPEN")
    payload = PayloadBuilder().build(order, requirement, FormState(), actor).to_wire()

    assert payload["stages_Details"] == []


def test_feedback_records_and_location(actor):
    order = DeliveryOrder(id=8, status="DISPATCHED", amount=99.5)
    requirement = StageDefinitionResolver().resolve("delivery", "delivered", "DISPATCHED")
    form = FormState(
        signature="sig",
        file_upload_url="https://files.test/pod.jpg",
        feedback="sad",
        payment_mode_id="1",
        feedback_definitions=[
            FeedbackDefinition(details_id=1, feedback_id=5, description="On time"),
            FeedbackDefinition(details_id=2, feedback_id=5, description="Polite"),
        ],
    )
    located = actor.model_copy(
        update={"location": GeoPoint(latitude=6.9271, longitude=79.8612, timestamp=SUBMITTED_AT)}
    )
    payload = PayloadBuilder().build(order, requirement, form, located).to_wire()

    assert payload["isSad"] is True and payload["isHappy"] is False
    assert payload["isSignatureAdded"] is True
    assert payload["physicalSigned"] is True
    assert payload["fileUploadUrl"] == "https://files.test/pod.jpg"
    assert payload["fileUploadValidation"] is True
    assert payload["isSignatureMandatory"] is True
    assert payload["paymentModeId"] == "1"
    assert payload["expectedAmount"] == "99.5"
    assert payload["latitude"] == "6.9271"
    assert payload["locationTimeStamp"] == "2026-03-04T09:30:15.123Z"
    records = payload["FeedbackStage_Details"]
    assert [record["feedbackDetails_ID"] for record in records] == [1, 2]
    assert all(record["isCheckedNo"] and not record["ischecked"] for record in records)
    assert records[0]["feedbackValues"] == "sad"


def test_task_payload_uses_open_details(actor):
    task = Task(
        id=40,
        status="IN_PROGRESS",
        details=[
            TaskDetail(task_details_id=1, task_id=40, description="Inspect"),
            TaskDetail(task_details_id=2, task_id=40, description="Photo", is_completed=True),
        ],
    )
    requirement = StageDefinitionResolver().resolve("task", "in_progress", "IN_PROGRESS")
    payload = PayloadBuilder().build(
        task, requirement, FormState(signature="sig"), actor, submitted_at=SUBMITTED_AT
    ).to_wire()

    assert payload["taskID"] == "40"
    assert "stages_Details" not in payload
    (detail,) = payload["task_Details"]
    assert detail["taskDetailsID"] == 1
    assert detail["status"] == "COMPLETED"
    assert detail["isCompleted"] is True
    assert detail["completionDate"] == payload["stageDate"]
    assert detail["priority"] == "Medium"
    assert payload["expectedAmount"] == "0"


def test_formatters():
    assert format_amount(None) == "0"
    assert format_amount(10.0) == "10"
    assert format_timestamp(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02T03:04:05.000Z"
