"""Tests for transition validation."""

from stageflow.contracts import (
    FileUpload,
    FormState,
    LineItem,
    StageDefinition,
    StageRequirement,
)
from stageflow.stages import OrderKind
from stageflow.validator import Requirement, TransitionValidator


def _requirement(**flags):
    return StageRequirement(
        kind=OrderKind.DELIVERY,
        stage="delivered",
        menu_name="Confirmation",
        stage_status="COMPLETED",
        **flags,
    )


def _item(details_id, ordered, actioned=None, **extra):
    return LineItem(details_id=details_id, ordered_qty=ordered, actioned_qty=actioned, **extra)


def test_each_gate_reported_independently():
    requirement = _requirement(
        required_remarks=True,
        required_signature=True,
        required_file_upload=True,
        required_feedback=True,
        required_payment_mode=True,
    )
    result = TransitionValidator().validate(requirement, FormState(remarks="  "), [_item(1, 1)])

    assert not result.ok
    assert result.missing == [
        Requirement.REMARKS,
        Requirement.SIGNATURE,
        Requirement.FILE_UPLOAD,
        Requirement.FEEDBACK,
        Requirement.PAYMENT_MODE,
    ]


def test_complete_form_passes():
    requirement = _requirement(
        required_remarks=True,
        required_signature=True,
        required_file_upload=True,
        required_feedback=True,
        required_payment_mode=True,
    )
    form = FormState(
        remarks="left at door",
        signature="data:image/png;base64,AAAA",
        pending_file=FileUpload(name="pod.jpg", content=b"\xff\xd8"),
        feedback="happy",
        payment_mode_id="2",
    )
    result = TransitionValidator().validate(requirement, form, [_item(1, 1)])

    assert result.ok
    assert not result.empty_items_warning


def test_empty_items_is_a_warning_not_a_failure():
    result = TransitionValidator().validate(_requirement(), FormState(), [])
    assert result.ok
    assert result.empty_items_warning


def test_only_cancelled_items_counts_as_empty():
    items = [_item(1, 5, is_cancelled=True)]
    result = TransitionValidator().validate(_requirement(), FormState(), items)
    assert result.empty_items_warning


def test_short_line_rejected_when_partial_not_allowed():
    requirement = _requirement(line_level_allowed=True, partial_allowed=False)
    result = TransitionValidator().validate(requirement, FormState(), [_item(1, 10, 8)])
    assert result.missing == [Requirement.PARTIAL_QUANTITY]


def test_short_line_needs_reason_when_mandatory():
    requirement = _requirement(
        line_level_allowed=True, partial_allowed=True, required_line_reason=True
    )
    validator = TransitionValidator()

    missing_reason = validator.validate(requirement, FormState(), [_item(1, 10, 8, reason_id="0")])
    with_reason = validator.validate(requirement, FormState(), [_item(1, 10, 8, reason_id="4")])
    full_line = validator.validate(requirement, FormState(), [_item(1, 10)])

    assert missing_reason.missing == [Requirement.LINE_REASON]
    assert with_reason.ok
    assert full_line.ok


def test_server_definition_tightens_requirement():
    definition = StageDefinition(
        details_id=10,
        stage_definition_id=3,
        is_remarks_mandatory=True,
        allow_partial=False,
    )
    base = _requirement(line_level_allowed=True, partial_allowed=True)
    merged = base.with_definition(definition)

    assert merged.required_remarks
    assert not merged.partial_allowed
    assert (merged.definition_id, merged.definition_detail_id) == (3, 10)
    assert base.with_definition(None) is base
