"""Client-side gates that must pass before a transition is submitted."""

from __future__ import annotations

from enum import Enum
from typing import List, Sequence, Union

from pydantic import BaseModel, Field

from .contracts import FormState, LineItem, StageRequirement, TaskDetail


class Requirement(str, Enum):
    REMARKS = "remarks"
    SIGNATURE = "signature"
    FILE_UPLOAD = "file_upload"
    FEEDBACK = "feedback"
    PAYMENT_MODE = "payment_mode"
    PARTIAL_QUANTITY = "partial_quantity"
    LINE_REASON = "line_reason"


class ValidationResult(BaseModel):
    """``ok`` is ``False`` only for hard failures.

    An empty active item set is reported through ``empty_items_warning`` and
    leaves ``ok`` untouched: the operator may still choose to proceed.
    """

    missing: List[Requirement] = Field(default_factory=list)
    empty_items_warning: bool = False

    @property
    def ok(self) -> bool:
        return not self.missing


class TransitionValidator:
    """Checks form state against a resolved :class:`StageRequirement`."""

    def validate(
        self,
        requirement: StageRequirement,
        form: FormState,
        items: Sequence[Union[LineItem, TaskDetail]] = (),
    ) -> ValidationResult:
        items = [item for item in items if not getattr(item, "is_cancelled", False)]
        missing: List[Requirement] = []

        if requirement.required_remarks and not form.remarks.strip():
            missing.append(Requirement.REMARKS)
        if requirement.required_signature and not form.signature:
            missing.append(Requirement.SIGNATURE)
        if requirement.required_file_upload and not form.has_file:
            missing.append(Requirement.FILE_UPLOAD)
        if requirement.required_feedback and form.feedback is None:
            missing.append(Requirement.FEEDBACK)
        if requirement.required_payment_mode and not form.payment_mode_id:
            missing.append(Requirement.PAYMENT_MODE)

        if requirement.line_level_allowed:
            missing.extend(self._check_lines(requirement, items))

        return ValidationResult(missing=missing, empty_items_warning=not items)

    def _check_lines(
        self,
        requirement: StageRequirement,
        items: Sequence[Union[LineItem, TaskDetail]],
    ) -> List[Requirement]:
        short = [item for item in items if isinstance(item, LineItem) and item.is_short]
        problems: List[Requirement] = []
        if short and not requirement.partial_allowed:
            problems.append(Requirement.PARTIAL_QUANTITY)
        if requirement.required_line_reason and any(
            not item.reason_id or item.reason_id == "0" for item in short
        ):
            problems.append(Requirement.LINE_REASON)
        return problems
