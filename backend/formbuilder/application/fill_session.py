"""Filler session: one respondent walking through a shared form step by step.

The filler view keeps its own answers and step position between requests, so
a session is rebuilt from them on every call and never stored server side.
"""
from __future__ import annotations
import copy
from typing import Any, Dict, List, Optional

from formbuilder.application.form_app_service import FormAppService
from formbuilder.domain.common.result import Result
from formbuilder.domain.form.models import FormDocument, FormField, FormResponse, Step
from formbuilder.domain.response.rules import initial_data, validate_fields
from formbuilder.domain.share.links import parse_share_link


class FormFillSession:
    def __init__(
        self,
        form: FormDocument,
        creator_id: str,
        data: Optional[Dict[str, Any]] = None,
        step_index: Optional[int] = 0,
    ):
        """``step_index`` is clamped to the form's steps; None means the last step."""
        self.form = form
        self.creator_id = creator_id
        self.data: Dict[str, Any] = initial_data(form)
        if data:
            self.data.update(copy.deepcopy(data))
        last = max(len(form.steps) - 1, 0)
        self.step_index = last if step_index is None else min(max(step_index, 0), last)

    @classmethod
    def open(
        cls,
        forms: FormAppService,
        creator_id: str,
        form_id: str,
        data: Optional[Dict[str, Any]] = None,
        step_index: Optional[int] = 0,
    ) -> Result["FormFillSession"]:
        loaded = forms.get_public_form(creator_id, form_id)
        if not loaded.is_success:
            return Result.fail(loaded.error, kind=loaded.kind)
        return Result.ok(cls(loaded.value, creator_id, data, step_index))

    @classmethod
    def from_share_link(cls, forms: FormAppService, url: str) -> Result["FormFillSession"]:
        target = parse_share_link(url)
        if not target.is_success:
            return Result.fail(target.error)
        return cls.open(forms, target.value.creator_id, target.value.form_id)

    @property
    def current_step(self) -> Optional[Step]:
        if 0 <= self.step_index < len(self.form.steps):
            return self.form.steps[self.step_index]
        return None

    @property
    def current_fields(self) -> List[FormField]:
        step = self.current_step
        # no usable step: show every field on one page
        return self.form.fields_in_step(step) if step else list(self.form.fields)

    @property
    def is_last_step(self) -> bool:
        return self.step_index >= len(self.form.steps) - 1

    def next_step(self) -> Result[int]:
        """Validate the current step, then move forward (no-op on the last step)."""
        checked = validate_fields(self.current_fields, self.data)
        if not checked.is_success:
            return Result.fail(checked.error)
        if not self.is_last_step:
            self.step_index += 1
        return Result.ok(self.step_index)

    def previous_step(self) -> Result[int]:
        if self.step_index > 0:
            self.step_index -= 1
        return Result.ok(self.step_index)

    def submit(self, forms: FormAppService) -> Result[FormResponse]:
        """Submit from the last step: the step on screen is checked first, then the whole form."""
        if not self.is_last_step:
            return Result.fail("Complete the remaining steps before submitting.")
        checked = validate_fields(self.current_fields, self.data)
        if not checked.is_success:
            return Result.fail(checked.error)
        result = forms.submit_response(self.creator_id, self.form.id, copy.deepcopy(self.data))
        if result.is_success:
            self.data = initial_data(self.form)
            self.step_index = 0
        return result

    def to_dict(self) -> dict:
        step = self.current_step
        return {
            "stepIndex": self.step_index,
            "stepName": step.name if step else None,
            "isLastStep": self.is_last_step,
            "fieldIds": [f.id for f in self.current_fields],
        }
