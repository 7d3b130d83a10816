"""Business rules for the form document: invariants, load-time normalisation, array moves."""
from __future__ import annotations
import uuid
from dataclasses import replace
from typing import Iterable, List, Optional, TypeVar

from formbuilder.domain.common.result import Result
from formbuilder.domain.form.models import FormDocument, Step
from formbuilder.domain.form.registry import describe

T = TypeVar("T")

DEFAULT_STEP_NAME = "Step 1"


def new_id() -> str:
    return str(uuid.uuid4())


def step_name(position: int) -> str:
    return f"Step {position}"


def default_step() -> Step:
    return Step(id=new_id(), name=DEFAULT_STEP_NAME, field_ids=[])


def array_move(items: List[T], old_index: int, new_index: int) -> List[T]:
    """Remove the item at ``old_index`` and insert it at ``new_index``; returns a new list."""
    moved = list(items)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def unknown_field_ids(form: FormDocument, field_ids: Iterable[str]) -> List[str]:
    known = {f.id for f in form.fields}
    return [fid for fid in field_ids if fid not in known]


def validate_form_document(form: FormDocument) -> Result[FormDocument]:
    """
    Check the structural invariants every committed document must satisfy:
    at least one step, a current step that exists, unique ids, registered
    field types, and step fieldIds that only reference fields of this form.
    """
    if not form.steps:
        return Result.fail("A form must have at least one step.")

    step_ids = [s.id for s in form.steps]
    if len(set(step_ids)) != len(step_ids):
        return Result.fail("Step ids must be unique.")

    field_ids = [f.id for f in form.fields]
    if len(set(field_ids)) != len(field_ids):
        return Result.fail("Field ids must be unique.")

    unknown_types = sorted({str(f.type) for f in form.fields if not isinstance(f.type, str) or describe(f.type) is None})
    if unknown_types:
        return Result.fail(f"Unknown field types: {unknown_types}.")

    if form.current_step is None:
        return Result.fail(f"Current step '{form.current_step_id}' does not exist.")

    for step in form.steps:
        dangling = unknown_field_ids(form, step.field_ids)
        if dangling:
            return Result.fail(f"Step '{step.name}' references unknown fields: {dangling}.")

    return Result.ok(form)


def normalize_document(form: FormDocument) -> FormDocument:
    """
    Repair a stored or imported document so it satisfies the invariants:
    synthesise a default step when steps are missing, drop step references to
    fields that no longer exist, and point currentStepId at the first step when
    it is unset or dangling.
    """
    steps = list(form.steps) or [default_step()]
    known = {f.id for f in form.fields}
    steps = [
        replace(s, field_ids=[fid for fid in s.field_ids if fid in known])
        for s in steps
    ]
    current: Optional[str] = form.current_step_id
    if current not in {s.id for s in steps}:
        current = steps[0].id
    return replace(form, steps=steps, current_step_id=current)
