"""Rules for filling a form: initial answers and required-field checks."""
from __future__ import annotations
from typing import Any, Dict, Iterable

from formbuilder.domain.common.result import Result
from formbuilder.domain.form.models import FormDocument, FormField


def initial_data(form: FormDocument) -> Dict[str, Any]:
    """Empty answers for every field; checkbox groups start from each option's ``checked`` flag."""
    data: Dict[str, Any] = {}
    for f in form.fields:
        if f.type == "CHECKBOX" and f.options:
            data[f.id] = {opt.value: bool(opt.checked) for opt in f.options}
        else:
            data[f.id] = ""
    return data


def _is_answered(f: FormField, value: Any) -> bool:
    if f.type == "CHECKBOX":
        if not isinstance(value, dict):
            return False
        return any(value.get(opt.value) for opt in f.options or [])
    if value is None:
        return False
    return str(value).strip() != ""


def validate_fields(fields: Iterable[FormField], data: Dict[str, Any]) -> Result[Dict[str, Any]]:
    """Fail on the first required field without an answer, in display order."""
    for f in fields:
        if not f.required or _is_answered(f, data.get(f.id)):
            continue
        if f.type == "CHECKBOX":
            return Result.fail(f'Field "{f.label}" is required. Please check at least one option.')
        return Result.fail(f'Field "{f.label}" is required.')
    return Result.ok(data)


def validate_submission(form: FormDocument, data: Dict[str, Any]) -> Result[Dict[str, Any]]:
    """Check every step in order, then any field that belongs to no step."""
    seen = set()
    for step in form.steps:
        fields = form.fields_in_step(step)
        seen.update(f.id for f in fields)
        result = validate_fields(fields, data)
        if not result.is_success:
            return result
    return validate_fields([f for f in form.fields if f.id not in seen], data)
