"""Presentation helpers for the response viewer and CSV export."""
from __future__ import annotations
import csv
import io
from typing import Any, Dict, Iterator, List

from formbuilder.domain.form.models import FormDocument, FormField, FormResponse


def display_value(value: Any) -> str:
    if isinstance(value, dict):
        return ", ".join(str(k) for k, checked in value.items() if checked)
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(map(str, value))
    if value is None:
        return ""
    return str(value)


def newest_first(responses: List[FormResponse]) -> List[FormResponse]:
    return sorted(responses, key=lambda r: r.submitted_at or "", reverse=True)


def ordered_fields(form: FormDocument) -> List[FormField]:
    """Fields in step order, followed by fields that belong to no step."""
    ordered: List[FormField] = []
    seen = set()
    for step in form.steps:
        for f in form.fields_in_step(step):
            if f.id not in seen:
                ordered.append(f)
                seen.add(f.id)
    ordered.extend(f for f in form.fields if f.id not in seen)
    return ordered


def labelled_answers(form: FormDocument, response: FormResponse) -> List[Dict[str, str]]:
    """Answers keyed by field label where the field still exists, else by raw field id."""
    answers = []
    known = set()
    for f in ordered_fields(form):
        if f.id in response.data:
            answers.append({"fieldId": f.id, "label": f.label, "value": display_value(response.data[f.id])})
            known.add(f.id)
    for field_id, value in response.data.items():
        if field_id not in known:
            answers.append({"fieldId": field_id, "label": field_id, "value": display_value(value)})
    return answers


def iter_csv(form: FormDocument, responses: List[FormResponse]) -> Iterator[str]:
    """Yield CSV text one row at a time, header first."""
    fields = ordered_fields(form)
    output = io.StringIO()
    writer = csv.writer(output)

    def flush() -> str:
        text = output.getvalue()
        output.seek(0)
        output.truncate(0)
        return text

    writer.writerow(["submittedAt"] + [f.label or f.id for f in fields])
    yield flush()
    for response in newest_first(responses):
        writer.writerow([response.submitted_at] + [display_value(response.data.get(f.id)) for f in fields])
        yield flush()
