"""Domain service: pure editing operations on form documents."""
from __future__ import annotations
import copy
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from formbuilder.domain.common.result import Result
from formbuilder.domain.form.models import FormDocument, FormField, Step, to_wire_key
from formbuilder.domain.form.registry import default_attributes, describe
from formbuilder.domain.form.rules import (
    array_move,
    new_id,
    normalize_document,
    step_name,
    unknown_field_ids,
)

NO_FORM = "No form loaded."
DETAIL_KEYS = ("title", "description", "settings")
BOOL_ATTRIBUTES = ("required", "multiple")
INT_ATTRIBUTES = ("rows", "minLength", "maxLength")
TEXT_ATTRIBUTES = ("type", "label", "placeholder", "helpText", "accept", "pattern")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _wire_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise attribute names and drop the id, which is never patchable."""
    wire = {to_wire_key(k): copy.deepcopy(v) for k, v in patch.items()}
    wire.pop("id", None)
    return wire


def _options(value: Any) -> Result[List[Dict[str, Any]]]:
    """Options are a list of {value, label, checked?} mappings; a plain string stands for its own value and label."""
    if not isinstance(value, list):
        return Result.fail("Options must be a list.")
    options = []
    for opt in value:
        if isinstance(opt, str):
            options.append({"value": opt, "label": opt})
        elif isinstance(opt, dict) and isinstance(opt.get("value"), str):
            if opt.get("checked") is not None and not isinstance(opt["checked"], bool):
                return Result.fail(f"Option '{opt['value']}': checked must be true or false.")
            options.append(opt)
        else:
            return Result.fail("Each option needs a text value.")
    return Result.ok(options)


def _field_patch(patch: Any) -> Result[Dict[str, Any]]:
    """Wire-normalise a field patch and check every attribute has the right shape."""
    if not isinstance(patch, dict):
        return Result.fail("Field attributes must be an object.")
    wire = _wire_patch(patch)
    for key, value in wire.items():
        if value is None:
            continue
        if key in BOOL_ATTRIBUTES and not isinstance(value, bool):
            return Result.fail(f"'{key}' must be true or false.")
        if key in INT_ATTRIBUTES and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
            return Result.fail(f"'{key}' must be a whole number.")
        if key in TEXT_ATTRIBUTES and not isinstance(value, str):
            return Result.fail(f"'{key}' must be text.")
    if wire.get("options") is not None:
        options = _options(wire["options"])
        if not options.is_success:
            return options
        wire["options"] = options.value
    return Result.ok(wire)



def _template_shape(template: Any) -> Result[Dict[str, Any]]:
    if not isinstance(template, dict):
        return Result.fail("A template must be an object.")
    for key in ("fields", "steps"):
        items = template.get(key)
        if items is None:
            continue
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            return Result.fail(f"Template '{key}' must be a list of objects.")
    for raw in template.get("fields") or []:
        if raw.get("options") is not None and not _options(raw["options"]).is_success:
            return Result.fail(f"Template field '{raw.get('label', raw.get('id'))}' has malformed options.")
    return Result.ok(template)


class FormDomainService:
    """
    Pure domain operations, no I/O. Every method takes the current document
    and returns Result[FormDocument]: a new document on success, otherwise a
    VALIDATION failure (user-visible rejection) or a LOOKUP_MISS (silent
    no-op). The input document is never mutated.
    """

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create_blank(self) -> Result[FormDocument]:
        now = _now_iso()
        first = Step(id=new_id(), name=step_name(1), field_ids=[])
        form = FormDocument(
            id=new_id(),
            title="Untitled Form",
            description="",
            fields=[],
            steps=[first],
            current_step_id=first.id,
            settings={"theme": "default"},
            created_at=now,
            updated_at=now,
        )
        return Result.ok(form)

    def create_from_template(self, template: Union[FormDocument, Dict[str, Any]]) -> Result[FormDocument]:
        """Deep-copy a template, giving the form, every field and every step a fresh id."""
        if isinstance(template, FormDocument):
            source = copy.deepcopy(template)
        else:
            shape = _template_shape(template or {})
            if not shape.is_success:
                return Result.fail(shape.error)
            source = FormDocument.from_dict(copy.deepcopy(template or {}))
        unknown = [f.type for f in source.fields if not isinstance(f.type, str) or describe(f.type) is None]
        if unknown:
            return Result.fail(f"Template uses unknown field types: {unknown}.")

        field_map: Dict[str, str] = {}
        fields = []
        for f in source.fields:
            fresh = new_id()
            field_map.setdefault(f.id, fresh)
            fields.append(replace(f, id=fresh))

        step_map: Dict[str, str] = {}
        steps = []
        for s in source.steps:
            fresh = new_id()
            step_map[s.id] = fresh
            remapped = [field_map[fid] for fid in s.field_ids if fid in field_map]
            steps.append(Step(id=fresh, name=s.name, field_ids=remapped))

        now = _now_iso()
        form = FormDocument(
            id=new_id(),
            title=source.title,
            description=source.description,
            fields=fields,
            steps=steps,
            current_step_id=step_map.get(source.current_step_id),
            settings=source.settings or {"theme": "default"},
            created_at=now,
            updated_at=now,
        )
        return Result.ok(normalize_document(form))

    # ------------------------------------------------------------------
    # Form details
    # ------------------------------------------------------------------
    def update_form_details(self, form: Optional[FormDocument], patch: Dict[str, Any]) -> Result[FormDocument]:
        if form is None:
            return Result.fail(NO_FORM)
        changes = {k: v for k, v in (patch or {}).items() if k in DETAIL_KEYS}
        if not changes:
            return Result.fail("Nothing to update: expected title, description or settings.")
        if "title" in changes:
            changes["title"] = "" if changes["title"] is None else str(changes["title"])
        if "description" in changes:
            changes["description"] = "" if changes["description"] is None else str(changes["description"])
        if "settings" in changes:
            if changes["settings"] is not None and not isinstance(changes["settings"], dict):
                return Result.fail("Settings must be an object.")
            changes["settings"] = dict(changes["settings"] or {})
        return Result.ok(replace(form, **changes))

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------
    def add_field(
        self,
        form: Optional[FormDocument],
        field_type: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Result[FormDocument]:
        """Seed a new field from the registry defaults and append it to the current step."""
        if form is None:
            return Result.fail(NO_FORM)
        step = form.current_step
        if step is None:
            return Result.fail("Select a step before adding fields.")
        if not isinstance(field_type, str) or describe(field_type) is None:
            return Result.fail(f"Unknown field type '{field_type}'.")

        patch = _field_patch(attributes or {})
        if not patch.is_success:
            return Result.fail(patch.error)
        wire = default_attributes(field_type)
        wire.update(patch.value)
        wire["type"] = field_type
        wire["id"] = new_id()
        new_field = FormField.from_dict(wire)

        steps = [
            replace(s, field_ids=s.field_ids + [new_field.id]) if s.id == step.id else s
            for s in form.steps
        ]
        return Result.ok(replace(form, fields=form.fields + [new_field], steps=steps))

    def update_field(self, form: Optional[FormDocument], field_id: str, patch: Dict[str, Any]) -> Result[FormDocument]:
        if form is None:
            return Result.fail(NO_FORM)
        target = form.find_field(field_id)
        if target is None:
            return Result.miss(f"Field '{field_id}' not found.")
        checked = _field_patch(patch or {})
        if not checked.is_success:
            return Result.fail(checked.error)
        changes = checked.value
        if changes.pop("type", target.type) != target.type:
            return Result.fail("A field's type cannot be changed; add a new field instead.")
        merged = FormField.from_dict({**target.to_dict(), **changes})
        fields = [merged if f.id == field_id else f for f in form.fields]
        return Result.ok(replace(form, fields=fields))

    def delete_field(self, form: Optional[FormDocument], field_id: str) -> Result[FormDocument]:
        if form is None:
            return Result.fail(NO_FORM)
        if form.find_field(field_id) is None:
            return Result.miss(f"Field '{field_id}' not found.")
        fields = [f for f in form.fields if f.id != field_id]
        steps = [replace(s, field_ids=[fid for fid in s.field_ids if fid != field_id]) for s in form.steps]
        return Result.ok(replace(form, fields=fields, steps=steps))

    def reorder_fields(self, form: Optional[FormDocument], old_index: int, new_index: int) -> Result[FormDocument]:
        if form is None:
            return Result.fail(NO_FORM)
        step = form.current_step
        if step is None:
            return Result.fail("No current step to reorder.")
        size = len(step.field_ids)
        if not (0 <= old_index < size and 0 <= new_index < size):
            return Result.miss(f"Reorder indices ({old_index}, {new_index}) out of range for {size} fields.")
        if old_index == new_index:
            return Result.miss("Field is already at that position.")
        moved = array_move(step.field_ids, old_index, new_index)
        steps = [replace(s, field_ids=moved) if s.id == step.id else s for s in form.steps]
        return Result.ok(replace(form, steps=steps))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def add_step(self, form: Optional[FormDocument]) -> Result[FormDocument]:
        if form is None:
            return Result.fail(NO_FORM)
        step = Step(id=new_id(), name=step_name(len(form.steps) + 1), field_ids=[])
        return Result.ok(replace(form, steps=form.steps + [step], current_step_id=step.id))

    def update_step(self, form: Optional[FormDocument], step_id: str, patch: Dict[str, Any]) -> Result[FormDocument]:
        if form is None:
            return Result.fail(NO_FORM)
        target = form.find_step(step_id)
        if target is None:
            return Result.miss(f"Step '{step_id}' not found.")

        patch = patch or {}
        changes: Dict[str, Any] = {}
        if "name" in patch:
            changes["name"] = "" if patch["name"] is None else str(patch["name"])
        field_ids = patch.get("fieldIds", patch.get("field_ids"))
        if field_ids is not None:
            dangling = unknown_field_ids(form, field_ids)
            if dangling:
                return Result.fail(f"Step cannot reference unknown fields: {dangling}.")
            changes["field_ids"] = list(field_ids)
        if not changes:
            return Result.fail("Nothing to update: expected name or fieldIds.")

        steps = [replace(s, **changes) if s.id == step_id else s for s in form.steps]
        return Result.ok(replace(form, steps=steps))

    def delete_step(self, form: Optional[FormDocument], step_id: str) -> Result[FormDocument]:
        """
        Remove a step and hand its fields to the step that becomes current:
        the first remaining step when the deleted step was current, otherwise
        the step that already was current.
        """
        if form is None:
            return Result.fail(NO_FORM)
        if len(form.steps) <= 1:
            return Result.fail("Cannot delete the last step.")
        doomed = form.find_step(step_id)
        if doomed is None:
            return Result.miss(f"Step '{step_id}' not found.")

        remaining = [s for s in form.steps if s.id != step_id]
        target_id = remaining[0].id if form.current_step_id == step_id else form.current_step_id
        index = next((i for i, s in enumerate(remaining) if s.id == target_id), 0)
        target = remaining[index]
        transferred = [fid for fid in doomed.field_ids if fid not in target.field_ids]
        remaining[index] = replace(target, field_ids=target.field_ids + transferred)

        return Result.ok(replace(form, steps=remaining, current_step_id=target.id))

    def set_current_step(self, form: Optional[FormDocument], step_id: str) -> Result[FormDocument]:
        """Navigation only; callers must not record this in history."""
        if form is None:
            return Result.fail(NO_FORM)
        if form.find_step(step_id) is None:
            return Result.miss(f"Step '{step_id}' not found.")
        return Result.ok(replace(form, current_step_id=step_id))
