"""Form domain models: pure Python, no DB or HTTP dependencies.

The stored/wire document uses camelCase keys (``fieldIds``, ``helpText``,
``currentStepId``...). The dataclasses use snake_case and convert at the edges
with ``to_dict`` / ``from_dict``.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# wire key -> attribute name, for FormField
FIELD_WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "type": "type",
    "label": "label",
    "placeholder": "placeholder",
    "required": "required",
    "helpText": "help_text",
    "rows": "rows",
    "options": "options",
    "multiple": "multiple",
    "accept": "accept",
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
}
_FIELD_ATTR_KEYS = {attr: wire for wire, attr in FIELD_WIRE_KEYS.items()}


def to_wire_key(key: str) -> str:
    """Accept either spelling of a field attribute and return the wire key."""
    return _FIELD_ATTR_KEYS.get(key, key)


def _as_bool(value: Any) -> bool:
    """Stored documents may carry "true"/"false" strings."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


@dataclass
class FieldOption:
    value: str
    label: str
    checked: Optional[bool] = None

    def to_dict(self) -> dict:
        data = {"value": self.value, "label": self.label}
        if self.checked is not None:
            data["checked"] = self.checked
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "FieldOption":
        if isinstance(data, FieldOption):
            return cls(data.value, data.label, data.checked)
        if not isinstance(data, dict):
            return cls(value=str(data), label=str(data))
        value = str(data.get("value", ""))
        return cls(value=value, label=str(data.get("label", value)), checked=data.get("checked"))


@dataclass
class FormField:
    id: str
    type: str
    label: str = ""
    placeholder: str = ""
    required: bool = False
    help_text: str = ""
    rows: Optional[int] = None
    options: Optional[List[FieldOption]] = None
    multiple: Optional[bool] = None
    accept: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {}
        for wire, attr in FIELD_WIRE_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            if attr == "options":
                value = [opt.to_dict() for opt in value]
            data[wire] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "FormField":
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            attr = FIELD_WIRE_KEYS.get(key) or (key if key in _FIELD_ATTR_KEYS else None)
            if attr is None:
                continue
            if attr == "options" and value is not None:
                value = [FieldOption.from_dict(opt) for opt in value]
            kwargs[attr] = value
        kwargs.setdefault("id", "")
        kwargs.setdefault("type", "TEXT")
        for text_attr in ("label", "placeholder", "help_text"):
            if kwargs.get(text_attr) is None:
                kwargs[text_attr] = ""
        kwargs["required"] = _as_bool(kwargs.get("required", False))
        return cls(**kwargs)


@dataclass
class Step:
    id: str
    name: str
    field_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "fieldIds": list(self.field_ids)}

    @classmethod
    def from_dict(cls, data: dict) -> "Step":
        field_ids = data.get("fieldIds", data.get("field_ids")) or []
        return cls(id=data.get("id", ""), name=data.get("name", ""), field_ids=list(field_ids))


@dataclass
class FormDocument:
    id: str
    title: str = "Untitled Form"
    description: str = ""
    fields: List[FormField] = field(default_factory=list)
    steps: List[Step] = field(default_factory=list)
    current_step_id: Optional[str] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    # ------------------------------------------------------------------
    # Lookups (never raise; a miss is None)
    # ------------------------------------------------------------------
    def find_field(self, field_id: Optional[str]) -> Optional[FormField]:
        return next((f for f in self.fields if f.id == field_id), None)

    def find_step(self, step_id: Optional[str]) -> Optional[Step]:
        return next((s for s in self.steps if s.id == step_id), None)

    @property
    def current_step(self) -> Optional[Step]:
        return self.find_step(self.current_step_id)

    def fields_in_step(self, step: Step) -> List[FormField]:
        by_id = {f.id: f for f in self.fields}
        return [by_id[fid] for fid in step.field_ids if fid in by_id]

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "fields": [f.to_dict() for f in self.fields],
            "steps": [s.to_dict() for s in self.steps],
            "currentStepId": self.current_step_id,
            "settings": dict(self.settings),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FormDocument":
        return cls(
            id=data.get("id") or "",
            title=data.get("title") if data.get("title") is not None else "Untitled Form",
            description=data.get("description") or "",
            fields=[FormField.from_dict(f) for f in data.get("fields") or []],
            steps=[Step.from_dict(s) for s in data.get("steps") or []],
            current_step_id=data.get("currentStepId", data.get("current_step_id")),
            settings=dict(data.get("settings") or {}),
            created_at=data.get("createdAt") or data.get("created_at") or "",
            updated_at=data.get("updatedAt") or data.get("updated_at") or "",
        )


@dataclass
class FormResponse:
    id: str
    form_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    submitted_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "formId": self.form_id,
            "submittedAt": self.submitted_at,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FormResponse":
        return cls(
            id=data.get("id", ""),
            form_id=data.get("formId", data.get("form_id", "")),
            data=dict(data.get("data") or {}),
            submitted_at=data.get("submittedAt", data.get("submitted_at", "")) or "",
        )
