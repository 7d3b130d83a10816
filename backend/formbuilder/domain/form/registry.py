"""Field registry: the palette of field types and the attributes each one starts with."""
from __future__ import annotations
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FieldTypeInfo:
    type: str
    label: str
    icon: str  # icon name in the front end's icon set
    default_attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "label": self.label,
            "icon": self.icon,
            "defaultAttributes": copy.deepcopy(self.default_attributes),
        }


# Palette order matters: the builder sidebar lists types in this order.
FIELD_TYPES: Dict[str, FieldTypeInfo] = {
    "TEXT": FieldTypeInfo(
        type="TEXT",
        label="Text Input",
        icon="type",
        default_attributes={
            "label": "Text Field",
            "placeholder": "Enter text",
            "required": False,
            "helpText": "",
            "minLength": 0,
            "maxLength": 255,
            "pattern": "",
        },
    ),
    "TEXTAREA": FieldTypeInfo(
        type="TEXTAREA",
        label="Textarea",
        icon="pilcrow",
        default_attributes={
            "label": "Textarea Field",
            "placeholder": "Enter longer text",
            "required": False,
            "helpText": "",
            "rows": 3,
            "minLength": 0,
            "maxLength": 1000,
        },
    ),
    "DROPDOWN": FieldTypeInfo(
        type="DROPDOWN",
        label="Dropdown",
        icon="list",
        default_attributes={
            "label": "Dropdown Field",
            "required": False,
            "helpText": "",
            "options": [
                {"value": "option1", "label": "Option 1"},
                {"value": "option2", "label": "Option 2"},
            ],
        },
    ),
    "CHECKBOX": FieldTypeInfo(
        type="CHECKBOX",
        label="Checkbox",
        icon="check-square",
        default_attributes={
            "label": "Checkbox Field",
            "required": False,
            "helpText": "",
            "options": [{"value": "choice1", "label": "Choice 1", "checked": False}],
        },
    ),
    "DATE": FieldTypeInfo(
        type="DATE",
        label="Date Picker",
        icon="calendar-days",
        default_attributes={"label": "Date Field", "required": False, "helpText": ""},
    ),
    "FILE": FieldTypeInfo(
        type="FILE",
        label="File Upload",
        icon="file-text",
        default_attributes={
            "label": "File Upload",
            "required": False,
            "helpText": "",
            "multiple": False,
            "accept": "*",
        },
    ),
}


def describe(type_tag: str) -> Optional[FieldTypeInfo]:
    """Return the registry entry for ``type_tag``, or None if the tag is unknown."""
    return FIELD_TYPES.get(type_tag)


def default_attributes(type_tag: str) -> Dict[str, Any]:
    """A private copy of the defaults, so fields never share state with the registry."""
    info = describe(type_tag)
    if info is None:
        return {}
    return copy.deepcopy(info.default_attributes)


def catalog() -> List[FieldTypeInfo]:
    return list(FIELD_TYPES.values())
