"""Built-in form templates offered on the dashboard."""
from __future__ import annotations
from typing import Any, Callable, Dict, Optional

_NAME = "tpl-name"
_EMAIL = "tpl-email"
_MESSAGE = "tpl-message"
_STEP = "tpl-step-1"


def contact_us() -> Dict[str, Any]:
    """Name, Email and Message, all required, on a single step."""
    return {
        "id": "tpl-contact-us",
        "title": "Contact Us",
        "description": "Please fill out the form below to contact us.",
        "fields": [
            {
                "id": _NAME,
                "type": "TEXT",
                "label": "Name",
                "placeholder": "Enter your full name",
                "required": True,
                "helpText": "",
            },
            {
                "id": _EMAIL,
                "type": "TEXT",
                "label": "Email",
                "placeholder": "Enter your email address",
                "required": True,
                "helpText": "",
            },
            {
                "id": _MESSAGE,
                "type": "TEXTAREA",
                "label": "Message",
                "placeholder": "Enter your message",
                "required": True,
                "helpText": "",
                "rows": 4,
            },
        ],
        "steps": [{"id": _STEP, "name": "Step 1", "fieldIds": [_NAME, _EMAIL, _MESSAGE]}],
        "currentStepId": _STEP,
        "settings": {"theme": "default"},
    }


TEMPLATES: Dict[str, Callable[[], Dict[str, Any]]] = {
    "contact_us": contact_us,
}


def get_template(name: str) -> Optional[Dict[str, Any]]:
    factory = TEMPLATES.get(name)
    return factory() if factory else None
