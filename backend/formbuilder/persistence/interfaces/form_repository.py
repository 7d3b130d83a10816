"""Abstract persistence gateway for forms and their responses."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from formbuilder.domain.form.models import FormDocument, FormResponse
from formbuilder.persistence.subscriptions import SubscriptionHub


class GatewayError(Exception):
    """A persistence call failed (I/O, network, permissions...)."""


class FormRepository(ABC):
    """
    Forms are stored per owner as whole documents; ``save`` is an idempotent
    overwrite, so it is safe to call again before a previous save returned.
    Listeners get full snapshots after every write made through this gateway.
    """

    def __init__(self) -> None:
        self._hub = SubscriptionHub()

    @abstractmethod
    def save(self, owner_id: str, form: FormDocument) -> None:
        """Insert or overwrite the whole document."""
        ...

    @abstractmethod
    def get_by_id(self, owner_id: str, form_id: str) -> Optional[FormDocument]:
        """Return the stored document, or None."""
        ...

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[FormDocument]:
        """Return every form of ``owner_id``, most recently updated first."""
        ...

    @abstractmethod
    def delete(self, owner_id: str, form_id: str) -> bool:
        """Delete the form record only (responses are left alone). True if it existed."""
        ...

    @abstractmethod
    def append_response(self, owner_id: str, response: FormResponse) -> None:
        """Store a submitted response under the form's owner."""
        ...

    @abstractmethod
    def list_responses(self, owner_id: str, form_id: str) -> List[FormResponse]:
        """Return all responses for a form, in storage order."""
        ...

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe_to_list(
        self, owner_id: str, on_change: Callable[[List[FormDocument]], None]
    ) -> Callable[[], None]:
        """Deliver the current list now and again after each write; returns an unsubscribe callable."""
        unsubscribe = self._hub.subscribe(self._list_topic(owner_id), on_change)
        on_change(self.list_for_owner(owner_id))
        return unsubscribe

    def subscribe_to_responses(
        self, owner_id: str, form_id: str, on_change: Callable[[List[FormResponse]], None]
    ) -> Callable[[], None]:
        unsubscribe = self._hub.subscribe(self._responses_topic(owner_id, form_id), on_change)
        on_change(self.list_responses(owner_id, form_id))
        return unsubscribe

    def _publish_list(self, owner_id: str) -> None:
        topic = self._list_topic(owner_id)
        if self._hub.has_listeners(topic):
            self._hub.publish(topic, self.list_for_owner(owner_id))

    def _publish_responses(self, owner_id: str, form_id: str) -> None:
        topic = self._responses_topic(owner_id, form_id)
        if self._hub.has_listeners(topic):
            self._hub.publish(topic, self.list_responses(owner_id, form_id))

    @staticmethod
    def _list_topic(owner_id: str) -> str:
        return f"forms:{owner_id}"

    @staticmethod
    def _responses_topic(owner_id: str, form_id: str) -> str:
        return f"responses:{owner_id}:{form_id}"
