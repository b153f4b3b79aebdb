"""Per-run discovery state aggregate.

One DiscoveryState is created per run and owned by the discovery loop. It
holds the conversation, the field maps, the evolving request body and the
probe history; nothing in it is shared between runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .models import (
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    ROLE_USER,
    DiscoveredSchema,
    DiscoveryRequest,
    FieldKnowledge,
    FieldTestStatus,
    JsonObject,
    JsonValue,
    Message,
    ProbeRecord,
    ProbeResponse,
    ProposedAction,
)


class Phase(str, Enum):
    """Discovery loop states."""

    INIT = "init"
    PROPOSING = "proposing"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DONE = "done"


@dataclass
class DiscoveryState:
    """Everything a discovery run knows and mutates."""

    request: DiscoveryRequest
    conversation: list[Message] = field(default_factory=list)
    known_fields: dict[str, FieldKnowledge] = field(default_factory=dict)
    field_status: dict[str, FieldTestStatus] = field(default_factory=dict)
    current_body: JsonObject = field(default_factory=dict)
    iterations: int = 0
    phase: Phase = Phase.INIT
    pending_action: ProposedAction | None = None
    last_payload: JsonValue = None
    last_response: ProbeResponse | None = None
    probes: list[ProbeRecord] = field(default_factory=list)
    minimal_body: JsonObject = field(default_factory=dict)
    schema: DiscoveredSchema | None = None

    @classmethod
    def start(cls, request: DiscoveryRequest) -> DiscoveryState:
        """Create the state for a new run seeded with the initial body."""
        return cls(request=request, current_body=dict(request.initial_body or {}))

    # Conversation

    def add_system_message(self, content: str) -> None:
        self.conversation.append(Message(ROLE_SYSTEM, content))

    def add_user_message(self, content: str) -> None:
        self.conversation.append(Message(ROLE_USER, content))

    def add_assistant_message(self, content: str) -> None:
        self.conversation.append(Message(ROLE_ASSISTANT, content))

    # Field knowledge

    def _knowledge(self, name: str) -> FieldKnowledge:
        info = self.known_fields.get(name)
        if info is None:
            info = FieldKnowledge(name=name)
            self.known_fields[name] = info
        return info

    def _status(self, name: str) -> FieldTestStatus:
        status = self.field_status.get(name)
        if status is None:
            status = FieldTestStatus(discovered=True)
            self.field_status[name] = status
        return status

    def mark_field_required(self, name: str) -> None:
        """Mark a field as required, creating a stub when it is unknown.

        Idempotent.
        """
        self._knowledge(name).required = True
        status = self._status(name)
        status.required = True
        status.discovered = True

    def mark_field_type_invalid(self, name: str) -> None:
        """Flag the field's current type as untrustworthy."""
        self._knowledge(name)
        self._status(name).type_verified = False

    def set_field_type(self, name: str, type_tag: str) -> None:
        """Apply an explicit type hint, overriding any earlier guess."""
        self._knowledge(name).type = type_tag
        self._status(name)

    def observe_field(
        self,
        name: str,
        value: JsonValue,
        type_tag: str,
        required: bool | None = None,
    ) -> FieldKnowledge:
        """Record a field value seen in a request or a response.

        An unset type is filled in; a set type is kept. ``required`` updates
        requiredness only when given.
        """
        info = self._knowledge(name)
        if info.type is None:
            info.type = type_tag
        if info.sample_value is None:
            info.sample_value = value

        status = self._status(name)
        status.discovered = True
        status.type_verified = True

        if required is not None:
            info.required = required
            status.required = required

        return info

    def set_not_required(self, name: str) -> None:
        """Clear requiredness for a field that is already known."""
        info = self.known_fields.get(name)
        if info is None:
            return
        info.required = False
        status = self.field_status.get(name)
        if status is not None:
            status.required = False

    def merge_current_body(self, body: JsonObject) -> None:
        """Merge the keys of an object-shaped payload into the current body."""
        self.current_body.update(body)
