"""Data model shared by the discovery components.

Holds:
- JSON value union used for proposed bodies and probe payloads
- Field knowledge and per-field test status
- Conversation messages and proposed actions
- Probe responses, probe history and the final discovered schema
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

JsonValue = Union[None, bool, int, float, str, list["JsonValue"], dict[str, "JsonValue"]]
JsonObject = dict[str, JsonValue]

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


class ActionType(str, Enum):
    """Actions the reasoning engine may propose."""

    MODIFY_FIELDS = "modify_fields"
    COMPLETE = "complete"


@dataclass
class Message:
    """Single role-tagged conversation message."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ProposedAction:
    """Next step proposed by the reasoning engine."""

    action: ActionType
    body: JsonObject = field(default_factory=dict)
    explanation: str = ""


@dataclass
class FieldKnowledge:
    """Accumulated belief about one request field.

    ``type`` stays ``None`` for stubs created from requiredness evidence only.
    """

    name: str
    type: str | None = None
    required: bool = False
    sample_value: JsonValue = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "sampleValue": self.sample_value,
        }


@dataclass
class FieldTestStatus:
    """Testing status of one field, keyed like FieldKnowledge."""

    discovered: bool = False
    type_verified: bool = False
    required: bool = False
    optionality_tested: bool = False


@dataclass
class DiscoveryRequest:
    """Target endpoint and limits for one discovery run."""

    url: str
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    initial_body: JsonObject = field(default_factory=dict)
    max_iterations: int = 10


@dataclass
class ProbeResponse:
    """Raw response of a probe sent to the target endpoint."""

    status_code: int
    body: bytes = b""
    headers: dict[str, list[str]] = field(default_factory=dict)
    duration_ms: float = 0.0
    wait_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass
class ProbeRecord:
    """History entry for a probe issued during a run."""

    iteration: int
    payload: JsonValue
    status_code: int | None = None
    error: str | None = None
    duration_ms: float = 0.0
    wait_ms: float = 0.0
    direct_array: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "payload": self.payload,
            "statusCode": self.status_code,
            "error": self.error,
            "durationMs": round(self.duration_ms, 2),
            "waitMs": round(self.wait_ms, 2),
            "directArray": self.direct_array,
        }


@dataclass
class DiscoveredSchema:
    """Final output of a discovery run."""

    fields: list[FieldKnowledge] = field(default_factory=list)
    minimal_request_body: JsonObject = field(default_factory=dict)

    def get(self, name: str) -> FieldKnowledge | None:
        """Look up a field by name."""
        return next((f for f in self.fields if f.name == name), None)

    @property
    def required_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.required]

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": [f.to_dict() for f in self.fields],
            "minimalRequestBody": self.minimal_request_body,
        }
