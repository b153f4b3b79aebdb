"""Error response mining.

Extracts field evidence from target API error responses:
- Structured bodies: ``error``, ``errors`` and ``validation_errors`` members
- Free-text messages: required-field and invalid-type phrasings
- Type hints from per-field validation messages
"""

import json
import logging
import re
from collections.abc import Callable

from .state import DiscoveryState

_NAME = r"""['"]?(\w+)['"]?"""


class ErrorAnalyzer:
    """Mine error messages for requiredness and type evidence.

    Only writes to the field maps of the given state; performs no I/O.
    """

    # Ordered, first match wins
    TYPE_HINTS: tuple[tuple[str, str], ...] = (
        ("must be a number", "integer"),
        ("must be a string", "string"),
        ("must be a boolean", "boolean"),
        ("must be an array", "array"),
        ("must be an object", "object"),
        ("invalid email", "email"),
        ("invalid date", "date"),
    )

    REQUIRED_PATTERNS = (
        re.compile(rf"(?:field|parameter) {_NAME} is required", re.IGNORECASE),
        re.compile(rf"missing (?:required )?(?:field|parameter) {_NAME}", re.IGNORECASE),
    )
    INVALID_TYPE_PATTERN = re.compile(rf"invalid (?:value|type) for {_NAME}", re.IGNORECASE)

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize error analyzer.

        Args:
            logger: Logger for analysis traces
        """
        self.logger = logger or logging.getLogger(__name__)

    def analyze_body(self, state: DiscoveryState, raw: bytes | str) -> None:
        """Analyze a raw error response body.

        Decodes known structured shapes first and falls back to free text.

        Args:
            state: Discovery state to update
            raw: Response body as received
        """
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw

        try:
            payload = json.loads(text)
        except (json.JSONDecodeError, ValueError):
            payload = None

        if not isinstance(payload, dict):
            self.analyze_message(state, text)
            return

        error = payload.get("error")
        if isinstance(error, str) and error:
            self.analyze_message(state, error)

        errors = payload.get("errors")
        if isinstance(errors, list):
            for message in errors:
                if isinstance(message, str):
                    self.analyze_message(state, message)

        validation_errors = payload.get("validation_errors")
        if isinstance(validation_errors, dict):
            for field_name, message in validation_errors.items():
                if isinstance(message, str):
                    self.update_field_from_error(state, field_name, message)

    def analyze_message(self, state: DiscoveryState, message: str) -> None:
        """Apply the free-text patterns to one error message.

        Every pattern is tried; one message may match several.
        """
        handlers: list[tuple[re.Pattern[str], Callable[[str], None]]] = [
            (pattern, state.mark_field_required) for pattern in self.REQUIRED_PATTERNS
        ]
        handlers.append((self.INVALID_TYPE_PATTERN, state.mark_field_type_invalid))

        for pattern, handler in handlers:
            match = pattern.search(message)
            if match:
                self.logger.debug("Error pattern %r matched field '%s'", pattern.pattern, match[1])
                handler(match[1])

    def update_field_from_error(self, state: DiscoveryState, field_name: str, message: str) -> None:
        """Classify a per-field validation message.

        Args:
            state: Discovery state to update
            field_name: Field the message refers to
            message: Validation message text
        """
        lowered = message.lower()

        if "required" in lowered:
            state.mark_field_required(field_name)

        for phrase, type_tag in self.TYPE_HINTS:
            if phrase in lowered:
                self.logger.debug("Validation hint for '%s': %s", field_name, type_tag)
                state.set_field_type(field_name, type_tag)
                break
