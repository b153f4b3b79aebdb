"""Probe payload shaping.

Decides whether a proposed body is sent as a single object or as an array:
- Batch/bulk endpoints get the body wrapped in a one-element array
- A body with a single array-valued key is first tried as the bare array
- Everything else is sent unchanged
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .errors import ProbeTransportError
from .models import JsonObject, JsonValue, ProbeResponse

SendProbe = Callable[[JsonValue], Awaitable[ProbeResponse]]

BATCH_MARKERS = ("batch", "bulk")


@dataclass
class ProbePlan:
    """Payload to send, plus the direct-array attempt when one was made.

    ``response`` is set when the direct-array attempt was accepted and no
    further probe is needed.
    """

    payload: JsonValue
    response: ProbeResponse | None = None
    direct_payload: JsonValue = None
    direct_response: ProbeResponse | None = None
    direct_error: str | None = None

    @property
    def attempted_direct_array(self) -> bool:
        return self.direct_payload is not None

    @property
    def is_object(self) -> bool:
        return isinstance(self.payload, dict)


class ProbeBodyBuilder:
    """Shape proposed bodies into concrete probe payloads."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def is_batch_url(url: str) -> bool:
        lowered = url.lower()
        return any(marker in lowered for marker in BATCH_MARKERS)

    @staticmethod
    def single_array_value(body: JsonObject) -> tuple[str, list[JsonValue]] | None:
        """Return the key and list when the body is exactly one array field."""
        if len(body) != 1:
            return None
        key, value = next(iter(body.items()))
        if isinstance(value, list):
            return key, value
        return None

    async def build(self, proposed_body: JsonObject, url: str, send: SendProbe) -> ProbePlan:
        """Resolve the payload shape for a proposed body.

        Args:
            proposed_body: Body proposed by the reasoning engine
            url: Target endpoint URL
            send: Probe sender used for the direct-array attempt

        Returns:
            ProbePlan describing what to send (or what was already accepted)
        """
        if self.is_batch_url(url):
            item = proposed_body.get("item")
            payload: JsonValue = [item] if isinstance(item, dict) else [proposed_body]
            self.logger.info("Constructed array request body: %s", payload)
            return ProbePlan(payload=payload)

        array_field = self.single_array_value(proposed_body)
        if array_field is None:
            return ProbePlan(payload=proposed_body)

        key, items = array_field
        self.logger.info("Detected array payload with key '%s', trying both formats", key)
        plan = ProbePlan(payload=proposed_body, direct_payload=items)

        try:
            response = await send(items)
        except ProbeTransportError as e:
            plan.direct_error = str(e)
        else:
            plan.direct_response = response
            if response.status_code < 400:
                plan.payload = items
                plan.response = response
                return plan

        self.logger.info("Direct array failed, using wrapped format with key '%s'", key)
        return plan
