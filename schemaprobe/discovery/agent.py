"""Discovery loop.

Drives one discovery run as an explicit state machine:

    INIT -> PROPOSING -> EXECUTING -> {SUCCEEDED, FAILED} -> PROPOSING | DONE

Every PROPOSING step consumes one iteration. Probe transport failures and
target API validation errors feed the conversation and the loop continues;
reasoning, parse and iteration-budget failures end the run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from .body_builder import ProbeBodyBuilder
from .completion import build_schema, field_status_message, incomplete_fields_message, is_complete
from .error_analyzer import ErrorAnalyzer
from .errors import IterationLimitExceeded, ProbeTransportError
from .models import (
    ActionType,
    DiscoveredSchema,
    DiscoveryRequest,
    JsonObject,
    JsonValue,
    ProbeRecord,
    ProbeResponse,
)
from .prompts import (
    STRATEGY_PROMPT,
    error_response_message,
    task_statement,
    transport_failure_message,
)
from .reasoning import ReasoningEngine, parse_action
from .state import DiscoveryState, Phase
from .type_inferrer import TypeInferrer

SERVER_GENERATED_FIELDS = ("id", "isActive", "createdAt", "updatedAt")


class ProbeSender(Protocol):
    """Transport contract used by the discovery loop."""

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: JsonValue = None,
    ) -> ProbeResponse: ...


class DiscoveryAgent:
    """Discover the request schema of one endpoint.

    Provides:
    - Conversation management with the reasoning engine
    - Probe execution through the body builder and transport
    - Field knowledge updates from successes and errors
    - Completion gating and schema assembly
    """

    def __init__(
        self,
        request: DiscoveryRequest,
        reasoning: ReasoningEngine,
        transport: ProbeSender,
        complete_on_first_success: bool = True,
        server_generated_fields: Iterable[str] = SERVER_GENERATED_FIELDS,
        type_inferrer: TypeInferrer | None = None,
        error_analyzer: ErrorAnalyzer | None = None,
        body_builder: ProbeBodyBuilder | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize discovery agent.

        Args:
            request: Target endpoint and iteration budget
            reasoning: Engine proposing the next action
            transport: Probe sender
            complete_on_first_success: End the run on the first 2xx probe
            server_generated_fields: Response fields never marked required
            type_inferrer: Value classifier
            error_analyzer: Error response miner
            body_builder: Probe payload shaper
            logger: Logger for the run
        """
        self.request = request
        self.reasoning = reasoning
        self.transport = transport
        self.complete_on_first_success = complete_on_first_success
        self.server_generated_fields = tuple(server_generated_fields)
        self.logger = logger or logging.getLogger(__name__)
        self.type_inferrer = type_inferrer or TypeInferrer()
        self.error_analyzer = error_analyzer or ErrorAnalyzer(self.logger)
        self.body_builder = body_builder or ProbeBodyBuilder(self.logger)

        self.state = DiscoveryState.start(request)
        self._handlers: dict[Phase, Callable[[DiscoveryState], Awaitable[Phase]]] = {
            Phase.PROPOSING: self._propose,
            Phase.EXECUTING: self._execute,
            Phase.SUCCEEDED: self._succeed,
            Phase.FAILED: self._fail,
        }

    async def run(self) -> DiscoveredSchema:
        """Run the discovery loop to completion.

        Returns:
            Discovered schema

        Raises:
            IterationLimitExceeded: Budget used up without a schema
            ReasoningError: Reasoning engine call failed
            ActionParseError: Reasoning reply was not a valid action
        """
        state = self.state
        self.logger.info("Starting discovery for %s %s", self.request.method, self.request.url)

        phase = self._initialize(state)
        while phase is not Phase.DONE:
            state.phase = phase
            phase = await self._handlers[phase](state)
        state.phase = Phase.DONE

        if state.schema is None:
            state.schema = build_schema(state.known_fields, state.minimal_body)
        return state.schema

    def _initialize(self, state: DiscoveryState) -> Phase:
        state.add_system_message(STRATEGY_PROMPT)
        message = task_statement(self.request.method, self.request.url, bool(state.current_body))
        self.logger.info("Initial message: %s", message)
        state.add_user_message(message)
        return Phase.PROPOSING

    async def _propose(self, state: DiscoveryState) -> Phase:
        if state.iterations >= self.request.max_iterations:
            self.logger.warning(
                "Max iterations (%d) reached without completing discovery",
                self.request.max_iterations,
            )
            raise IterationLimitExceeded(self.request.max_iterations)

        state.iterations += 1
        self.logger.info("=== Iteration %d/%d ===", state.iterations, self.request.max_iterations)

        content = await self.reasoning.complete(list(state.conversation))
        state.add_assistant_message(content)
        action = parse_action(content)
        self.logger.info(
            "Proposed action: %s body=%s (%s)",
            action.action.value,
            action.body,
            action.explanation,
        )

        if action.action is ActionType.COMPLETE:
            if is_complete(state.field_status):
                self.logger.info("Discovery complete, building final schema")
                state.schema = build_schema(state.known_fields, state.minimal_body)
                return Phase.DONE

            message = incomplete_fields_message(state.field_status)
            self.logger.info("Completion rejected: %s", message)
            state.add_system_message(message)
            return Phase.PROPOSING

        state.pending_action = action
        return Phase.EXECUTING

    async def _send(self, payload: JsonValue) -> ProbeResponse:
        return await self.transport.send(
            self.request.method,
            self.request.url,
            self.request.headers,
            payload,
        )

    async def _execute(self, state: DiscoveryState) -> Phase:
        body = state.pending_action.body
        state.pending_action = None

        plan = await self.body_builder.build(body, self.request.url, self._send)

        if plan.attempted_direct_array:
            state.probes.append(
                ProbeRecord(
                    iteration=state.iterations,
                    payload=plan.direct_payload,
                    status_code=plan.direct_response.status_code if plan.direct_response else None,
                    error=plan.direct_error,
                    duration_ms=plan.direct_response.duration_ms if plan.direct_response else 0.0,
                    wait_ms=plan.direct_response.wait_ms if plan.direct_response else 0.0,
                    direct_array=True,
                ),
            )

        if plan.response is not None:
            return self._record_response(state, plan.payload, plan.response)

        if plan.is_object:
            state.merge_current_body(plan.payload)

        self.logger.info("Executing HTTP request with body: %s", plan.payload)
        try:
            response = await self._send(plan.payload)
        except ProbeTransportError as e:
            message = transport_failure_message(e)
            self.logger.warning(message)
            state.probes.append(
                ProbeRecord(iteration=state.iterations, payload=plan.payload, error=str(e)),
            )
            state.add_system_message(message)
            return Phase.PROPOSING

        state.probes.append(
            ProbeRecord(
                iteration=state.iterations,
                payload=plan.payload,
                status_code=response.status_code,
                duration_ms=response.duration_ms,
                wait_ms=response.wait_ms,
            ),
        )
        return self._record_response(state, plan.payload, response)

    def _record_response(
        self,
        state: DiscoveryState,
        payload: JsonValue,
        response: ProbeResponse,
    ) -> Phase:
        state.last_payload = payload
        state.last_response = response
        if response.ok:
            self.logger.info("Request succeeded with status %d", response.status_code)
            return Phase.SUCCEEDED
        self.logger.info("Request failed with status %d", response.status_code)
        return Phase.FAILED

    async def _succeed(self, state: DiscoveryState) -> Phase:
        response_fields = _first_object(_decode_json(state.last_response.body))
        for name, value in response_fields.items():
            state.observe_field(name, value, self.type_inferrer.infer(value))

        request_fields = _first_object(state.last_payload)
        for name, value in request_fields.items():
            state.observe_field(name, value, self.type_inferrer.infer(value), required=True)

        for name in self.server_generated_fields:
            state.set_not_required(name)

        state.minimal_body = dict(request_fields)
        self.logger.info("Request body that succeeded: %s", state.last_payload)
        self._log_fields(state)

        if self.complete_on_first_success:
            state.schema = build_schema(state.known_fields, state.minimal_body)
            return Phase.DONE

        state.add_system_message(field_status_message(state.known_fields, state.field_status))
        return Phase.PROPOSING

    async def _fail(self, state: DiscoveryState) -> Phase:
        response = state.last_response
        self.error_analyzer.analyze_body(state, response.body)
        state.add_system_message(error_response_message(response.status_code, response.text))

        self._log_fields(state)
        status_message = field_status_message(state.known_fields, state.field_status)
        self.logger.info("Status update: %s", status_message)
        state.add_system_message(status_message)
        return Phase.PROPOSING

    def _log_fields(self, state: DiscoveryState) -> None:
        self.logger.info("Current known fields:")
        for name, info in sorted(state.known_fields.items()):
            status = state.field_status.get(name)
            self.logger.info(
                "- %s: type=%s, required=%s, tested=%s",
                name,
                info.type,
                info.required,
                status.optionality_tested if status else False,
            )


def _decode_json(body: bytes) -> JsonValue:
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        return None


def _first_object(value: JsonValue) -> JsonObject:
    """Return the object itself, or the first element of an array of objects."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return {}
