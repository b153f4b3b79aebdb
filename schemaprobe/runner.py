"""Run one discovery against a target endpoint.

Shared by the command-line tool and the HTTP service.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from .discovery import (
    DeepSeekReasoningEngine,
    DiscoveryAgent,
    DiscoveryError,
    DiscoveryRequest,
    DiscoverySession,
    ProbeTransport,
)
from .discovery.reasoning import ReasoningEngine

logger = logging.getLogger(__name__)


def build_request(
    url: str,
    method: str | None = None,
    headers: dict[str, str] | None = None,
    initial_body: dict[str, Any] | None = None,
    max_iterations: int | None = None,
    config: dict[str, Any] | None = None,
) -> DiscoveryRequest:
    """Build a discovery request, filling unset values with defaults.

    A ``max_iterations`` of 0 or None means the configured default.
    """
    default_iterations = (config or {}).get("discovery", {}).get("max_iterations", 10)
    return DiscoveryRequest(
        url=url,
        method=(method or "POST").upper(),
        headers=dict(headers or {}),
        initial_body=dict(initial_body or {}),
        max_iterations=max_iterations or default_iterations,
    )


async def run_discovery(
    request: DiscoveryRequest,
    config: dict[str, Any],
    transport: ProbeTransport,
    reasoning: ReasoningEngine | None = None,
) -> DiscoverySession:
    """Run discovery and capture the outcome in a session.

    Args:
        request: Target endpoint and iteration budget
        config: Loaded configuration
        transport: Shared probe transport
        reasoning: Reasoning engine, built from config when omitted

    Returns:
        DiscoverySession holding either the schema or the failure
    """
    session = DiscoverySession(request=request)
    discovery_config = config.get("discovery", {})

    try:
        engine = reasoning or DeepSeekReasoningEngine.from_config(config.get("reasoning", {}))
        agent = DiscoveryAgent(
            request,
            engine,
            transport,
            complete_on_first_success=discovery_config.get("complete_on_first_success", True),
            server_generated_fields=discovery_config.get(
                "server_generated_fields",
                ["id", "isActive", "createdAt", "updatedAt"],
            ),
        )
        try:
            session.schema = await agent.run()
        finally:
            session.iterations = agent.state.iterations
            session.probes = list(agent.state.probes)
    except DiscoveryError as e:
        logger.error("Discovery failed for %s %s: %s", request.method, request.url, e)
        session.failure = e

    session.completed_at = datetime.now(timezone.utc)
    return session
