"""Exceptions raised during a discovery run.

Only setup, reasoning, parse and iteration-budget errors reach callers.
Transport errors are absorbed by the discovery loop.
"""


class DiscoveryError(Exception):
    """Base class for discovery failures."""


class ReasoningSetupError(DiscoveryError):
    """Reasoning engine cannot be created (missing key or configuration)."""


class ReasoningError(DiscoveryError):
    """Reasoning engine call failed."""


class ActionParseError(DiscoveryError):
    """Reasoning reply does not contain a valid action."""


class ProbeTransportError(DiscoveryError):
    """Probe could not be sent or its response could not be read."""


class IterationLimitExceeded(DiscoveryError):
    """Run used every iteration without producing a schema."""

    def __init__(self, max_iterations: int) -> None:
        self.max_iterations = max_iterations
        super().__init__(
            f"max iterations ({max_iterations}) reached without finalizing schema",
        )
