"""Black-box request schema discovery.

Iteratively probes an HTTP endpoint to learn its request body:
- Required and optional fields
- Semantic field types and formats
- Single-object versus array/batch payload shape
"""

from .agent import DiscoveryAgent
from .body_builder import ProbeBodyBuilder
from .error_analyzer import ErrorAnalyzer
from .errors import (
    ActionParseError,
    DiscoveryError,
    IterationLimitExceeded,
    ProbeTransportError,
    ReasoningError,
    ReasoningSetupError,
)
from .models import DiscoveredSchema, DiscoveryRequest, FieldKnowledge, FieldTestStatus
from .pacing import ProbePacer
from .reasoning import DeepSeekReasoningEngine
from .report_generator import DiscoverySession, ReportGenerator
from .transport import ProbeTransport
from .type_inferrer import TypeInferrer, infer_type

__all__ = [
    "ActionParseError",
    "DeepSeekReasoningEngine",
    "DiscoveredSchema",
    "DiscoveryAgent",
    "DiscoveryError",
    "DiscoveryRequest",
    "DiscoverySession",
    "ErrorAnalyzer",
    "FieldKnowledge",
    "FieldTestStatus",
    "IterationLimitExceeded",
    "ProbeBodyBuilder",
    "ProbePacer",
    "ProbeTransport",
    "ProbeTransportError",
    "ReasoningError",
    "ReasoningSetupError",
    "ReportGenerator",
    "TypeInferrer",
    "infer_type",
]
