"""Agents for the Brand Agent Console."""

from .escalation import EscalationDetector
from .grounding_filter import GroundingFilter, root_domain
from .profile_synthesizer import ProfileSynthesizer
from .progress import ProgressReporter
from .response_resolver import ResponseResolver
from .strategies import (
    ResponseStrategy,
    StructuredResponseStrategy,
    TextScrubbingStrategy,
    create_response_strategy,
)

__all__ = [
    "EscalationDetector",
    "GroundingFilter",
    "root_domain",
    "ProfileSynthesizer",
    "ProgressReporter",
    "ResponseResolver",
    "ResponseStrategy",
    "StructuredResponseStrategy",
    "TextScrubbingStrategy",
    "create_response_strategy",
]
