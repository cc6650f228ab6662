"""Request orchestration over a rotating credential pool."""

from .budget import grow_budget, output_budget
from .classify import classify_error, describe_failure, retry_after_hint
from .credentials import CredentialPool, CredentialSlot
from .orchestrator import GenerationOrchestrator, orchestrate_generation

__all__ = [
    "CredentialPool",
    "CredentialSlot",
    "GenerationOrchestrator",
    "classify_error",
    "describe_failure",
    "grow_budget",
    "orchestrate_generation",
    "output_budget",
    "retry_after_hint",
]
