"""
Orchestrator module - command flows over the docker, tunnel, tools and state services
"""

from cyrus_docker.orchestrator.context import AppContext, Prerequisites
from cyrus_docker.orchestrator.lifecycle import (
    BuildOutcome,
    CyrusStatus,
    Orchestrator,
    StartResult,
    StopResult,
)

__all__ = [
    "AppContext",
    "BuildOutcome",
    "CyrusStatus",
    "Orchestrator",
    "Prerequisites",
    "StartResult",
    "StopResult",
]
