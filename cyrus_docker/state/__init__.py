"""
State module - ~/.cyrus-docker/state.json
"""

from cyrus_docker.state.models import STATE_VERSION, RunState
from cyrus_docker.state.store import StateStore

__all__ = [
    "RunState",
    "STATE_VERSION",
    "StateStore",
]
