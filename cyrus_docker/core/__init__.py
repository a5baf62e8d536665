"""
Core module - configuration, paths and the exception hierarchy

Provides foundational components used across cyrus-docker.
"""

from cyrus_docker.core.config import Settings, get_settings
from cyrus_docker.core.exceptions import (
    ConfigurationError,
    ContainerHealthError,
    CyrusDockerError,
    DockerCommandError,
    HealthCheckTimeoutError,
    NotRunningError,
    PrerequisiteError,
    TunnelError,
    TunnelTimeoutError,
    WaitTimeoutError,
)

__all__ = [
    "Settings",
    "get_settings",
    "ConfigurationError",
    "ContainerHealthError",
    "CyrusDockerError",
    "DockerCommandError",
    "HealthCheckTimeoutError",
    "NotRunningError",
    "PrerequisiteError",
    "TunnelError",
    "TunnelTimeoutError",
    "WaitTimeoutError",
]
