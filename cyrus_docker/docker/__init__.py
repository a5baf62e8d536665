"""
Docker module - compose stack control for the Cyrus container

Manages the bundled docker_files compose project:
- Image builds, including tool layers from tools.yml
- Container lifecycle and health
- The .env.docker file handed to the container
"""

from cyrus_docker.docker.container import ContainerController, format_uptime
from cyrus_docker.docker.env_file import EnvFileStore
from cyrus_docker.docker.models import (
    ContainerHealth,
    ContainerStatus,
    EnvConfig,
    ImageStatus,
)

__all__ = [
    "ContainerController",
    "ContainerHealth",
    "ContainerStatus",
    "EnvConfig",
    "EnvFileStore",
    "ImageStatus",
    "format_uptime",
]
