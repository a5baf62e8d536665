"""
Application context

Builds every service from one Settings object so the whole tool can be
pointed at another config or compose directory (tests use tmp_path).
"""

import logging
import shutil
from dataclasses import dataclass

from cyrus_docker.core.config import Settings, get_settings
from cyrus_docker.core.exceptions import ConfigurationError, PrerequisiteError
from cyrus_docker.docker.container import ContainerController
from cyrus_docker.docker.env_file import EnvFileStore
from cyrus_docker.state.store import StateStore
from cyrus_docker.tools.config import ToolConfigResolver
from cyrus_docker.tunnel.ngrok import TunnelController

logger = logging.getLogger(__name__)

ENV_TEMPLATE_FILENAME = ".env.docker.example"


@dataclass
class Prerequisites:
    """Result of the host tool checks"""

    docker: bool
    docker_compose: bool
    ngrok: bool

    @property
    def all_met(self) -> bool:
        return self.docker and self.docker_compose and self.ngrok

    @property
    def missing(self) -> list[str]:
        names = []
        if not self.docker:
            names.append("Docker")
        if not self.docker_compose:
            names.append("Docker Compose")
        if not self.ngrok:
            names.append("ngrok")
        return names


class AppContext:
    """Services shared by all commands"""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

        self.state = StateStore(self.settings.config_dir)
        self.env_file = EnvFileStore(
            self.settings.env_file,
            self.settings.docker_dir / ENV_TEMPLATE_FILENAME,
        )
        self.docker = ContainerController(
            docker_dir=self.settings.docker_dir,
            config_dir=self.settings.config_dir,
            env_file=self.settings.env_file,
            server_port=self.settings.server_port,
        )
        self.tunnel = TunnelController(
            api_url=self.settings.ngrok_api_url,
            binary=self.settings.ngrok_binary,
        )
        self.tools = ToolConfigResolver(self.settings.config_dir)

    def check_ngrok(self) -> bool:
        return shutil.which(self.settings.ngrok_binary) is not None

    def check_prerequisites(self) -> Prerequisites:
        """Probe docker, docker compose and ngrok"""
        prereqs = Prerequisites(
            docker=self.docker.check_docker(),
            docker_compose=self.docker.check_docker_compose(),
            ngrok=self.check_ngrok(),
        )
        logger.debug(f"Prerequisites: {prereqs}")
        return prereqs

    def require_prerequisites(self) -> Prerequisites:
        """
        Raises:
            ConfigurationError: If the compose project directory is missing
            PrerequisiteError: If any host tool is missing
        """
        if not self.settings.docker_dir.is_dir():
            raise ConfigurationError(
                f"Docker directory not found: {self.settings.docker_dir}",
                recovery_hint="Reinstall cyrus-docker or set CYRUS_DOCKER_DOCKER_DIR",
            )

        prereqs = self.check_prerequisites()
        if not prereqs.all_met:
            raise PrerequisiteError(prereqs.missing)
        return prereqs
