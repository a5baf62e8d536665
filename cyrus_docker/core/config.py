"""
Configuration management

Centralized settings using Pydantic BaseSettings for type-safe configuration
with environment variable support.

Every service receives its directories explicitly from these settings, so a
test (or a second installation) can point the whole tool somewhere else
without touching the real home directory.
"""

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cyrus_docker.core.paths import get_default_config_dir, get_docker_files_path

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    cyrus-docker settings with environment variable support

    Settings can be overridden via environment variables:
    - CYRUS_DOCKER_CONFIG_DIR=/custom/config/dir
    - CYRUS_DOCKER_DOCKER_DIR=/path/to/compose/project
    - CYRUS_DOCKER_SERVER_PORT=3456
    """

    # Writable per-user directory (state.json, .env.docker, tools.yml)
    config_dir: Path = get_default_config_dir()

    # Compose project; defaults to the files bundled with the package
    docker_dir: Path = get_docker_files_path()

    # Cyrus server
    server_port: int = 3456

    # ngrok
    ngrok_binary: str = "ngrok"
    ngrok_api_port: int = 4040
    ngrok_max_retries: int = 30
    ngrok_retry_delay: float = 1.0

    # Container health gate
    health_timeout: float = 120.0
    health_poll_interval: float = 2.0

    # Logs
    default_log_lines: int = 100

    model_config = SettingsConfigDict(
        env_prefix="CYRUS_DOCKER_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("config_dir", "docker_dir")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return Path(value).expanduser()

    @property
    def ngrok_api_url(self) -> str:
        """ngrok local API endpoint listing active tunnels"""
        return f"http://localhost:{self.ngrok_api_port}/api/tunnels"

    @property
    def env_file(self) -> Path:
        return self.config_dir / ".env.docker"


# Singleton pattern for settings
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get application settings (singleton)

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        logger.debug(f"Loaded settings: config_dir={_settings.config_dir}, docker_dir={_settings.docker_dir}")
    return _settings
