"""
Docker data models.

Contains dataclasses for container, image and environment configuration.
"""

from dataclasses import dataclass, fields
from typing import Literal

ContainerHealth = Literal["healthy", "unhealthy", "starting", "none"]

HEALTH_VALUES: tuple[str, ...] = ("healthy", "unhealthy", "starting", "none")


def normalize_health(status: str | None) -> ContainerHealth:
    """Map a Docker health string onto ContainerHealth; anything unknown is "none"."""
    if status in HEALTH_VALUES:
        return status  # type: ignore[return-value]
    return "none"


@dataclass
class ContainerStatus:
    """Cyrus container status, derived from a single docker inspect."""

    running: bool
    health: ContainerHealth = "none"
    container_id: str | None = None
    uptime_seconds: int | None = None


@dataclass
class ImageStatus:
    """Result of the image staleness check."""

    needs_rebuild: bool
    reason: str


@dataclass
class EnvConfig:
    """
    Values stored in .env.docker

    Field names match the variable names in the file, so a misspelt key is an
    AttributeError rather than a silently ignored line.
    """

    ANTHROPIC_API_KEY: str | None = None
    CLAUDE_CODE_OAUTH_TOKEN: str | None = None
    LINEAR_CLIENT_ID: str | None = None
    LINEAR_CLIENT_SECRET: str | None = None
    LINEAR_WEBHOOK_SECRET: str | None = None
    LINEAR_DIRECT_WEBHOOKS: str | None = None
    CYRUS_BASE_URL: str | None = None
    NGROK_AUTHTOKEN: str | None = None
    GIT_USER_NAME: str | None = None
    GIT_USER_EMAIL: str | None = None
    GITHUB_TOKEN: str | None = None
    CYRUS_SERVER_PORT: str | None = None
    CYRUS_HOST_PATH: str | None = None

    @classmethod
    def keys(cls) -> list[str]:
        """All known variable names, in declaration order."""
        return [f.name for f in fields(cls)]

    def items(self) -> list[tuple[str, str | None]]:
        return [(key, getattr(self, key)) for key in self.keys()]

    def to_dict(self) -> dict[str, str]:
        """Non-empty values only."""
        return {key: value for key, value in self.items() if value}

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> "EnvConfig":
        """Create from a KEY -> value mapping; unknown keys are dropped."""
        known = set(cls.keys())
        return cls(**{key: value for key, value in data.items() if key in known})
