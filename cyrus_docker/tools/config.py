"""
Tool configuration service

Loads ~/.cyrus-docker/tools.yml, expands presets into package lists and
fingerprints the raw file so a built image can be checked for staleness.
"""

import hashlib
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from cyrus_docker.tools.dockerfile import render_dockerfile
from cyrus_docker.tools.models import ResolvedToolConfig, ToolConfig
from cyrus_docker.tools.presets import TOOL_PRESETS

logger = logging.getLogger(__name__)

TOOLS_CONFIG_FILENAME = "tools.yml"

# Hex characters kept from the SHA-256 digest
HASH_LENGTH = 16


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


class ToolConfigResolver:
    """
    Manages tool configuration for container customization

    Example:
        resolver = ToolConfigResolver(settings.config_dir)
        config = resolver.read_config()
        if config:
            resolved = resolver.resolve_config(config)
    """

    def __init__(self, config_dir: Path):
        self.config_dir = config_dir
        self.config_file = config_dir / TOOLS_CONFIG_FILENAME

    def has_config(self) -> bool:
        """Check if tools.yml exists"""
        return self.config_file.exists()

    def read_config(self) -> ToolConfig | None:
        """
        Read and validate tools.yml

        Returns:
            ToolConfig, or None if the file is missing or invalid
        """
        if not self.has_config():
            return None

        try:
            with open(self.config_file, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to parse {self.config_file}: {e}")
            return None

        if data is None:
            data = {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {self.config_file}: expected a mapping, got {type(data).__name__}")
            return None

        try:
            config = ToolConfig.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid tool configuration in {self.config_file}: {e}")
            return None

        logger.debug(f"Loaded tool config from {self.config_file}")
        return config

    def write_config(self, config: ToolConfig) -> None:
        """
        Write tools.yml

        Args:
            config: Configuration to save
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(config.to_yaml_dict(), f, sort_keys=False, width=float("inf"))
        logger.info(f"Configuration saved to {self.config_file}")

    def resolve_config(self, config: ToolConfig) -> ResolvedToolConfig:
        """
        Expand presets and merge user entries into a single resolved config

        Presets are applied in list order, user entries after them. Package
        lists are deduplicated; commands are kept exactly as listed.

        Args:
            config: Raw tool configuration

        Returns:
            ResolvedToolConfig
        """
        resolved = ResolvedToolConfig(custom_dockerfile=config.custom_dockerfile)

        for preset_name in config.presets:
            definition = TOOL_PRESETS.get(preset_name)
            if definition is None:
                logger.warning(f"Unknown preset: {preset_name}")
                continue
            resolved.apt.extend(definition.apt)
            resolved.npm.extend(definition.npm)
            resolved.pip.extend(definition.pip)
            resolved.cargo.extend(definition.cargo)
            resolved.commands.extend(definition.commands)

        resolved.apt.extend(config.apt)
        resolved.npm.extend(config.npm)
        resolved.pip.extend(config.pip)
        resolved.cargo.extend(config.cargo)
        resolved.commands.extend(config.commands)

        resolved.apt = _dedupe(resolved.apt)
        resolved.npm = _dedupe(resolved.npm)
        resolved.pip = _dedupe(resolved.pip)
        resolved.cargo = _dedupe(resolved.cargo)

        return resolved

    def load_resolved(self) -> ResolvedToolConfig | None:
        """Read and resolve tools.yml in one step; None when there is no usable config."""
        config = self.read_config()
        if config is None:
            return None
        return self.resolve_config(config)

    @staticmethod
    def generate_dockerfile(config: ResolvedToolConfig, base_image: str) -> str:
        """Render the Dockerfile for a resolved configuration"""
        return render_dockerfile(config, base_image)

    @staticmethod
    def has_tools(config: ResolvedToolConfig) -> bool:
        """Check if the resolved config has anything to install"""
        return bool(
            config.apt
            or config.npm
            or config.pip
            or config.cargo
            or config.commands
            or config.custom_dockerfile is not None
        )

    @staticmethod
    def available_presets() -> list[tuple[str, str, str]]:
        """
        List the preset catalog

        Returns:
            List of (key, name, description)
        """
        return [(key, preset.name, preset.description) for key, preset in TOOL_PRESETS.items()]

    def get_config_hash(self) -> str | None:
        """
        Fingerprint the raw tools.yml bytes

        Returns:
            First 16 hex characters of the SHA-256 digest, or None if there is
            no config file
        """
        if not self.has_config():
            return None

        try:
            content = self.config_file.read_bytes()
        except OSError as e:
            logger.debug(f"Could not read {self.config_file}: {e}")
            return None

        return hashlib.sha256(content).hexdigest()[:HASH_LENGTH]
