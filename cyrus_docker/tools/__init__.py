"""
Tools module - container tool customization via ~/.cyrus-docker/tools.yml
"""

from cyrus_docker.tools.config import ToolConfigResolver
from cyrus_docker.tools.dockerfile import render_dockerfile
from cyrus_docker.tools.models import ResolvedToolConfig, ToolConfig
from cyrus_docker.tools.presets import TOOL_PRESETS, PresetDefinition

__all__ = [
    "PresetDefinition",
    "ResolvedToolConfig",
    "TOOL_PRESETS",
    "ToolConfig",
    "ToolConfigResolver",
    "render_dockerfile",
]
