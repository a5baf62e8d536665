"""
Path resolution for cyrus-docker.

Two kinds of locations are involved:
- The bundled compose project (read-only once the package is installed)
- The user config directory (writable): state, env file, tools.yml and the
  generated Dockerfile

Nothing here creates directories; callers that write do so themselves.
"""

from pathlib import Path

CONFIG_DIR_NAME = ".cyrus-docker"


def get_package_dir() -> Path:
    """
    Get the cyrus_docker package directory.

    Returns:
        Path: Absolute path to cyrus_docker/ directory
    """
    # This file is at: cyrus_docker/core/paths.py
    return Path(__file__).parent.parent.resolve()


def get_docker_files_path() -> Path:
    """Get the path to the bundled Docker files directory."""
    return get_package_dir() / "docker" / "docker_files"


def get_default_config_dir() -> Path:
    """
    Get the default user config directory.

    The directory itself is not created here.

    Returns:
        Path: ~/.cyrus-docker
    """
    return Path.home() / CONFIG_DIR_NAME
