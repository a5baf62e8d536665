"""
Container Controller - docker / docker compose lifecycle for the Cyrus stack

Wraps every docker invocation the CLI needs: build, up, down, exec, inspect
and logs. Query methods never raise; they map any failure to a safe default.
"""

import json
import logging
import os
import subprocess
import time
from datetime import UTC, datetime
from pathlib import Path

from cyrus_docker.core.exceptions import (
    ContainerHealthError,
    DockerCommandError,
    HealthCheckTimeoutError,
)
from cyrus_docker.docker.env_file import EnvFileStore
from cyrus_docker.docker.models import ContainerStatus, ImageStatus, normalize_health
from cyrus_docker.tools.config import ToolConfigResolver
from cyrus_docker.tools.models import ResolvedToolConfig

logger = logging.getLogger(__name__)

# Default timeout for short docker queries (seconds)
QUERY_TIMEOUT = 30


def _parse_docker_timestamp(value: str) -> datetime:
    """
    Parse a Docker RFC 3339 timestamp.

    Docker reports nanoseconds ("2024-01-01T10:00:00.123456789Z"), which
    datetime.fromisoformat cannot take, so the fraction is cut to microseconds.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    if "." in value:
        head, _, rest = value.partition(".")
        digits = ""
        for char in rest:
            if not char.isdigit():
                break
            digits += char
        tz = rest[len(digits):]
        value = f"{head}.{digits[:6].ljust(6, '0')}{tz}"

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_uptime(seconds: int) -> str:
    """Format uptime seconds as "2h 5m" or "7m"."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


class ContainerController:
    """
    Manages the Cyrus Docker Compose stack.

    The compose project (docker-compose.yml, Dockerfile, scripts) may live in
    a read-only install directory; everything generated goes to config_dir.
    """

    IMAGE_NAME = "cyrus-ai/cyrus"
    CONTAINER_NAME = "cyrus"
    SERVICE_NAME = "cyrus"
    TOOLS_HASH_LABEL = "cyrus-docker.tools-hash"
    CUSTOM_DOCKERFILE_NAME = "Dockerfile.custom"

    def __init__(
        self,
        docker_dir: Path,
        config_dir: Path,
        env_file: Path | None = None,
        server_port: int | None = None,
    ):
        self.docker_dir = docker_dir
        self.config_dir = config_dir
        self.env_file = env_file
        self.server_port = server_port

    @property
    def image_tag(self) -> str:
        return f"{self.IMAGE_NAME}:latest"

    @property
    def base_image_tag(self) -> str:
        return f"{self.IMAGE_NAME}:base"

    @property
    def custom_dockerfile_path(self) -> Path:
        return self.config_dir / self.CUSTOM_DOCKERFILE_NAME

    # ==========================================================================
    # Subprocess helpers
    # ==========================================================================

    def _compose_env(self) -> dict[str, str]:
        """
        Environment for compose

        docker-compose.yml interpolates CYRUS_DOCKER_ENV_FILE, CYRUS_SERVER_PORT
        and CYRUS_HOST_PATH from the calling environment, not from env_file.
        """
        env = os.environ.copy()
        if self.server_port is not None:
            env["CYRUS_SERVER_PORT"] = str(self.server_port)
        if self.env_file is not None:
            env["CYRUS_DOCKER_ENV_FILE"] = str(self.env_file)
            host_path = EnvFileStore(self.env_file).read().CYRUS_HOST_PATH
            if host_path:
                env["CYRUS_HOST_PATH"] = host_path
        return env

    def _query(self, args: list[str], timeout: int = QUERY_TIMEOUT) -> subprocess.CompletedProcess:
        """Run a docker query with captured output. Raises on spawn errors and timeouts."""
        return subprocess.run(
            ["docker"] + args,
            capture_output=True,
            text=True,
            encoding='utf-8',
            errors='replace',
            timeout=timeout,
        )

    def _run(self, args: list[str], description: str, cwd: Path | None = None) -> None:
        """
        Run a docker command with output going straight to the terminal.

        Raises:
            DockerCommandError: If docker is missing or exits non-zero
        """
        cmd = ["docker"] + args
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd or self.docker_dir})")
        try:
            result = subprocess.run(cmd, cwd=cwd or self.docker_dir, env=self._compose_env())
        except FileNotFoundError as e:
            raise DockerCommandError(f"{description} failed: docker not found", command=cmd) from e

        if result.returncode != 0:
            raise DockerCommandError(
                f"{description} failed (exit code {result.returncode})",
                command=cmd,
                returncode=result.returncode,
            )

    # ==========================================================================
    # Availability
    # ==========================================================================

    def check_docker(self) -> bool:
        """Check if Docker is installed and the daemon is running."""
        try:
            result = self._query(["info"], timeout=45)
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            logger.debug(f"Docker not available: {e}")
            return False
        if result.returncode != 0:
            logger.debug(f"Docker daemon not running: {result.stderr}")
            return False
        return True

    def check_docker_compose(self) -> bool:
        """Check if the docker compose plugin is installed."""
        try:
            result = self._query(["compose", "version"])
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            logger.debug(f"Docker Compose not available: {e}")
            return False
        return result.returncode == 0

    def check_available(self) -> bool:
        """True iff both docker and docker compose respond."""
        return self.check_docker() and self.check_docker_compose()

    # ==========================================================================
    # Image Management
    # ==========================================================================

    def build(self, no_cache: bool = False) -> None:
        """
        Build the image with docker compose.

        Args:
            no_cache: Pass --no-cache to the build
        """
        logger.info("Building Docker image...")
        args = ["compose", "build"]
        if no_cache:
            args.append("--no-cache")
        self._run(args, "Docker image build")
        logger.info("Docker image built")

    def build_with_tools(
        self,
        config: ResolvedToolConfig,
        tools_hash: str | None,
        no_cache: bool = False,
    ) -> None:
        """
        Build the image with extra tools layered on top.

        1. Build the compose image and tag it as <image>:base
        2. Render a Dockerfile FROM the base tag into the config dir
        3. Build <image>:latest from it, labelled with tools_hash

        A custom Dockerfile from tools.yml replaces the generated one in
        step 3 and receives the base tag as the BASE_IMAGE build arg.

        Args:
            config: Resolved tool configuration
            tools_hash: Value for the staleness label (omitted when None)
            no_cache: Pass --no-cache to both builds
        """
        logger.info("Building custom Docker image with tools...")

        logger.info("Building base image...")
        base_args = ["compose", "build"]
        if no_cache:
            base_args.append("--no-cache")
        self._run(base_args, "Base image build")

        self._run(["tag", self.image_tag, self.base_image_tag], "Tagging base image")

        build_args = ["build"]
        context_dir = self.docker_dir
        if config.custom_dockerfile:
            dockerfile = Path(config.custom_dockerfile).expanduser()
            if not dockerfile.is_absolute():
                dockerfile = self.config_dir / dockerfile
            context_dir = dockerfile.parent
            build_args += ["--build-arg", f"BASE_IMAGE={self.base_image_tag}"]
            logger.info(f"Using custom Dockerfile: {dockerfile}")
        else:
            dockerfile = self.custom_dockerfile_path
            self.config_dir.mkdir(parents=True, exist_ok=True)
            content = ToolConfigResolver.generate_dockerfile(config, self.base_image_tag)
            dockerfile.write_text(content, encoding="utf-8")
            logger.debug(f"Generated {dockerfile}")

        build_args += ["-f", str(dockerfile), "-t", self.image_tag]
        if no_cache:
            build_args.append("--no-cache")
        if tools_hash:
            build_args += ["--label", f"{self.TOOLS_HASH_LABEL}={tools_hash}"]
        build_args.append(".")

        logger.info("Building custom image with tools...")
        self._run(build_args, "Custom image build", cwd=context_dir)
        logger.info("Custom Docker image built with tools")

    def cleanup_custom_dockerfile(self) -> None:
        """Remove the generated Dockerfile; failures are only logged."""
        path = self.custom_dockerfile_path
        try:
            if path.exists():
                path.unlink()
                logger.debug(f"Cleaned up {path}")
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")

    def image_exists(self) -> bool:
        """Check if the Cyrus image exists locally."""
        try:
            result = self._query(["image", "inspect", self.image_tag], timeout=15)
            return result.returncode == 0
        except Exception:
            return False

    def get_image_tools_hash(self) -> str | None:
        """
        Read the tools hash label from the current image.

        Returns:
            The label value, or None if the image or the label is missing
        """
        try:
            result = self._query(
                [
                    "image",
                    "inspect",
                    self.image_tag,
                    "--format",
                    f'{{{{index .Config.Labels "{self.TOOLS_HASH_LABEL}"}}}}',
                ],
                timeout=15,
            )
        except Exception:
            return None

        if result.returncode != 0:
            return None
        value = result.stdout.strip()
        # Go templates print "<no value>" for a missing map key
        if not value or value == "<no value>":
            return None
        return value

    def check_image_status(self, current_hash: str | None) -> ImageStatus:
        """
        Decide whether the image must be rebuilt for the current tool config.

        Args:
            current_hash: Hash of tools.yml, or None when no tools are configured

        Returns:
            ImageStatus with needs_rebuild flag and a human-readable reason
        """
        if not self.image_exists():
            return ImageStatus(needs_rebuild=True, reason="Image does not exist")

        image_hash = self.get_image_tools_hash()

        if current_hash is None:
            if image_hash:
                return ImageStatus(needs_rebuild=True, reason="Tools configuration removed")
            return ImageStatus(needs_rebuild=False, reason="Image up to date (no tools)")

        if not image_hash:
            return ImageStatus(needs_rebuild=True, reason="Image missing tools hash label")

        if image_hash != current_hash:
            return ImageStatus(needs_rebuild=True, reason="Tools configuration changed")

        return ImageStatus(needs_rebuild=False, reason="Image up to date")

    # ==========================================================================
    # Container Lifecycle
    # ==========================================================================

    def up(self) -> None:
        """Start containers with docker compose (detached)."""
        logger.info("Starting Docker containers...")
        self._run(["compose", "up", "-d"], "docker compose up")
        logger.info("Docker containers started")

    def down(self) -> None:
        """Stop containers with docker compose."""
        logger.info("Stopping Docker containers...")
        self._run(["compose", "down"], "docker compose down")
        logger.info("Docker containers stopped")

    def logs(self, follow: bool = False, lines: int | None = None) -> None:
        """
        Stream container logs to the terminal.

        KeyboardInterrupt propagates to the caller, which treats it as a
        normal end of a follow.
        """
        args = ["compose", "logs"]
        if follow:
            args.append("-f")
        if lines:
            args += ["-n", str(lines)]
        self._run(args, "docker compose logs")

    def exec(self, command: list[str], interactive: bool = False, check: bool = True) -> int:
        """
        Run a command inside the Cyrus container.

        Args:
            command: Command and arguments
            interactive: Attach a TTY and stdin (-it)
            check: Raise DockerCommandError on a non-zero exit code

        Returns:
            The command's exit code
        """
        cmd = ["docker", "exec"]
        if interactive:
            cmd.append("-it")
        cmd += [self.CONTAINER_NAME] + command

        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, cwd=self.docker_dir)
        except FileNotFoundError as e:
            raise DockerCommandError("docker exec failed: docker not found", command=cmd) from e

        if check and result.returncode != 0:
            raise DockerCommandError(
                f"'{' '.join(command)}' exited with code {result.returncode}",
                command=cmd,
                returncode=result.returncode,
            )
        return result.returncode

    def shell(self) -> int:
        """Open an interactive bash shell in the container."""
        return self.exec(["bash"], interactive=True, check=False)

    # ==========================================================================
    # Status
    # ==========================================================================

    def get_status(self) -> ContainerStatus:
        """
        Inspect the Cyrus container.

        Returns:
            ContainerStatus; running=False / health="none" on any failure
        """
        try:
            result = self._query(["inspect", self.CONTAINER_NAME], timeout=15)
            if result.returncode != 0:
                return ContainerStatus(running=False, health="none")

            inspect_data = json.loads(result.stdout)
            if not inspect_data:
                return ContainerStatus(running=False, health="none")
            container = inspect_data[0]

            state = container.get("State") or {}
            running = bool(state.get("Running", False))
            health = normalize_health((state.get("Health") or {}).get("Status"))

            uptime_seconds = None
            started_at = state.get("StartedAt")
            if running and started_at:
                started = _parse_docker_timestamp(started_at)
                uptime_seconds = int((datetime.now(UTC) - started).total_seconds())

            container_id = container.get("Id")
            return ContainerStatus(
                running=running,
                health=health,
                container_id=container_id[:12] if container_id else None,
                uptime_seconds=uptime_seconds,
            )
        except Exception as e:
            logger.debug(f"Container status unavailable: {e}")
            return ContainerStatus(running=False, health="none")

    def wait_for_healthy(self, timeout: float = 120.0, poll_interval: float = 2.0) -> None:
        """
        Poll the container until its health check passes.

        Args:
            timeout: Seconds before giving up
            poll_interval: Seconds between polls

        Raises:
            ContainerHealthError: Container stopped or reported unhealthy
            HealthCheckTimeoutError: Still starting after timeout
        """
        logger.info("Waiting for container to be healthy...")

        start_time = time.monotonic()
        while time.monotonic() - start_time < timeout:
            status = self.get_status()

            if status.health == "healthy":
                logger.info("Container is healthy")
                return

            if not status.running:
                raise ContainerHealthError("Container stopped unexpectedly")

            if status.health == "unhealthy":
                raise ContainerHealthError("Container health check failed")

            time.sleep(poll_interval)

        raise HealthCheckTimeoutError(timeout)
