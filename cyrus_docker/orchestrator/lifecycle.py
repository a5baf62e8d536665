"""
Lifecycle orchestration - start, stop, restart and build flows

Start sequence:
    preflight -> idempotency check -> env file check -> ngrok tunnel ->
    CYRUS_BASE_URL -> image reconciliation -> compose up -> health gate ->
    persist state -> follow logs

State is only marked running once the container has been started, and the
tunnel is torn down again if anything between starting it and compose up
fails.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

from cyrus_docker.core.exceptions import (
    ConfigurationError,
    ContainerHealthError,
    CyrusDockerError,
    DockerCommandError,
    NotRunningError,
    TunnelError,
    WaitTimeoutError,
)
from cyrus_docker.docker.models import ContainerStatus, ImageStatus
from cyrus_docker.orchestrator.context import AppContext
from cyrus_docker.state.models import RunState
from cyrus_docker.tools.models import ResolvedToolConfig
from cyrus_docker.tunnel.models import TunnelStatus

logger = logging.getLogger(__name__)

LINEAR_AUTHORIZE_URL = "https://linear.app/oauth/authorize"
LINEAR_SCOPES = "write,app:assignable,app:mentionable"

# os.kill failures: OSError from the kernel, ValueError and OverflowError for
# pids that are not a valid pid_t
PROCESS_ERRORS = (OSError, ValueError, OverflowError)


@dataclass
class BuildOutcome:
    """What image reconciliation decided and did"""

    built: bool
    reason: str
    tools_hash: str | None = None
    with_tools: bool = False


@dataclass
class StartResult:
    """Result of a start"""

    tunnel_url: str | None
    already_running: bool = False
    ngrok_pid: int | None = None
    build: BuildOutcome | None = None
    health_warning: str | None = None


@dataclass
class StopResult:
    """Result of a best-effort stop"""

    was_running: bool
    container_stopped: bool = False
    tunnel_stopped: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class CyrusStatus:
    """Snapshot for `cyrus-docker status`"""

    container: ContainerStatus
    tunnel: TunnelStatus
    image_exists: bool
    image: ImageStatus
    tools_hash: str | None
    state: RunState

    @property
    def stale_state(self) -> bool:
        """State file says running but the container is not"""
        return self.state.is_running and not self.container.running

    @property
    def started_at(self) -> datetime | None:
        return self.state.started_at_datetime()


class Orchestrator:
    """
    Sequences the container, tunnel, tool and state services

    Example:
        orchestrator = Orchestrator(AppContext())
        result = orchestrator.start(detach=True)
        print(result.tunnel_url)
    """

    def __init__(self, context: AppContext):
        self.context = context
        self.settings = context.settings
        self.docker = context.docker
        self.tunnel = context.tunnel
        self.state = context.state
        self.env_file = context.env_file
        self.tools = context.tools

    # ==========================================================================
    # Shared steps
    # ==========================================================================

    def preflight(self) -> None:
        self.context.require_prerequisites()

    def effective_tools(self) -> tuple[ResolvedToolConfig | None, str | None]:
        """
        Resolved tool config and hash, or (None, None) when nothing is configured

        A tools.yml with nothing to install hashes to None so the image is
        compared as a plain build.
        """
        resolved = self.tools.load_resolved()
        if resolved is None or not self.tools.has_tools(resolved):
            return None, None
        return resolved, self.tools.get_config_hash()

    def reconcile_image(self, force: bool = False, no_cache: bool = False) -> BuildOutcome:
        """
        Build the image if it is missing or stale (always when forced)

        Raises:
            DockerCommandError: If a build fails
        """
        resolved, tools_hash = self.effective_tools()

        if force:
            logger.info("Force rebuild requested...")
            reason = "Forced rebuild"
        else:
            logger.info("Checking if image rebuild is needed...")
            image_status = self.docker.check_image_status(tools_hash)
            if not image_status.needs_rebuild:
                logger.info(f"{image_status.reason} - skipping build")
                return BuildOutcome(
                    built=False,
                    reason=image_status.reason,
                    tools_hash=tools_hash,
                    with_tools=resolved is not None,
                )
            logger.info(f"{image_status.reason} - rebuilding image...")
            reason = image_status.reason

        try:
            if resolved is not None:
                self.docker.build_with_tools(resolved, tools_hash, no_cache=no_cache)
            else:
                self.docker.build(no_cache=no_cache)
        finally:
            self.docker.cleanup_custom_dockerfile()

        return BuildOutcome(
            built=True,
            reason=reason,
            tools_hash=tools_hash,
            with_tools=resolved is not None,
        )

    def _health_gate(self) -> str | None:
        """Wait for health; problems are returned as a warning, never raised"""
        try:
            self.docker.wait_for_healthy(
                timeout=self.settings.health_timeout,
                poll_interval=self.settings.health_poll_interval,
            )
        except (WaitTimeoutError, ContainerHealthError) as e:
            logger.warning(f"Health check issue: {e.message}")
            logger.info("Container may still be starting up...")
            return e.message
        return None

    def _stop_tunnel_after_failure(self, pid: int) -> None:
        try:
            self.tunnel.stop(pid)
        except PROCESS_ERRORS as e:
            logger.warning(f"Failed to stop ngrok (PID {pid}): {e}")

    def _require_container_running(self) -> None:
        if not self.docker.get_status().running:
            raise NotRunningError("Container is not running")

    # ==========================================================================
    # Flows
    # ==========================================================================

    def start(
        self,
        force_build: bool = False,
        detach: bool = False,
        on_started: Callable[[StartResult], Any] | None = None,
    ) -> StartResult:
        """
        Start the tunnel and the container

        Args:
            force_build: Rebuild the image even if it is up to date
            detach: Return instead of following logs
            on_started: Called with the result before logs are followed

        Returns:
            StartResult (already_running=True if nothing was done)

        Raises:
            PrerequisiteError: docker, compose or ngrok missing
            ConfigurationError: init has not been run
            TunnelError / TunnelTimeoutError: no tunnel URL
            DockerCommandError: build or compose up failed
        """
        self.preflight()

        if self.state.is_running():
            if self.docker.get_status().running:
                logger.warning("Cyrus is already running")
                return StartResult(
                    tunnel_url=self.state.tunnel_url,
                    already_running=True,
                    ngrok_pid=self.state.ngrok_pid,
                )
            logger.info("State says running but container is not - clearing stale state")
            self.state.set_stopped()

        if not self.env_file.exists():
            raise ConfigurationError("Configuration not found. Run 'cyrus-docker init' first.")

        # Step 1: tunnel
        logger.info("Step 1: Starting ngrok tunnel...")
        env = self.env_file.read()
        handle = self.tunnel.start(self.settings.server_port, authtoken=env.NGROK_AUTHTOKEN)
        if not handle.pid:
            raise TunnelError("Failed to get ngrok process PID")
        ngrok_pid = handle.pid

        try:
            tunnel_url = self.tunnel.wait_for_url(
                max_retries=self.settings.ngrok_max_retries,
                retry_delay=self.settings.ngrok_retry_delay,
            )
        except CyrusDockerError:
            self._stop_tunnel_after_failure(ngrok_pid)
            raise

        # Steps 2 and 3: env file, image, container
        try:
            logger.info("Step 2: Updating CYRUS_BASE_URL...")
            self.env_file.update_value("CYRUS_BASE_URL", tunnel_url)

            logger.info("Step 3: Starting Docker container...")
            build = self.reconcile_image(force=force_build)
            self.docker.up()
        except CyrusDockerError:
            self._stop_tunnel_after_failure(ngrok_pid)
            raise
        except OSError as e:
            self._stop_tunnel_after_failure(ngrok_pid)
            raise DockerCommandError(f"Failed to start container: {e}") from e

        # Step 4: health
        logger.info("Step 4: Waiting for container health check...")
        health_warning = self._health_gate()

        self.state.set_running(ngrok_pid, tunnel_url, self.settings.docker_dir)

        result = StartResult(
            tunnel_url=tunnel_url,
            ngrok_pid=ngrok_pid,
            build=build,
            health_warning=health_warning,
        )
        if on_started is not None:
            on_started(result)

        if not detach:
            self._follow_after_start()

        return result

    def _follow_after_start(self) -> None:
        logger.info("Following container logs (Ctrl+C to detach)...")
        try:
            self.docker.logs(follow=True)
        except KeyboardInterrupt:
            logger.info("Detached from logs. Cyrus continues running.")
            logger.info("Run 'cyrus-docker logs -f' to follow again.")
        except DockerCommandError as e:
            logger.warning(f"Log stream ended: {e.message}")

    def stop(self) -> StopResult:
        """
        Stop the container and the tunnel, then clear state

        Every step is attempted even if an earlier one failed, and the state
        is cleared whatever happens so the next start is never blocked.
        """
        ngrok_pid = self.state.ngrok_pid
        result = StopResult(was_running=self.state.is_running())

        try:
            logger.info("Step 1: Stopping Docker container...")
            try:
                self.docker.down()
                result.container_stopped = True
            except CyrusDockerError as e:
                message = f"Failed to stop container: {e.message}"
                logger.warning(message)
                result.warnings.append(message)

            logger.info("Step 2: Stopping ngrok tunnel...")
            if ngrok_pid:
                try:
                    self.tunnel.stop(ngrok_pid)
                    result.tunnel_stopped = True
                except PROCESS_ERRORS as e:
                    message = f"Failed to stop ngrok: {e}"
                    logger.warning(message)
                    result.warnings.append(message)
            else:
                logger.info("No ngrok PID found in state")
        finally:
            self.state.set_stopped()

        return result

    def restart(self) -> str | None:
        """
        Recreate the container; the tunnel and run state are left alone

        Returns:
            The persisted tunnel URL

        Raises:
            NotRunningError: Cyrus was not started
            DockerCommandError: compose up failed
        """
        if not self.state.is_running():
            raise NotRunningError(
                "Cyrus is not running",
                recovery_hint="Use 'cyrus-docker start' instead",
            )

        if not self.docker.get_status().running:
            logger.warning("Container not running, starting it...")

        logger.info("Step 1: Stopping Docker container...")
        try:
            self.docker.down()
        except CyrusDockerError as e:
            logger.warning(f"Failed to stop container: {e.message}")

        logger.info("Step 2: Starting Docker container...")
        self.docker.up()

        logger.info("Step 3: Waiting for container health check...")
        self._health_gate()

        return self.state.tunnel_url

    def build(self, force: bool = False) -> BuildOutcome:
        """
        Build the image if needed; force rebuilds without cache

        Raises:
            PrerequisiteError: docker, compose or ngrok missing
            DockerCommandError: A build step failed
        """
        self.preflight()
        return self.reconcile_image(force=force, no_cache=force)

    def status(self) -> CyrusStatus:
        """Gather container, tunnel, image and state information. Never raises."""
        _, tools_hash = self.effective_tools()
        return CyrusStatus(
            container=self.docker.get_status(),
            tunnel=self.tunnel.get_status(),
            image_exists=self.docker.image_exists(),
            image=self.docker.check_image_status(tools_hash),
            tools_hash=tools_hash,
            state=self.state.get(),
        )

    # ==========================================================================
    # Container commands
    # ==========================================================================

    def logs(self, follow: bool = False, lines: int | None = None) -> None:
        """
        Print container logs; Ctrl+C ends a follow normally

        Raises:
            NotRunningError: Container is not running
        """
        self._require_container_running()
        try:
            self.docker.logs(follow=follow, lines=lines or self.settings.default_log_lines)
        except KeyboardInterrupt:
            if not follow:
                raise
            logger.info("Stopped following logs.")

    def shell(self) -> int:
        """Interactive bash in the container; returns the shell's exit code"""
        self._require_container_running()
        return self.docker.shell()

    def build_auth_url(self) -> str | None:
        """
        Linear OAuth authorize URL for the current tunnel

        Returns:
            URL, or None when LINEAR_CLIENT_ID or the tunnel URL is unknown
        """
        client_id = self.env_file.read().LINEAR_CLIENT_ID
        tunnel_url = self.state.tunnel_url
        if not client_id or not tunnel_url:
            logger.warning("Could not build auth URL - missing LINEAR_CLIENT_ID or tunnel URL")
            return None

        params = {
            "client_id": client_id,
            "redirect_uri": f"{tunnel_url}/callback",
            "response_type": "code",
            "scope": LINEAR_SCOPES,
            "actor": "app",
        }
        return f"{LINEAR_AUTHORIZE_URL}?{urlencode(params)}"

    def auth(self, open_browser: Callable[[str], Any] | None = None) -> int:
        """
        Run the Linear OAuth flow

        Opens the authorize URL on the host (if open_browser is given), then
        runs `cyrus self-auth` in the container to receive the callback.

        Returns:
            Exit code of `cyrus self-auth`
        """
        self._require_container_running()

        auth_url = self.build_auth_url()
        if auth_url and open_browser is not None:
            logger.info("Opening browser for Linear authorization...")
            try:
                opened = open_browser(auth_url) in (None, 0, True)
            except OSError:
                opened = False
            if not opened:
                logger.warning("Could not open browser automatically.")
                logger.info(f"Please visit: {auth_url}")

        logger.info("Running 'cyrus self-auth' inside container...")
        return self.docker.exec(["cyrus", "self-auth"], interactive=True, check=False)

    def add_repo(self, url: str | None = None, workspace: str | None = None) -> int:
        """
        Run `cyrus self-add-repo [url] [workspace]` in the container

        Returns:
            Exit code of the command
        """
        self._require_container_running()

        command = ["cyrus", "self-add-repo"]
        if url:
            command.append(url)
        if workspace:
            command.append(workspace)

        logger.info(f"Running '{' '.join(command)}' inside container...")
        return self.docker.exec(command, interactive=True, check=False)
