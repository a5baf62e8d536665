"""
Base exception hierarchy

Provides a consistent exception structure across cyrus-docker
with clear error messages and recovery hints.
"""


class CyrusDockerError(Exception):
    """
    Base exception for all cyrus-docker errors

    Attributes:
        message: Error message
        component: Component that raised the error
        recovery_hint: Optional hint for recovery
    """

    def __init__(self, message: str, component: str = "", recovery_hint: str = ""):
        self.message = message
        self.component = component
        self.recovery_hint = recovery_hint
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.component:
            msg = f"[{self.component}] {msg}"
        if self.recovery_hint:
            msg += f"\n💡 Recovery: {self.recovery_hint}"
        return msg


class ConfigurationError(CyrusDockerError):
    """Configuration-related errors"""

    def __init__(self, message: str, recovery_hint: str = ""):
        super().__init__(
            message,
            component="Configuration",
            recovery_hint=recovery_hint or "Run 'cyrus-docker init' to create the configuration",
        )


class PrerequisiteError(CyrusDockerError):
    """One or more required host tools are missing"""

    REMEDIATION = {
        "Docker": "Install Docker and make sure the daemon is running: https://docs.docker.com/get-docker/",
        "Docker Compose": "Install the Docker Compose plugin: https://docs.docker.com/compose/install/",
        "ngrok": "Install ngrok: https://ngrok.com/download",
    }

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        hints = [self.REMEDIATION.get(name, f"Install {name}") for name in self.missing]
        super().__init__(
            f"Missing prerequisites: {', '.join(self.missing)}",
            component="Prerequisites",
            recovery_hint="; ".join(hints),
        )


class DockerCommandError(CyrusDockerError):
    """An external docker / docker compose invocation failed"""

    def __init__(self, message: str, command: list[str] | None = None, returncode: int | None = None):
        self.command = command or []
        self.returncode = returncode
        super().__init__(message, component="Docker")


class ContainerHealthError(CyrusDockerError):
    """Container stopped or reported an unhealthy state"""

    def __init__(self, message: str):
        super().__init__(
            message,
            component="Container",
            recovery_hint="Inspect the container output with 'cyrus-docker logs'",
        )


class WaitTimeoutError(CyrusDockerError):
    """A bounded polling loop ran out of time or attempts"""


class HealthCheckTimeoutError(WaitTimeoutError):
    """Container did not become healthy within the timeout"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Timeout waiting for container to be healthy after {timeout:g}s",
            component="Container",
        )


class TunnelError(CyrusDockerError):
    """ngrok could not be started or controlled"""

    def __init__(self, message: str, recovery_hint: str = ""):
        super().__init__(message, component="Tunnel", recovery_hint=recovery_hint)


class TunnelTimeoutError(WaitTimeoutError):
    """ngrok did not publish a tunnel URL in time"""

    def __init__(self, attempts: int, retry_delay: float):
        self.attempts = attempts
        self.retry_delay = retry_delay
        super().__init__(
            f"Timeout waiting for ngrok tunnel after {attempts} attempts "
            f"({attempts * retry_delay:g}s)",
            component="Tunnel",
            recovery_hint="Check that your ngrok authtoken is valid and no other ngrok agent is running",
        )


class NotRunningError(CyrusDockerError):
    """Operation requires Cyrus (or its container) to be running"""

    def __init__(self, message: str, recovery_hint: str = ""):
        super().__init__(
            message,
            component="Cyrus",
            recovery_hint=recovery_hint or "Start it with: cyrus-docker start",
        )
