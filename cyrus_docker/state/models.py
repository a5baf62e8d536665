"""
Run state model

Stored as ~/.cyrus-docker/state.json with camelCase keys:

    {
      "version": "1.0",
      "isRunning": true,
      "ngrokPid": 12345,
      "tunnelUrl": "https://abc123.ngrok-free.app",
      "startedAt": "2024-01-01T10:00:00.000000+00:00",
      "dockerDir": "/path/to/docker_files"
    }

Keys whose value is None are left out of the file.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

STATE_VERSION = "1.0"

# Python attribute -> JSON key
_JSON_KEYS = {
    "version": "version",
    "is_running": "isRunning",
    "ngrok_pid": "ngrokPid",
    "tunnel_url": "tunnelUrl",
    "started_at": "startedAt",
    "docker_dir": "dockerDir",
}

RUNNING_FIELDS = ("ngrok_pid", "tunnel_url", "started_at", "docker_dir")


@dataclass
class RunState:
    """Whether cyrus-docker considers Cyrus to be up, and what it started"""

    version: str = STATE_VERSION
    is_running: bool = False
    ngrok_pid: int | None = None
    tunnel_url: str | None = None
    started_at: str | None = None
    docker_dir: str | None = None

    def is_consistent(self) -> bool:
        """
        Running implies all run fields are set; stopped implies none are.
        """
        present = [getattr(self, name) is not None for name in RUNNING_FIELDS]
        if self.is_running:
            return all(present)
        return not any(present)

    def started_at_datetime(self) -> datetime | None:
        if self.started_at is None:
            return None
        return datetime.fromisoformat(self.started_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk JSON mapping"""
        data: dict[str, Any] = {}
        for attr, key in _JSON_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunState":
        """
        Create from the on-disk JSON mapping

        Raises:
            ValueError: If a value has the wrong type or the running fields
                disagree with isRunning
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        is_running = data.get("isRunning", False)
        if not isinstance(is_running, bool):
            raise ValueError("isRunning must be a boolean")

        ngrok_pid = data.get("ngrokPid")
        if ngrok_pid is not None and (isinstance(ngrok_pid, bool) or not isinstance(ngrok_pid, int)):
            raise ValueError("ngrokPid must be an integer")
        if ngrok_pid is not None and ngrok_pid <= 0:
            raise ValueError("ngrokPid must be a positive process id")

        for key in ("version", "tunnelUrl", "startedAt", "dockerDir"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{key} must be a string")

        if data.get("startedAt") is not None:
            # Raises ValueError for a malformed timestamp
            datetime.fromisoformat(data["startedAt"])

        state = cls(
            version=data.get("version") or STATE_VERSION,
            is_running=is_running,
            ngrok_pid=ngrok_pid,
            tunnel_url=data.get("tunnelUrl"),
            started_at=data.get("startedAt"),
            docker_dir=data.get("dockerDir"),
        )
        if not state.is_consistent():
            raise ValueError("Run state fields do not match isRunning")
        return state
