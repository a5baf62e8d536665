"""
Persistent run state

The state file is read once when the store is created and rewritten whole
on every change, through a temporary file and os.replace so a crash never
leaves half a file behind.
"""

import json
import logging
import os
import tempfile
from dataclasses import fields, replace
from datetime import UTC, datetime
from pathlib import Path

from cyrus_docker.state.models import RunState

logger = logging.getLogger(__name__)

STATE_FILENAME = "state.json"


class StateStore:
    """
    Stores cyrus-docker run state in <config_dir>/state.json

    A missing, unreadable or inconsistent file is treated as "not running".
    """

    def __init__(self, config_dir: Path):
        self.config_dir = config_dir
        self.state_file = config_dir / STATE_FILENAME
        self._state = self.load()

    def load(self) -> RunState:
        """
        Load state from disk

        Returns:
            RunState from the file, or defaults when it is missing or corrupt
        """
        if not self.state_file.exists():
            return RunState()

        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
            state = RunState.from_dict(data)
        except (OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            logger.debug(f"Ignoring unreadable state file {self.state_file}: {e}")
            return RunState()

        logger.debug(f"Loaded state from {self.state_file}")
        return state

    def save(self) -> None:
        """Write the in-memory state to disk. Errors are logged, not raised."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.config_dir, prefix=".state-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._state.to_dict(), f, indent=2)
                os.replace(tmp_name, self.state_file)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            logger.debug(f"Saved state to {self.state_file}")
        except OSError as e:
            logger.error(f"Failed to save state: {e}")

    def get(self) -> RunState:
        """Return a copy of the current state"""
        return replace(self._state)

    def update(self, **changes) -> None:
        """
        Apply changes and save

        Raises:
            ValueError: Unknown field, or the result breaks the running/stopped
                invariant
        """
        known = {f.name for f in fields(RunState)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown state fields: {sorted(unknown)}")

        new_state = replace(self._state, **changes)
        if not new_state.is_consistent():
            raise ValueError("Run state fields do not match is_running")

        self._state = new_state
        self.save()

    def set_running(self, ngrok_pid: int, tunnel_url: str, docker_dir: Path | str) -> None:
        """Mark Cyrus as running"""
        self.update(
            is_running=True,
            ngrok_pid=ngrok_pid,
            tunnel_url=tunnel_url,
            started_at=datetime.now(UTC).isoformat(),
            docker_dir=str(docker_dir),
        )

    def set_stopped(self) -> None:
        """Mark Cyrus as stopped"""
        self.update(
            is_running=False,
            ngrok_pid=None,
            tunnel_url=None,
            started_at=None,
            docker_dir=None,
        )

    def reset(self) -> None:
        """Reset state to defaults"""
        self._state = RunState()
        self.save()

    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def ngrok_pid(self) -> int | None:
        return self._state.ngrok_pid

    @property
    def tunnel_url(self) -> str | None:
        return self._state.tunnel_url

    @property
    def docker_dir(self) -> str | None:
        return self._state.docker_dir

    @property
    def started_at(self) -> datetime | None:
        return self._state.started_at_datetime()
