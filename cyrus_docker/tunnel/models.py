"""
Tunnel data models
"""

import subprocess
from dataclasses import dataclass


@dataclass
class TunnelHandle:
    """A launched ngrok process. Only pid is persisted."""

    pid: int | None
    process: subprocess.Popen | None = None


@dataclass
class TunnelStatus:
    """Live tunnel status from the ngrok local API"""

    is_running: bool
    url: str | None = None
