"""
ngrok tunnel control

Starts ngrok as a detached background process and reads the public URL from
its local inspection API (http://localhost:4040/api/tunnels).
"""

import logging
import os
import shutil
import signal
import subprocess
import time

import httpx

from cyrus_docker.core.exceptions import TunnelError, TunnelTimeoutError
from cyrus_docker.tunnel.models import TunnelHandle, TunnelStatus

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:4040/api/tunnels"
TIMEOUT_SECONDS = 5.0


class TunnelController:
    """
    Manages the ngrok tunnel that exposes the Cyrus server

    Example:
        tunnel = TunnelController()
        handle = tunnel.start(3456)
        url = tunnel.wait_for_url()
    """

    def __init__(self, api_url: str = DEFAULT_API_URL, binary: str = "ngrok"):
        self.api_url = api_url
        self.binary = binary

    def start(self, port: int, authtoken: str | None = None) -> TunnelHandle:
        """
        Launch `ngrok http <port>` in its own session

        The process is not waited on; it keeps running after the CLI exits.

        Args:
            port: Local port to expose
            authtoken: Passed to ngrok as NGROK_AUTHTOKEN when given

        Returns:
            TunnelHandle for the new process

        Raises:
            TunnelError: If the ngrok binary cannot be found or launched
        """
        logger.info(f"Starting ngrok tunnel on port {port}...")

        executable = shutil.which(self.binary)
        if executable is None:
            raise TunnelError(
                "ngrok is not installed",
                recovery_hint="Install it from https://ngrok.com/download",
            )

        env = os.environ.copy()
        if authtoken:
            env["NGROK_AUTHTOKEN"] = authtoken

        try:
            process = subprocess.Popen(
                [executable, "http", str(port)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            raise TunnelError(f"Failed to launch ngrok: {e}") from e

        logger.info(f"ngrok process started with PID {process.pid}")
        return TunnelHandle(pid=process.pid, process=process)

    def wait_for_url(self, max_retries: int = 30, retry_delay: float = 1.0) -> str:
        """
        Poll the local API until a public URL shows up

        Args:
            max_retries: Number of attempts
            retry_delay: Seconds between attempts

        Returns:
            Public tunnel URL

        Raises:
            TunnelTimeoutError: No URL after max_retries attempts
        """
        logger.info("Waiting for ngrok tunnel to be ready...")

        for attempt in range(max_retries):
            url = self.get_url()
            if url:
                logger.info(f"Tunnel ready: {url}")
                return url
            if attempt < max_retries - 1:
                time.sleep(retry_delay)

        raise TunnelTimeoutError(max_retries, retry_delay)

    def get_url(self) -> str | None:
        """
        Query the local API once

        Returns:
            The https tunnel URL if there is one, else the first tunnel's URL,
            else None. None on any network or parse error as well.
        """
        try:
            response = httpx.get(self.api_url, timeout=TIMEOUT_SECONDS)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"ngrok API not available: {e}")
            return None

        tunnels = data.get("tunnels") if isinstance(data, dict) else None
        if not isinstance(tunnels, list):
            logger.debug(f"Unexpected ngrok API response: {data!r}")
            return None

        urls = []
        for tunnel in tunnels:
            if not isinstance(tunnel, dict):
                continue
            public_url = tunnel.get("public_url")
            if not isinstance(public_url, str) or not public_url:
                continue
            if tunnel.get("proto") == "https":
                return public_url
            urls.append(public_url)

        return urls[0] if urls else None

    def get_status(self) -> TunnelStatus:
        url = self.get_url()
        return TunnelStatus(is_running=url is not None, url=url)

    def is_running(self) -> bool:
        return self.get_url() is not None

    def stop(self, pid: int) -> None:
        """
        Send SIGTERM to the ngrok process

        A process that is already gone counts as stopped. Other OS errors
        (e.g. permission denied) are raised.

        Raises:
            ValueError: If pid is not a positive process id; 0 and negative
                values would signal a whole process group
        """
        if pid <= 0:
            raise ValueError(f"Invalid ngrok PID: {pid}")

        logger.info(f"Stopping ngrok process (PID: {pid})...")
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            logger.warning("ngrok process was already stopped")
            return
        logger.info("ngrok process stopped")

    @staticmethod
    def is_process_running(pid: int) -> bool:
        """Check whether a process exists (signal 0)"""
        if pid <= 0:
            return False
        try:
            os.kill(pid, 0)
            return True
        except (OSError, ValueError, OverflowError):
            return False
