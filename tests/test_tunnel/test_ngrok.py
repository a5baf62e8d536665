"""
Tests for the ngrok tunnel controller

httpx, os and subprocess are mocked; ngrok is never launched.
"""

import signal
import subprocess
from unittest.mock import MagicMock, patch

import httpx
import pytest

from cyrus_docker.core.exceptions import TunnelError, TunnelTimeoutError
from cyrus_docker.tunnel.ngrok import TunnelController

GET = "cyrus_docker.tunnel.ngrok.httpx.get"


def api_response(tunnels):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"tunnels": tunnels}
    return response


HTTP_TUNNEL = {"public_url": "http://abc.ngrok.app", "proto": "http"}
HTTPS_TUNNEL = {"public_url": "https://abc.ngrok.app", "proto": "https"}


class TestGetUrl:
    """Tests for reading the public URL"""

    def test_prefers_https(self):
        """Test that the https tunnel wins even when listed second"""
        with patch(GET, return_value=api_response([HTTP_TUNNEL, HTTPS_TUNNEL])):
            assert TunnelController().get_url() == "https://abc.ngrok.app"

    def test_falls_back_to_first(self):
        """Test fallback to the first tunnel without https"""
        other = {"public_url": "tcp://0.tcp.ngrok.io:1234", "proto": "tcp"}
        with patch(GET, return_value=api_response([HTTP_TUNNEL, other])):
            assert TunnelController().get_url() == "http://abc.ngrok.app"

    def test_empty_list(self):
        with patch(GET, return_value=api_response([])):
            assert TunnelController().get_url() is None

    def test_connection_error(self):
        """Test that an unreachable API gives None"""
        with patch(GET, side_effect=httpx.ConnectError("refused")):
            assert TunnelController().get_url() is None

    def test_http_error_status(self):
        """Test that a non-2xx response gives None"""
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "502", request=MagicMock(), response=MagicMock()
        )
        with patch(GET, return_value=response):
            assert TunnelController().get_url() is None

    def test_bad_json(self):
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("no json")
        with patch(GET, return_value=response):
            assert TunnelController().get_url() is None

    @pytest.mark.parametrize(
        "payload",
        [
            "abc",
            5,
            [None],
            None,
            {"tunnels": ["x"]},
            {"tunnels": [None]},
            {"tunnels": "abc"},
            {"tunnels": 5},
            {"tunnels": [{"proto": "https", "public_url": 7}]},
        ],
    )
    def test_unexpected_payload(self, payload):
        """Test that any response shape other than a tunnel list gives None"""
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = payload
        with patch(GET, return_value=response):
            assert TunnelController().get_url() is None

    def test_skips_malformed_entries(self):
        """Test that broken entries do not hide a valid tunnel"""
        with patch(GET, return_value=api_response(["x", None, {"proto": "https"}, HTTP_TUNNEL])):
            assert TunnelController().get_url() == "http://abc.ngrok.app"

    def test_malformed_payload_times_out_wait(self):
        """Test that wait_for_url keeps polling and times out on garbage"""
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = {"tunnels": [None]}
        with patch(GET, return_value=response):
            with pytest.raises(TunnelTimeoutError):
                TunnelController().wait_for_url(max_retries=2, retry_delay=0)

    def test_queries_configured_api(self):
        """Test that the configured API URL is used"""
        with patch(GET, return_value=api_response([])) as mock_get:
            TunnelController(api_url="http://localhost:4041/api/tunnels").get_url()

        assert mock_get.call_args.args[0] == "http://localhost:4041/api/tunnels"

    def test_status(self):
        with patch(GET, return_value=api_response([HTTPS_TUNNEL])):
            status = TunnelController().get_status()

        assert status.is_running is True
        assert status.url == "https://abc.ngrok.app"

    def test_not_running(self):
        with patch(GET, side_effect=httpx.ConnectError("refused")):
            controller = TunnelController()
            assert controller.is_running() is False
            assert controller.get_status().url is None


class TestWaitForUrl:
    """Tests for the URL polling loop"""

    def test_timeout_after_exact_attempts(self):
        """Test that an always-empty API fails after exactly max_retries attempts"""
        controller = TunnelController()
        with patch(GET, return_value=api_response([])) as mock_get:
            with pytest.raises(TunnelTimeoutError) as exc_info:
                controller.wait_for_url(max_retries=3, retry_delay=0.001)

        assert mock_get.call_count == 3
        assert exc_info.value.attempts == 3

    def test_returns_first_url(self):
        """Test that polling stops at the first URL"""
        responses = [api_response([]), api_response([]), api_response([HTTPS_TUNNEL])]
        with patch(GET, side_effect=responses) as mock_get, patch(
            "cyrus_docker.tunnel.ngrok.time.sleep"
        ) as mock_sleep:
            url = TunnelController().wait_for_url(max_retries=10, retry_delay=1.0)

        assert url == "https://abc.ngrok.app"
        assert mock_get.call_count == 3
        assert mock_sleep.call_count == 2


class TestStart:
    """Tests for launching ngrok"""

    def test_missing_binary(self):
        """Test that a missing ngrok raises with an install hint"""
        with patch("cyrus_docker.tunnel.ngrok.shutil.which", return_value=None):
            with pytest.raises(TunnelError) as exc_info:
                TunnelController().start(3456)

        assert "ngrok.com/download" in exc_info.value.recovery_hint

    def test_launches_detached(self):
        """Test the ngrok command line and detachment"""
        process = MagicMock(pid=4321)
        with patch("cyrus_docker.tunnel.ngrok.shutil.which", return_value="/usr/bin/ngrok"), patch(
            "cyrus_docker.tunnel.ngrok.subprocess.Popen", return_value=process
        ) as mock_popen:
            handle = TunnelController().start(3456, authtoken="tok_123")

        assert handle.pid == 4321
        assert handle.process is process
        assert mock_popen.call_args.args[0] == ["/usr/bin/ngrok", "http", "3456"]
        kwargs = mock_popen.call_args.kwargs
        assert kwargs["start_new_session"] is True
        assert kwargs["stdout"] is subprocess.DEVNULL
        assert kwargs["env"]["NGROK_AUTHTOKEN"] == "tok_123"

    def test_launch_failure(self):
        with patch("cyrus_docker.tunnel.ngrok.shutil.which", return_value="/usr/bin/ngrok"), patch(
            "cyrus_docker.tunnel.ngrok.subprocess.Popen", side_effect=PermissionError("denied")
        ):
            with pytest.raises(TunnelError):
                TunnelController().start(3456)


class TestStop:
    """Tests for stopping ngrok"""

    def test_sends_sigterm(self):
        with patch("cyrus_docker.tunnel.ngrok.os.kill") as mock_kill:
            TunnelController().stop(4321)

        mock_kill.assert_called_once_with(4321, signal.SIGTERM)

    def test_already_stopped(self):
        """Test that a vanished process counts as stopped"""
        with patch("cyrus_docker.tunnel.ngrok.os.kill", side_effect=ProcessLookupError()):
            TunnelController().stop(4321)

    def test_permission_error_propagates(self):
        """Test that other OS errors are raised"""
        with patch("cyrus_docker.tunnel.ngrok.os.kill", side_effect=PermissionError()):
            with pytest.raises(PermissionError):
                TunnelController().stop(4321)

    @pytest.mark.parametrize("pid", [0, -1])
    def test_rejects_non_positive_pid(self, pid):
        """Test that 0 and negative pids never reach os.kill"""
        with patch("cyrus_docker.tunnel.ngrok.os.kill") as mock_kill:
            with pytest.raises(ValueError):
                TunnelController().stop(pid)

        mock_kill.assert_not_called()


class TestIsProcessRunning:
    """Tests for the signal-0 probe"""

    def test_running(self):
        with patch("cyrus_docker.tunnel.ngrok.os.kill", return_value=None) as mock_kill:
            assert TunnelController.is_process_running(4321) is True

        mock_kill.assert_called_once_with(4321, 0)

    def test_not_running(self):
        with patch("cyrus_docker.tunnel.ngrok.os.kill", side_effect=ProcessLookupError()):
            assert TunnelController.is_process_running(4321) is False

    @pytest.mark.parametrize("pid", [0, -1])
    def test_non_positive_pid(self, pid):
        with patch("cyrus_docker.tunnel.ngrok.os.kill") as mock_kill:
            assert TunnelController.is_process_running(pid) is False

        mock_kill.assert_not_called()
