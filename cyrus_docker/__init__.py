"""
cyrus-docker

Run the Cyrus agent locally inside Docker, exposed through an ngrok tunnel.
"""

__version__ = "0.3.0"
__author__ = "Cyrus Docker contributors"
__license__ = "MIT"

from cyrus_docker.orchestrator import AppContext, Orchestrator

__all__ = [
    "AppContext",
    "Orchestrator",
]
