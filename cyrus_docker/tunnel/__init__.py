"""
Tunnel module - ngrok process and public URL discovery
"""

from cyrus_docker.tunnel.models import TunnelHandle, TunnelStatus
from cyrus_docker.tunnel.ngrok import TunnelController

__all__ = [
    "TunnelController",
    "TunnelHandle",
    "TunnelStatus",
]
