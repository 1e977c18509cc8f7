"""Test utilities for perch applications.

Provides an in-process test client with HTTP and WebSocket support::

    from perch.testing import TestClient
"""

from perch.testing.client import TestClient, encode_form
from perch.testing.websocket import WebSocketSession

__all__ = [
    "TestClient",
    "WebSocketSession",
    "encode_form",
]
