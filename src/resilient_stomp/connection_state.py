"""
Canonical connection state definitions for the STOMP client.

This module provides the single source of truth for the public connection
states so that the transport, the reconnect logic and any display layer agree
on their meaning.
"""

from enum import Enum


class ConnectionState(Enum):
    """
    Public states of a ReconnectingClient.

    RECONNECTING is a connecting state that was entered through backoff, so a
    display layer can show "retrying" rather than "first attempt".
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"

    @property
    def is_connecting(self) -> bool:
        return self in (ConnectionState.CONNECTING, ConnectionState.RECONNECTING)
