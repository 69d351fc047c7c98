"""
Log Access Layer

The only layer that talks to the external log. Everything above it sees
decoded Messages and typed errors.
"""

from .client import (
    LogClient, LogConnection, ClientFactory, RawMessage,
    read_messages, fetch_message,
)
from .memory import InMemoryLogStore
from .http import HttpLogClient

__all__ = [
    'LogClient', 'LogConnection', 'ClientFactory', 'RawMessage',
    'read_messages', 'fetch_message', 'InMemoryLogStore', 'HttpLogClient',
]
