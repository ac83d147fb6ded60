"""Real-time fan-out to WebSocket clients.

Public API:
    ConnectionGateway    - Connection registry, control messages, broadcast, heartbeat
    FanoutScheduler      - Periodic market / PCR / sentiment / heartbeat / sweep ticks
    PeriodicTask         - Cancellable asyncio interval loop
    create_stream_router - FastAPI router factory for the /ws endpoint
"""

from .fanout import FanoutScheduler
from .gateway import Connection, ConnectionGateway
from .scheduler import PeriodicTask
from .stream import create_stream_router

__all__ = [
    "Connection",
    "ConnectionGateway",
    "FanoutScheduler",
    "PeriodicTask",
    "create_stream_router",
]
