from schemaboard.realtime.debouncer import Debouncer
from schemaboard.realtime.engine import DiagramSyncEngine, RoomState, diagram_cache_key
from schemaboard.realtime.gatekeeper import ConnectionContext, GatekeeperChain, TokenAuthGatekeeper
from schemaboard.realtime.presence import PresenceTracker

__all__ = [
    "Debouncer",
    "DiagramSyncEngine",
    "RoomState",
    "diagram_cache_key",
    "ConnectionContext",
    "GatekeeperChain",
    "TokenAuthGatekeeper",
    "PresenceTracker",
]
