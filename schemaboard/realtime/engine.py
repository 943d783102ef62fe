"""Room-based diagram synchronization.

The engine keeps every editor of a project diagram in step:

- the cache entry ``project:diagram:{projectId}`` is the live document;
  mutations read-modify-write it without locking (last write wins);
- each mutation is relayed to the other connections in the project room;
- a debounced write-back copies the cached document to durable storage a
  fixed delay after the last change.

Handlers never raise to the connection: failures are logged and the event is
dropped, including its broadcast.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from schemaboard.domain import diagram as ops
from schemaboard.domain import events as ev
from schemaboard.domain.entities import DiagramEntity, empty_diagram
from schemaboard.domain.errors import NotFoundError, ValidationError
from schemaboard.realtime.connections import Connection
from schemaboard.realtime.debouncer import Debouncer
from schemaboard.realtime.presence import PresenceTracker
from schemaboard.services.cache.store import CacheStore
from schemaboard.storage.interface import DesignStorage, design_path

logger = logging.getLogger(__name__)

DIAGRAM_KEY_PREFIX = "project:diagram:"
DEFAULT_CACHE_TTL = 3600
DEFAULT_WRITE_BACK_DELAY = 5.0


def diagram_cache_key(project_id: str) -> str:
    return f"{DIAGRAM_KEY_PREFIX}{project_id}"


class RoomState(str, Enum):
    NO_ROOM = "no_room"
    HYDRATING = "hydrating"
    LIVE = "live"


class DiagramSyncEngine:
    """Owns room membership, pending write-backs and the event dispatch table."""

    def __init__(
        self,
        cache: CacheStore,
        storage: DesignStorage,
        cache_ttl: int = DEFAULT_CACHE_TTL,
        write_back_delay: float = DEFAULT_WRITE_BACK_DELAY,
        presence: Optional[PresenceTracker] = None,
    ) -> None:
        self._cache = cache
        self._storage = storage
        self._cache_ttl = cache_ttl
        self._presence = presence or PresenceTracker()
        self._debouncer = Debouncer(write_back_delay, self.write_back)
        self._connections: Dict[str, Connection] = {}
        self._room_states: Dict[str, RoomState] = {}
        self._watch_task: Optional[asyncio.Task] = None
        # Keys this engine filled from storage whose change-feed echo is still due
        self._pending_fills: Dict[str, int] = {}
        self._handlers: Dict[Type[ev.ClientMessage], Callable[[Connection, Any], Awaitable[None]]] = {
            ev.JoinProject: lambda c, m: self.join(c, m.project_id, m.user_name),
            ev.LeaveProject: lambda c, m: self.leave(c, m.project_id),
            ev.UpdateDiagram: lambda c, m: self.update_diagram(c, m.project_id, m.diagram),
            ev.NodeAdded: lambda c, m: self.add_node(c, m.project_id, m.node),
            ev.NodeDeleted: lambda c, m: self.delete_node(c, m.project_id, m.node_id),
            ev.NodeLabelChanged: lambda c, m: self.change_node_label(c, m.project_id, m.node_id, m.label),
            ev.NodeDescriptionChanged: lambda c, m: self.change_node_description(
                c, m.project_id, m.node_id, m.description
            ),
            ev.FieldsAdded: lambda c, m: self.add_fields(c, m.project_id, m.node_id, m.fields),
            ev.FieldDeleted: lambda c, m: self.delete_field(c, m.project_id, m.node_id, m.field_id),
            ev.NodeDragged: lambda c, m: self.drag_node(c, m.project_id, m.node_id, m.position),
            ev.NodeDragStopped: lambda c, m: self.stop_node_drag(c, m.project_id, m.node_id, m.position),
            ev.EdgeAdded: lambda c, m: self.add_edge(c, m.project_id, m.edge),
            ev.EdgeDeleted: lambda c, m: self.delete_edge(c, m.project_id, m.edge_id),
            ev.EdgeUpdated: lambda c, m: self.update_edge(c, m.project_id, m.edge_id, m.property, m.value),
            ev.MouseMoved: lambda c, m: self.move_mouse(c, m),
        }

    @property
    def presence(self) -> PresenceTracker:
        return self._presence

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    def room_state(self, project_id: str) -> RoomState:
        return self._room_states.get(project_id, RoomState.NO_ROOM)

    def stats(self) -> Dict[str, int]:
        rooms = self._presence.room_ids()
        return {
            "connections": len(self._connections),
            "rooms": len(rooms),
            "occupied_rooms": sum(1 for r in rooms if self._presence.connection_ids(r)),
            "pending_write_backs": len(self._debouncer.pending_keys()),
        }

    # --------------- Connection lifecycle ---------------
    def register(self, connection: Connection) -> None:
        """Track an admitted connection so room broadcasts can reach it."""
        self._connections[connection.connection_id] = connection

    async def handle_frame(self, connection: Connection, frame: Any) -> None:
        """Decode one inbound frame and dispatch it; bad frames are logged and ignored."""
        try:
            message = ev.parse_client_message(frame)
        except ValidationError as e:
            logger.warning(f"Ignoring frame from {connection.connection_id}: {e}")
            return
        await self.dispatch(connection, message)

    async def dispatch(self, connection: Connection, message: ev.ClientMessage) -> None:
        handler = self._handlers.get(type(message))
        if handler is None:
            logger.warning(f"No handler for {message.event}")
            return
        await handler(connection, message)

    async def disconnect(self, connection: Connection) -> None:
        """Remove the connection from every room and republish those rooms' members."""
        self._connections.pop(connection.connection_id, None)
        affected = self._presence.remove_connection(connection.connection_id)
        for project_id, members in affected.items():
            await self._emit_room(project_id, ev.PROJECT_USER_COUNT, members)
        logger.info(f"Connection {connection.connection_id} disconnected from {len(affected)} room(s)")

    # --------------- Room membership ---------------
    async def join(self, connection: Connection, project_id: str, user_name: str) -> None:
        try:
            logger.info(f"User {user_name} joined project {project_id}")
            self.register(connection)
            members = self._presence.join(project_id, user_name, connection.connection_id)
            await self._emit_room(project_id, ev.PROJECT_USER_COUNT, members)

            if self.room_state(project_id) is RoomState.NO_ROOM:
                self._room_states[project_id] = RoomState.HYDRATING
            diagram = await self.hydrate(project_id)
            self._room_states[project_id] = RoomState.LIVE

            await connection.send(ev.DIAGRAM_INITIAL, diagram)
        except Exception as e:
            logger.error(f"Error in join for project {project_id}: {e}")

    async def leave(self, connection: Connection, project_id: str) -> None:
        try:
            members = self._presence.leave(project_id, connection.connection_id)
            if members is None:
                return
            logger.info(f"Connection {connection.connection_id} left project {project_id}")
            await self._emit_room(project_id, ev.PROJECT_USER_COUNT, members)
        except Exception as e:
            logger.error(f"Error in leave for project {project_id}: {e}")

    # --------------- Hydration and persistence ---------------
    async def _read_through(self, project_id: str) -> Optional[DiagramEntity]:
        """Cached diagram, else the durable copy (cached on the way out).

        A project without a stored design yields a fresh empty diagram. Returns
        None when durable storage could not be read.
        """
        key = diagram_cache_key(project_id)
        cached = await self._cache.get_json(key)
        if isinstance(cached, dict):
            logger.debug(f"Using cached diagram for project {project_id}")
            await self._cache.touch(key, self._cache_ttl)
            return ops.coerce_diagram(cached)

        logger.info(f"Fetching diagram for project {project_id} from storage")
        try:
            diagram = await self._storage.get_design(design_path(project_id))
        except NotFoundError:
            logger.info(f"No stored design for project {project_id}, starting empty")
            diagram = empty_diagram()
        except Exception as e:
            logger.error(f"Error fetching diagram for project {project_id}: {e}")
            return None

        if self._watch_task is not None:
            self._pending_fills[key] = self._pending_fills.get(key, 0) + 1
        await self._cache.set(key, diagram, self._cache_ttl)
        return diagram

    async def hydrate(self, project_id: str) -> DiagramEntity:
        """Current diagram for a project; never fails on storage errors."""
        diagram = await self._read_through(project_id)
        return diagram if diagram is not None else empty_diagram()

    def schedule_write_back(self, project_id: str) -> None:
        self._debouncer.schedule(project_id)

    async def write_back(self, project_id: str) -> None:
        """Persist the cached diagram of a project to durable storage."""
        try:
            cached = await self._cache.get_json(diagram_cache_key(project_id))
            if not isinstance(cached, dict):
                logger.info(f"Nothing cached for project {project_id}, skipping write-back")
                return
            diagram = ops.coerce_diagram(cached)
            path = design_path(project_id)
            # A missing design already reads as empty; writing one would fake a bootstrap
            if diagram == empty_diagram() and not await self._storage.exists(path):
                logger.info(f"Project {project_id} has no design and nothing to persist, skipping write-back")
                return
            await self._storage.update_design(diagram, path)
            logger.info(f"Persisted diagram for project {project_id}")
        except Exception as e:
            logger.error(f"Write-back failed for project {project_id}: {e}")

    # --------------- Mutations ---------------
    async def _apply(self, project_id: str, mutate: Callable[[DiagramEntity], DiagramEntity]) -> None:
        diagram = await self._read_through(project_id)
        if diagram is None:
            logger.warning(f"Diagram for project {project_id} unavailable, relaying without caching")
            return
        await self._cache.set(diagram_cache_key(project_id), mutate(diagram), self._cache_ttl)
        self.schedule_write_back(project_id)

    async def _mutate_and_relay(
        self,
        connection: Connection,
        project_id: str,
        mutate: Callable[[DiagramEntity], DiagramEntity],
        event: str,
        delta: Any,
    ) -> None:
        try:
            await self._apply(project_id, mutate)
            await self._emit_peers(connection, project_id, event, delta)
        except Exception as e:
            logger.error(f"Error handling {event} for project {project_id}: {e}")

    async def update_diagram(self, connection: Connection, project_id: str, diagram: DiagramEntity) -> None:
        try:
            logger.info(f"Received diagram update for project {project_id}")
            await self._cache.set(diagram_cache_key(project_id), diagram, self._cache_ttl)
            self.schedule_write_back(project_id)
            await self._emit_peers(connection, project_id, ev.DIAGRAM_UPDATE, diagram)
        except Exception as e:
            logger.error(f"Error handling {ev.DIAGRAM_UPDATE} for project {project_id}: {e}")

    async def add_node(self, connection: Connection, project_id: str, node: Dict[str, Any]) -> None:
        logger.info(f"Node {node.get('id')} added to project {project_id}")
        await self._mutate_and_relay(
            connection, project_id, lambda d: ops.add_node(d, node), ev.NODE_ADDED, node
        )

    async def delete_node(self, connection: Connection, project_id: str, node_id: str) -> None:
        await self._mutate_and_relay(
            connection, project_id, lambda d: ops.delete_node(d, node_id), ev.NODE_DELETED, {"nodeId": node_id}
        )

    async def change_node_label(self, connection: Connection, project_id: str, node_id: str, label: str) -> None:
        await self._mutate_and_relay(
            connection,
            project_id,
            lambda d: ops.set_node_label(d, node_id, label),
            ev.NODE_LABEL_CHANGED,
            {"nodeId": node_id, "label": label},
        )

    async def change_node_description(
        self, connection: Connection, project_id: str, node_id: str, description: str
    ) -> None:
        await self._mutate_and_relay(
            connection,
            project_id,
            lambda d: ops.set_node_description(d, node_id, description),
            ev.NODE_DESCRIPTION_CHANGED,
            {"nodeId": node_id, "description": description},
        )

    async def add_fields(self, connection: Connection, project_id: str, node_id: str, fields: list) -> None:
        await self._mutate_and_relay(
            connection,
            project_id,
            lambda d: ops.add_fields(d, node_id, fields),
            ev.ADD_NODE_FIELDS,
            {"nodeId": node_id, "fields": fields},
        )

    async def delete_field(self, connection: Connection, project_id: str, node_id: str, field_id: str) -> None:
        await self._mutate_and_relay(
            connection,
            project_id,
            lambda d: ops.delete_field(d, node_id, field_id),
            ev.DELETE_NODE_FIELD,
            {"nodeId": node_id, "fieldId": field_id},
        )

    async def drag_node(self, connection: Connection, project_id: str, node_id: str, position: dict) -> None:
        # Intermediate drag positions are relayed only; the drop is persisted
        try:
            await self._emit_peers(connection, project_id, ev.NODE_DRAG, {"nodeId": node_id, "position": position})
        except Exception as e:
            logger.error(f"Error handling {ev.NODE_DRAG} for project {project_id}: {e}")

    async def stop_node_drag(self, connection: Connection, project_id: str, node_id: str, position: dict) -> None:
        await self._mutate_and_relay(
            connection,
            project_id,
            lambda d: ops.set_node_position(d, node_id, position),
            ev.NODE_DRAG_STOP,
            {"nodeId": node_id, "position": position},
        )

    async def add_edge(self, connection: Connection, project_id: str, edge: Dict[str, Any]) -> None:
        await self._mutate_and_relay(
            connection, project_id, lambda d: ops.add_edge(d, edge), ev.EDGE_ADDED, edge
        )

    async def delete_edge(self, connection: Connection, project_id: str, edge_id: str) -> None:
        await self._mutate_and_relay(
            connection, project_id, lambda d: ops.delete_edge(d, edge_id), ev.EDGE_DELETED, {"edgeId": edge_id}
        )

    async def update_edge(
        self, connection: Connection, project_id: str, edge_id: str, prop: str, value: Any
    ) -> None:
        await self._mutate_and_relay(
            connection,
            project_id,
            lambda d: ops.update_edge(d, edge_id, prop, value),
            ev.EDGE_UPDATE,
            {"edgeId": edge_id, "property": prop, "value": value},
        )

    async def move_mouse(self, connection: Connection, message: ev.MouseMoved) -> None:
        try:
            await self._emit_peers(
                connection,
                message.project_id,
                ev.MOUSE_MOVE,
                {
                    "userId": message.user_id,
                    "userName": message.user_name,
                    "position": message.position,
                    "projectId": message.project_id,
                },
            )
        except Exception as e:
            logger.error(f"Error handling {ev.MOUSE_MOVE} for project {message.project_id}: {e}")

    # --------------- Broadcast ---------------
    async def _send_to(self, connection_ids, event: str, data: Any) -> None:
        for connection_id in connection_ids:
            target = self._connections.get(connection_id)
            if target is None:
                continue
            try:
                await target.send(event, data)
            except Exception as e:
                logger.warning(f"Failed to deliver {event} to {connection_id}: {e}")

    async def _emit_room(self, project_id: str, event: str, data: Any) -> None:
        await self._send_to(self._presence.connection_ids(project_id), event, data)

    async def _emit_peers(self, sender: Connection, project_id: str, event: str, data: Any) -> None:
        peers = [cid for cid in self._presence.connection_ids(project_id) if cid != sender.connection_id]
        await self._send_to(peers, event, data)

    # --------------- Change feed ---------------
    async def watch_cache_changes(self, retry_delay: float = 1.0) -> None:
        """Schedule write-backs for diagram keys written by anyone, including other processes."""
        while True:
            try:
                async for change in self._cache.subscribe_changes(f"{DIAGRAM_KEY_PREFIX}*"):
                    if change.operation != "set" or self._consume_fill(change.key):
                        continue
                    self.schedule_write_back(change.key[len(DIAGRAM_KEY_PREFIX):])
            except Exception as e:
                logger.error(f"Cache change feed interrupted: {e}")
            await asyncio.sleep(retry_delay)

    def _consume_fill(self, key: str) -> bool:
        """True when a feed event is the echo of this engine's own hydration fill."""
        remaining = self._pending_fills.get(key, 0)
        if remaining == 0:
            return False
        if remaining == 1:
            del self._pending_fills[key]
        else:
            self._pending_fills[key] = remaining - 1
        return True

    def start(self) -> None:
        if self._watch_task is None:
            self._watch_task = asyncio.get_running_loop().create_task(
                self.watch_cache_changes(), name="diagram-change-feed"
            )

    async def close(self) -> None:
        """Stop the change feed and cancel outstanding write-back timers."""
        if self._watch_task is not None:
            self._watch_task.cancel()
            await asyncio.gather(self._watch_task, return_exceptions=True)
            self._watch_task = None
        self._pending_fills.clear()
        await self._debouncer.close()
