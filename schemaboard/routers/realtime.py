"""
Websocket endpoint for collaborative diagram editing.
"""
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from schemaboard.dependencies import get_gatekeeper_chain, get_sync_engine
from schemaboard.domain.errors import AuthenticationError
from schemaboard.realtime.connections import WebSocketConnection
from schemaboard.realtime.engine import DiagramSyncEngine
from schemaboard.realtime.gatekeeper import ConnectionContext, GatekeeperChain

logger = logging.getLogger(__name__)

router = APIRouter()

@router.websocket("/ws")
async def diagram_socket(
    websocket: WebSocket,
    engine: DiagramSyncEngine = Depends(get_sync_engine),
    gatekeepers: GatekeeperChain = Depends(get_gatekeeper_chain),
):
    """
    Authenticate the handshake, then feed every inbound frame to the sync engine
    in arrival order until the client goes away.
    """
    connection = WebSocketConnection(websocket)
    context = ConnectionContext(
        connection_id=connection.connection_id,
        cookies=websocket.cookies,
        auth=websocket.query_params,
        headers=websocket.headers,
    )
    try:
        await gatekeepers.admit(context)
    except AuthenticationError as e:
        logger.info(f"Rejected connection {connection.connection_id}: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e))
        return

    await websocket.accept()
    engine.register(connection)
    logger.info(f"User connected: {connection.connection_id}")
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
            text = message.get("text")
            if text is None:
                logger.warning(f"Ignoring binary frame from {connection.connection_id}")
                continue
            try:
                frame = json.loads(text)
            except ValueError:
                logger.warning(f"Ignoring non-JSON frame from {connection.connection_id}")
                continue
            await engine.handle_frame(connection, frame)
    except WebSocketDisconnect:
        logger.info(f"User disconnected: {connection.connection_id}")
    finally:
        await engine.disconnect(connection)
