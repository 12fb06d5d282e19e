"""WebSocket API endpoints for real-time card updates."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from task_enrichment.factory import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Push card and feedback events to the client.

    Args:
        websocket: WebSocket connection
    """
    manager = get_connection_manager()
    await manager.connect(websocket)
    try:
        while True:
            # Only ping/pong comes from the client
            data = await websocket.receive_text()
            logger.debug(f"[WebSocket] Received from client: {data}")
            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        logger.info("[WebSocket] Client disconnected normally")
        manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"[WebSocket] Error: {e}", exc_info=True)
        manager.disconnect(websocket)
