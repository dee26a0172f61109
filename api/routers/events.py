"""
WebSocket endpoint pushing job progress to the browser
"""
from fastapi import APIRouter, WebSocket
import structlog

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def job_events(websocket: WebSocket):
    """
    Server push only. Incoming frames are read and ignored until the
    client goes away.
    """
    connections = websocket.app.state.connections
    registry = websocket.app.state.registry

    connection = await connections.connect(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        connections.disconnect(connection)
        orphaned = registry.remove_for_connection(connection)
        if orphaned:
            # Pipelines keep running, their messages are dropped
            logger.info("Observer left with jobs in flight",
                        connection_id=connection.id, job_ids=orphaned)
