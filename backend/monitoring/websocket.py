"""
WebSocket endpoint for realtime POS monitoring.

Connect: ws://host/ws/monitoring

Messages sent to client:
    {"type": "initial_status", ...}        once, right after the handshake
    {"type": "device_status_change", ...}  when a terminal's status flips
    {"type": "new_alert", ...}             when an alert is created

Clients send nothing; anything received is ignored.
"""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from monitoring.broadcast import BroadcastChannel
from monitoring.registry import Session

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws/monitoring")
async def websocket_monitoring(websocket: WebSocket):
    channel: BroadcastChannel = websocket.app.state.broadcast
    session = Session(websocket)
    await session.open()

    if not await channel.welcome(session):
        return
    channel.registry.add(session)
    logger.info("ws.connected", session_id=session.id, total=len(channel.registry))

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.warning("ws.transport_error", session_id=session.id, error=repr(exc))
    finally:
        channel.registry.remove(session)
        session.mark_closed()
        logger.info("ws.disconnected", session_id=session.id, total=len(channel.registry))
