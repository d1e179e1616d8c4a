# app/routers/live.py
"""
WebSocket live updates.
    ws://host/api/v1/ws/{topic}     e.g. telemetry, alerts, vehicle/3/telemetry, system/mqtt-status
One socket = one hub subscription. Sends are bounded by WS_SEND_TIMEOUT_SECONDS;
a socket that stalls or closes is dropped without affecting anyone else.
"""

import asyncio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from app.config import settings
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


async def _pump_events(websocket: WebSocket, subscription):
    while True:
        event = await subscription.get()
        await asyncio.wait_for(websocket.send_json(event.to_message()),
                               timeout=settings.WS_SEND_TIMEOUT_SECONDS)


async def _wait_for_disconnect(websocket: WebSocket):
    # Dashboards only listen; anything they send is ignored
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/{topic:path}")
async def live_updates(websocket: WebSocket, topic: str):
    hub = websocket.app.state.hub
    subscription = hub.subscribe(topic)
    try:
        await websocket.accept()
        logger.info(f"🔌 Live subscriber {subscription.id} on {topic}")

        pump = asyncio.create_task(_pump_events(websocket, subscription))
        watcher = asyncio.create_task(_wait_for_disconnect(websocket))
        done, pending = await asyncio.wait({pump, watcher}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()

        error = pump.exception() if pump in done else None
        if isinstance(error, asyncio.TimeoutError):
            logger.warning(f"Live subscriber {subscription.id} stalled, closing")
            await websocket.close()
        elif isinstance(error, (WebSocketDisconnect, RuntimeError)):
            logger.info(f"Live subscriber {subscription.id} gone: {error!r}")
        elif error is not None:
            logger.error(f"Live subscriber {subscription.id} failed: {error}", exc_info=error)
        else:
            logger.info(f"Live subscriber {subscription.id} disconnected")
    finally:
        hub.unsubscribe(subscription)
