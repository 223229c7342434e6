import asyncio
import logging

from fastapi import APIRouter, WebSocket
from fastapi.encoders import jsonable_encoder

from pos_api.services.realtime.feed import ChangeEvent
from pos_api.services.realtime.notifier import RealtimeNotifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])


@router.websocket("/orders")
async def order_events(websocket: WebSocket):
    """stream committed order changes to a kitchen screen."""
    notifier: RealtimeNotifier = websocket.app.state.realtime
    await websocket.accept()

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # called on whichever thread committed the change
    def on_change(event: ChangeEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, jsonable_encoder(event.to_dict()))

    async def forward() -> None:
        while True:
            message = await queue.get()
            await websocket.send_json(message)

    unsubscribe = notifier.subscribe_to_orders(on_change)
    sender = asyncio.create_task(forward())
    try:
        # client frames are ignored; reading is what notices a closed socket
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
        logger.debug("Kitchen screen disconnected")
    finally:
        sender.cancel()
        unsubscribe()
