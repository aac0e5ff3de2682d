import asyncio
import logging
from typing import AsyncGenerator, Dict, List, Set

from fastapi import WebSocket, status
from sqlalchemy.exc import SQLAlchemyError

from .adapter import BusStopAdapter
from .database import StoreUnavailableError
from .navigation import Screen
from .schemas import ScheduleRecord

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE = "Schedule store unavailable"


class ScheduleFeedManager:
    """
    Manages WebSocket connections showing schedule screens.
    screen path -> Set of WebSocket connections, plus one subscription task per connection.
    """

    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {}
        self._subscriptions: Dict[WebSocket, asyncio.Task] = {}

    async def connect(self, websocket: WebSocket, screen: Screen):
        """Accept a connection showing the given screen"""
        await websocket.accept()
        self._track(websocket, screen)
        logger.info("Schedule feed connected on %s. Total connections: %d", screen.path, self.get_connection_count(screen.path))

    def _track(self, websocket: WebSocket, screen: Screen):
        self.active_connections.setdefault(screen.path, set()).add(websocket)

    def _untrack(self, websocket: WebSocket, screen: Screen):
        if screen.path in self.active_connections:
            self.active_connections[screen.path].discard(websocket)
            if not self.active_connections[screen.path]:
                del self.active_connections[screen.path]

    async def disconnect(self, websocket: WebSocket, screen: Screen):
        """Remove a connection and end its subscription"""
        self._untrack(websocket, screen)
        await self.unsubscribe(websocket)
        logger.info("Schedule feed disconnected from %s", screen.path)

    def move(self, websocket: WebSocket, old: Screen, new: Screen):
        """Record that a connection switched screens"""
        self._untrack(websocket, old)
        self._track(websocket, new)

    async def subscribe(
        self,
        websocket: WebSocket,
        screen: Screen,
        records: AsyncGenerator[List[ScheduleRecord], None],
        adapter: BusStopAdapter,
    ):
        """Replace the connection's subscription with a new stream for screen"""
        await self.unsubscribe(websocket)
        self._subscriptions[websocket] = asyncio.create_task(self._pump(websocket, screen, records, adapter))
        logger.debug("Subscribed connection to %s", screen.path)

    async def unsubscribe(self, websocket: WebSocket):
        """Cancel the connection's subscription and wait for it to finish"""
        task = self._subscriptions.pop(websocket, None)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def close_unavailable(self, websocket: WebSocket, screen: Screen, exc: Exception):
        """Tell the client the store is gone and close the connection (1011)"""
        logger.error("%s on %s: %s", STORE_UNAVAILABLE, screen.path, exc)
        try:
            await websocket.send_json({"type": "error", "detail": STORE_UNAVAILABLE})
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except Exception as e:
            logger.warning("Could not close schedule feed on %s: %s", screen.path, e)

    async def _pump(
        self,
        websocket: WebSocket,
        screen: Screen,
        records: AsyncGenerator[List[ScheduleRecord], None],
        adapter: BusStopAdapter,
    ):
        try:
            async for items in records:
                updates = adapter.submit_list(items)
                try:
                    await websocket.send_json({
                        "type": "schedule_update",
                        "screen": screen.title,
                        "path": screen.path,
                        "updates": [u.model_dump() for u in updates],
                        "rows": [r.model_dump() for r in adapter.rows],
                    })
                except Exception as e:
                    logger.warning("Error sending schedule update on %s: %s", screen.path, e)
                    return
        except (StoreUnavailableError, SQLAlchemyError) as e:
            await self.close_unavailable(websocket, screen, e)
        finally:
            await records.aclose()

    def get_connection_count(self, path: str) -> int:
        """Get number of connections currently showing a screen"""
        return len(self.active_connections.get(path, set()))

    async def shutdown(self):
        """Cancel every subscription (application shutdown)"""
        tasks = [task for task in self._subscriptions.values() if not task.done()]
        self._subscriptions.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.active_connections.clear()


# Global feed manager instance
feed_manager = ScheduleFeedManager()
