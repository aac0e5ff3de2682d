import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.websockets import WebSocketState

from .. import schemas
from ..adapter import BusStopAdapter, to_row
from ..database import StoreUnavailableError
from ..db_store import ScheduleStore
from ..deps import get_store, get_view_model
from ..navigation import FULL_SCHEDULE, ScheduleNavigator, Screen
from ..websocket_manager import feed_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["schedule"])


def _response(screen: Screen, records) -> schemas.ScheduleResponse:
    return schemas.ScheduleResponse(
        title=screen.title,
        stop_name=screen.stop_name,
        rows=[to_row(schemas.ScheduleRecord.model_validate(r)) for r in records],
    )


@router.get("", response_model=schemas.ScheduleResponse)
def full_schedule(store: ScheduleStore = Depends(get_store)):
    """Every arrival, earliest first"""
    return _response(FULL_SCHEDULE, store.get_all())


@router.get("/stops", response_model=List[str])
def stop_names(store: ScheduleStore = Depends(get_store)):
    return store.get_stop_names()


@router.get("/stops/{stop_name}", response_model=schemas.ScheduleResponse)
def stop_schedule(stop_name: str, store: ScheduleStore = Depends(get_store)):
    """Arrivals at one stop, earliest first. Unknown stops have no rows."""
    return _response(Screen(stop_name=stop_name), store.get_by_stop_name(stop_name))


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'message'}: {err['msg']}"
        for err in error.errors()
    )


async def _send_error(websocket: WebSocket, detail: str):
    await websocket.send_json({"type": "error", "detail": detail})


async def _show(websocket: WebSocket, navigator: ScheduleNavigator) -> BusStopAdapter:
    """Start streaming the navigator's current screen to the socket"""
    screen = navigator.current
    # Only the full schedule reacts to taps
    on_click = navigator.on_row_tapped if screen.is_full_schedule else None
    adapter = BusStopAdapter(on_item_click=on_click)
    await feed_manager.subscribe(websocket, screen, navigator.watch(), adapter)
    return adapter


@router.websocket("/ws")
async def schedule_feed(websocket: WebSocket, stop_name: Optional[str] = Query(None)):
    """
    Live schedule screens over one connection.

    Client messages: "ping", {"type": "tap", "position": n}, {"type": "back"}.
    Server messages: schedule_update, navigate, error (detail is always a string).
    A store failure sends an error and closes the connection with code 1011.
    """
    screen = Screen(stop_name=stop_name) if stop_name else FULL_SCHEDULE
    await feed_manager.connect(websocket, screen)
    try:
        try:
            navigator = ScheduleNavigator(get_view_model(), start=screen)
        except (StoreUnavailableError, SQLAlchemyError) as e:
            await feed_manager.close_unavailable(websocket, screen, e)
            return

        adapter = await _show(websocket, navigator)
        while websocket.application_state == WebSocketState.CONNECTED:
            data = await websocket.receive_text()
            if websocket.application_state != WebSocketState.CONNECTED:
                break
            if data == "ping":
                await websocket.send_text("pong")
                continue

            try:
                message = schemas.ClientMessage.model_validate_json(data)
            except ValidationError as e:
                await _send_error(websocket, _describe(e))
                continue

            if message.type == "tap":
                if message.position is None:
                    await _send_error(websocket, "tap requires a position")
                    continue
                try:
                    adapter.click(message.position)
                except IndexError as e:
                    await _send_error(websocket, str(e))
                    continue
            else:
                navigator.navigate_up()

            if navigator.current == screen:
                continue

            await feed_manager.unsubscribe(websocket)
            feed_manager.move(websocket, screen, navigator.current)
            screen = navigator.current
            logger.info("Schedule feed navigated to %s", screen.path)
            await websocket.send_json({
                "type": "navigate",
                "screen": screen.title,
                "path": screen.path,
                "stop_name": screen.stop_name,
            })
            adapter = await _show(websocket, navigator)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception("Schedule feed error: %s", e)
        raise
    finally:
        await feed_manager.disconnect(websocket, screen)
