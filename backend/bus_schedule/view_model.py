import asyncio
import logging
from typing import AsyncGenerator, Callable, List, Optional, TypeVar

from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from .config import settings
from .db_store import ScheduleStore
from .schemas import ScheduleRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def observe(fetch: Callable[[], T], poll_seconds: float) -> AsyncGenerator[T, None]:
    """
    Turn a blocking query into a live stream.

    fetch runs on a worker thread; results are delivered on the caller's event loop.
    The first result is always emitted, later ones only when they differ from the
    previous emission. The stream ends when the consumer closes or cancels it.
    """
    last: Optional[T] = None
    first = True
    while True:
        result = await run_in_threadpool(fetch)
        if first or result != last:
            first = False
            last = result
            yield result
        await asyncio.sleep(poll_seconds)


class BusScheduleViewModel:
    """Schedule queries for the screens, as one-shot lists or live streams."""

    def __init__(self, session_factory: sessionmaker, poll_seconds: Optional[float] = None):
        self._session_factory = session_factory
        self.poll_seconds = settings.feed_poll_seconds if poll_seconds is None else poll_seconds

    def _query(self, run: Callable[[ScheduleStore], list]) -> List[ScheduleRecord]:
        with self._session_factory() as db:
            return [ScheduleRecord.model_validate(row) for row in run(ScheduleStore(db))]

    def full_schedule(self) -> List[ScheduleRecord]:
        return self._query(lambda store: store.get_all())

    def schedule_for_stop_name(self, stop_name: str) -> List[ScheduleRecord]:
        return self._query(lambda store: store.get_by_stop_name(stop_name))

    def watch_full_schedule(self) -> AsyncGenerator[List[ScheduleRecord], None]:
        return observe(self.full_schedule, self.poll_seconds)

    def watch_schedule_for_stop_name(self, stop_name: str) -> AsyncGenerator[List[ScheduleRecord], None]:
        logger.debug("Watching schedule for stop %r", stop_name)
        return observe(lambda: self.schedule_for_stop_name(stop_name), self.poll_seconds)
