from dataclasses import dataclass
from typing import AsyncGenerator, List, Optional
from urllib.parse import quote

from .schemas import ScheduleRecord
from .view_model import BusScheduleViewModel


@dataclass(frozen=True)
class Screen:
    stop_name: Optional[str] = None  # None for the full schedule

    @property
    def is_full_schedule(self) -> bool:
        return self.stop_name is None

    @property
    def title(self) -> str:
        return "Full Schedule" if self.stop_name is None else self.stop_name

    @property
    def path(self) -> str:
        if self.stop_name is None:
            return "/schedule"
        return f"/schedule/stops/{quote(self.stop_name, safe='')}"


FULL_SCHEDULE = Screen()


class ScheduleNavigator:
    """
    Back stack for the two schedule screens.
    Tapping a row on the full schedule opens that row's stop; taps on a stop screen do nothing.
    """

    def __init__(self, view_model: BusScheduleViewModel, start: Screen = FULL_SCHEDULE):
        self.view_model = view_model
        self._stack: List[Screen] = [start]

    @property
    def current(self) -> Screen:
        return self._stack[-1]

    @property
    def back_stack(self) -> List[Screen]:
        return list(self._stack)

    def on_row_tapped(self, record: ScheduleRecord) -> Screen:
        if self.current.is_full_schedule:
            self._stack.append(Screen(stop_name=record.stop_name))
        return self.current

    def navigate_up(self) -> Screen:
        if len(self._stack) > 1:
            self._stack.pop()
        return self.current

    def load(self) -> List[ScheduleRecord]:
        screen = self.current
        if screen.is_full_schedule:
            return self.view_model.full_schedule()
        return self.view_model.schedule_for_stop_name(screen.stop_name)

    def watch(self) -> AsyncGenerator[List[ScheduleRecord], None]:
        screen = self.current
        if screen.is_full_schedule:
            return self.view_model.watch_full_schedule()
        return self.view_model.watch_schedule_for_stop_name(screen.stop_name)
