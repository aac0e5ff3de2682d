"""
Rendering of schedule records as display rows.

BusStopAdapter keeps the rows currently shown on a screen and, for every new
list of records, reports only the rows that were inserted, removed or changed.
"""
from datetime import datetime, timezone
from difflib import SequenceMatcher
from typing import Callable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from .config import settings
from .schemas import RowUpdate, ScheduleRecord, ScheduleRow


def _display_zone(tz_name: Optional[str]):
    name = tz_name or settings.display_timezone
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def format_arrival_time(arrival_time: int, tz_name: Optional[str] = None) -> str:
    """Time of day for an epoch-seconds arrival, e.g. "5:02 PM"."""
    local = datetime.fromtimestamp(arrival_time, tz=_display_zone(tz_name))
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"


def to_row(record: ScheduleRecord, tz_name: Optional[str] = None) -> ScheduleRow:
    return ScheduleRow(
        id=record.id,
        stop_name=record.stop_name,
        arrival_time=record.arrival_time,
        display_time=format_arrival_time(record.arrival_time, tz_name),
    )


def diff_rows(old: Sequence[ScheduleRow], new: Sequence[ScheduleRow]) -> List[RowUpdate]:
    """
    Structural diff between two row lists.

    Rows are the same item when their ids match. Removals carry positions in `old`;
    insertions and changes carry positions in `new`. Applying removals from the
    highest position down, then insertions in ascending order, then changes,
    turns `old` into `new`.
    """
    matcher = SequenceMatcher(None, [r.id for r in old], [r.id for r in new], autojunk=False)
    removals: List[RowUpdate] = []
    insertions: List[RowUpdate] = []
    changes: List[RowUpdate] = []

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            for offset in range(i2 - i1):
                if old[i1 + offset] != new[j1 + offset]:
                    changes.append(RowUpdate(kind="change", position=j1 + offset, row=new[j1 + offset]))
            continue
        # replace = delete + insert
        if tag in ("delete", "replace"):
            removals.extend(RowUpdate(kind="remove", position=i) for i in range(i1, i2))
        if tag in ("insert", "replace"):
            insertions.extend(RowUpdate(kind="insert", position=j, row=new[j]) for j in range(j1, j2))

    removals.sort(key=lambda u: u.position, reverse=True)
    return removals + insertions + changes


class BusStopAdapter:
    """Rows for one list on screen, plus tap handling."""

    def __init__(
        self,
        on_item_click: Optional[Callable[[ScheduleRecord], None]] = None,
        tz_name: Optional[str] = None,
    ):
        self._on_item_click = on_item_click
        self._tz_name = tz_name
        self._records: List[ScheduleRecord] = []
        self._rows: List[ScheduleRow] = []

    @property
    def rows(self) -> List[ScheduleRow]:
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._records)

    def get_item(self, position: int) -> ScheduleRecord:
        if position < 0 or position >= len(self._records):
            raise IndexError(f"No row at position {position}")
        return self._records[position]

    def submit_list(self, records: Sequence[ScheduleRecord]) -> List[RowUpdate]:
        rows = [to_row(record, self._tz_name) for record in records]
        updates = diff_rows(self._rows, rows)
        self._records = list(records)
        self._rows = rows
        return updates

    def click(self, position: int) -> ScheduleRecord:
        record = self.get_item(position)
        if self._on_item_click is not None:
            self._on_item_click(record)
        return record
