from typing import List
from sqlalchemy.orm import Session

from .models import Schedule


class ScheduleStore:
    """Read-only queries over the schedule table"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> List[Schedule]:
        """All arrivals, earliest first"""
        return self.db.query(Schedule).order_by(
            Schedule.arrival_time.asc(), Schedule.id.asc()
        ).all()

    def get_by_stop_name(self, stop_name: str) -> List[Schedule]:
        """Arrivals at one stop (exact name match), earliest first"""
        return self.db.query(Schedule).filter(
            Schedule.stop_name == stop_name
        ).order_by(Schedule.arrival_time.asc(), Schedule.id.asc()).all()

    def get_stop_names(self) -> List[str]:
        rows = self.db.query(Schedule.stop_name).distinct().order_by(Schedule.stop_name.asc()).all()
        return [row.stop_name for row in rows]
