from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db, get_session_factory
from .db_store import ScheduleStore
from .view_model import BusScheduleViewModel


def get_store(db: Session = Depends(get_db)) -> ScheduleStore:
    """Get schedule store instance"""
    return ScheduleStore(db)


def get_view_model() -> BusScheduleViewModel:
    return BusScheduleViewModel(get_session_factory())
