from sqlalchemy import Column, Integer, String
from .database import Base, SCHEDULE_TABLE


class Schedule(Base):
    __tablename__ = SCHEDULE_TABLE

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    stop_name = Column(String, nullable=False, index=True)
    arrival_time = Column(Integer, nullable=False, index=True)  # Seconds since the epoch

    def __repr__(self) -> str:
        return f"Schedule(id={self.id!r}, stop_name={self.stop_name!r}, arrival_time={self.arrival_time!r})"
