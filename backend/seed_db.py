"""
Build the prebuilt schedule database that ships with the app.
Run this once at build time; the app itself never writes to the database.

    python seed_db.py [output_path]
"""
import sys
from pathlib import Path
from typing import Iterable, Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from bus_schedule.config import settings
from bus_schedule.database import Base
from bus_schedule.models import Schedule

# (stop name, arrival time in epoch seconds)
SCHEDULE_SEED = [
    ("Main Street", 1617202800),
    ("Park Street", 1617203040),
    ("Maple Avenue", 1617203340),
    ("Broadway Avenue", 1617203640),
    ("Post Street", 1617204000),
    ("Elm Street", 1617204300),
    ("Oak Drive", 1617204600),
    ("Middle Street", 1617204840),
    ("Palm Avenue", 1617205080),
    ("Winding Way", 1617205320),
    ("Main Street", 1617206400),
    ("Park Street", 1617206640),
    ("Maple Avenue", 1617206940),
    ("Broadway Avenue", 1617207240),
    ("Post Street", 1617207600),
    ("Elm Street", 1617207900),
    ("Oak Drive", 1617208200),
    ("Middle Street", 1617208440),
    ("Palm Avenue", 1617208680),
    ("Winding Way", 1617208920),
    ("Main Street", 1617210000),
    ("Park Street", 1617210240),
    ("Maple Avenue", 1617210540),
    ("Broadway Avenue", 1617210840),
    ("Post Street", 1617211200),
    ("Elm Street", 1617211500),
    ("Oak Drive", 1617211800),
    ("Middle Street", 1617212040),
    ("Palm Avenue", 1617212280),
    ("Winding Way", 1617212520),
]


def build_schedule_database(path: Path, entries: Optional[Iterable[Tuple[str, int]]] = None) -> int:
    """Create the schedule table at path and fill it. Returns the number of rows inserted."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{path}")
    try:
        Base.metadata.create_all(bind=engine)
        with Session(engine) as db:
            if db.query(Schedule).count() > 0:
                return 0
            rows = [
                Schedule(stop_name=stop_name, arrival_time=arrival_time)
                for stop_name, arrival_time in (SCHEDULE_SEED if entries is None else entries)
            ]
            db.add_all(rows)
            db.commit()
            return len(rows)
    finally:
        engine.dispose()


def seed_database():
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(settings.database_asset)
    inserted = build_schedule_database(target)
    if inserted:
        print(f"Schedule database built at {target}")
        print(f"   - Arrivals: {inserted}")
    else:
        print(f"Schedule database at {target} already populated, nothing to do.")


if __name__ == "__main__":
    seed_database()
