import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lawbook.db")

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_time_slot_schema_checked = False
_appointment_schema_checked = False


def ensure_time_slot_schema() -> None:
    global _time_slot_schema_checked

    if _time_slot_schema_checked:
        return

    with _schema_lock:
        if _time_slot_schema_checked:
            return

        inspector = inspect(engine)

        if 'time_slots' not in inspector.get_table_names():
            _time_slot_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_time_slots_lawyer_date ON time_slots(lawyer_id, date, start_time)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_time_slots_available_date ON time_slots(is_available, date)')
            )

        _time_slot_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_slot_status ON appointments(time_slot_id, status)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_created ON appointments(created_at)')
            )

        _appointment_schema_checked = True
