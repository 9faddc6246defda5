import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./appointments.db")

engine = create_engine(DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _apply_migration_steps(connection, table_name: str, migration_steps: list[tuple[str, str]]) -> None:
    existing_columns = {column['name'] for column in inspect(connection).get_columns(table_name)}
    for column_name, statement in migration_steps:
        if column_name not in existing_columns:
            connection.execute(text(statement))


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        table_names = inspect(engine).get_table_names()

        with engine.begin() as connection:
            if 'availability_ranges' in table_names:
                _apply_migration_steps(connection, 'availability_ranges', [
                    ('position', 'ALTER TABLE availability_ranges ADD COLUMN position INTEGER DEFAULT 0'),
                ])
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_ranges_professional_position '
                        'ON availability_ranges(professional_id, position)'
                    )
                )

            if 'availability_slots' in table_names:
                _apply_migration_steps(connection, 'availability_slots', [
                    ('range_id', 'ALTER TABLE availability_slots ADD COLUMN range_id VARCHAR(36)'),
                    ('source', "ALTER TABLE availability_slots ADD COLUMN source VARCHAR DEFAULT 'manual'"),
                    ('appointment_id', 'ALTER TABLE availability_slots ADD COLUMN appointment_id INTEGER'),
                ])
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_slots_professional_start '
                        'ON availability_slots(professional_id, start_time)'
                    )
                )
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_slots_booked_start '
                        'ON availability_slots(is_booked, start_time)'
                    )
                )

        _availability_schema_checked = True


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

        migration_steps = [
            ('reason', 'ALTER TABLE appointments ADD COLUMN reason VARCHAR'),
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
            ('consultation_fee', 'ALTER TABLE appointments ADD COLUMN consultation_fee NUMERIC(10, 2)'),
        ]

        with engine.begin() as connection:
            _apply_migration_steps(connection, 'appointments', migration_steps)
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_professional_start '
                    'ON appointments(professional_id, appointment_datetime)'
                )
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_live_slot '
                    'ON appointments(professional_id, time_slot) '
                    "WHERE status IN ('scheduled', 'confirmed')"
                )
            )

        _appointment_schema_checked = True
