from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from scheduler.core import config


connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(config.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schema_checked = False

# (table, column, statement) for columns older databases were created without
MIGRATION_STEPS = [
    ('users', 'token', 'ALTER TABLE users ADD COLUMN token VARCHAR'),
    ('users', 'timezone', 'ALTER TABLE users ADD COLUMN timezone VARCHAR'),
    ('events', 'user_id', 'ALTER TABLE events ADD COLUMN user_id VARCHAR'),
    ('appointments', 'status', "ALTER TABLE appointments ADD COLUMN status VARCHAR DEFAULT 'scheduled'"),
]


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schema(bind=None) -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        bind = bind or engine
        inspector = inspect(bind)
        table_names = set(inspector.get_table_names())

        existing_columns = {
            table_name: {column['name'] for column in inspector.get_columns(table_name)}
            for table_name in {step[0] for step in MIGRATION_STEPS} & table_names
        }

        with bind.begin() as connection:
            for table_name, column_name, statement in MIGRATION_STEPS:
                if table_name in existing_columns and column_name not in existing_columns[table_name]:
                    connection.execute(text(statement))

            if 'appointments' in table_names:
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_appointments_user_time_range '
                        'ON appointments(user_id, start_time, end_time)'
                    )
                )

        _schema_checked = True
