from sqlalchemy import create_engine, inspect, text

from scheduler import database


def test_ensure_schema_adds_columns_missing_from_older_databases(monkeypatch) -> None:
    engine = create_engine('sqlite://')
    with engine.begin() as connection:
        connection.execute(text('CREATE TABLE users (id VARCHAR PRIMARY KEY, name VARCHAR, email VARCHAR)'))
        connection.execute(text('CREATE TABLE events (id VARCHAR PRIMARY KEY, name VARCHAR, duration INTEGER)'))
        connection.execute(text(
            'CREATE TABLE appointments (id VARCHAR PRIMARY KEY, event_id VARCHAR, user_id VARCHAR, '
            'invitee_email VARCHAR, start_time DATETIME, end_time DATETIME)'
        ))
    monkeypatch.setattr(database, '_schema_checked', False)

    database.ensure_schema(bind=engine)

    inspector = inspect(engine)
    assert {'token', 'timezone'} <= {column['name'] for column in inspector.get_columns('users')}
    assert 'user_id' in {column['name'] for column in inspector.get_columns('events')}
    assert 'status' in {column['name'] for column in inspector.get_columns('appointments')}
    assert 'idx_appointments_user_time_range' in {index['name'] for index in inspector.get_indexes('appointments')}
    assert database._schema_checked is True


def test_ensure_schema_skips_tables_that_do_not_exist(monkeypatch) -> None:
    engine = create_engine('sqlite://')
    monkeypatch.setattr(database, '_schema_checked', False)

    database.ensure_schema(bind=engine)

    assert inspect(engine).get_table_names() == []
