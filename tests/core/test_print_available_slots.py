import json

import pytest

from scheduler import print_available_slots
from scheduler.models.schedule import Schedule


def test_prints_one_json_object_per_slot(db_session, host, monkeypatch, capsys) -> None:
    db_session.add(Schedule(user_id=host.id, availability='{"monday": [{"start": "09:00", "end": "10:00"}]}'))
    db_session.commit()
    monkeypatch.setattr(print_available_slots, 'SessionLocal', lambda: db_session)

    print_available_slots.main([host.id, '2026-01-05T00:00:00', '2026-01-05T23:00:00'])

    lines = capsys.readouterr().out.splitlines()
    assert [json.loads(line)['start'] for line in lines] == ['2026-01-05T09:00:00', '2026-01-05T09:30:00']


def test_exits_with_message_when_schedule_is_missing(db_session, monkeypatch, capsys) -> None:
    monkeypatch.setattr(print_available_slots, 'SessionLocal', lambda: db_session)

    with pytest.raises(SystemExit) as exit_info:
        print_available_slots.main(['nobody', '2026-01-05T00:00:00', '2026-01-05T23:00:00'])

    assert exit_info.value.code == 1
    assert capsys.readouterr().err.strip() == 'No schedule found for this user'
