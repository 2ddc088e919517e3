from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from scheduler.models.appointment import Appointment
from scheduler.models.schedule import Schedule
from scheduler.repository import SqlAlchemyRepository

MONDAY_RANGE = {'start_date': '2026-01-05T00:00:00', 'end_date': '2026-01-05T23:59:00'}


@pytest.fixture
def monday_schedule(db_session, host) -> Schedule:
    schedule = Schedule(
        user_id=host.id,
        availability='[{"day": "monday", "windows": [{"start": "09:00", "end": "12:00"}]}]',
    )
    db_session.add(schedule)
    db_session.commit()
    return schedule


def add_appointment(db_session, host, event, start: datetime, end: datetime, status: str = 'scheduled') -> None:
    db_session.add(Appointment(
        event_id=event.id,
        user_id=host.id,
        invitee_email='guest@example.com',
        start_time=start,
        end_time=end,
        status=status,
    ))
    db_session.commit()


def test_lists_slots_with_busy_marks(client, db_session, host, intro_call, monday_schedule) -> None:
    add_appointment(db_session, host, intro_call, datetime(2026, 1, 5, 10, 0), datetime(2026, 1, 5, 10, 30))

    response = client.get(f'/availability/{host.id}', params=MONDAY_RANGE)

    assert response.status_code == 200
    slots = response.json()
    assert len(slots) == 6
    assert slots[0] == {'start': '2026-01-05T09:00:00', 'end': '2026-01-05T09:30:00', 'available': True}
    assert [slot['start'] for slot in slots if not slot['available']] == ['2026-01-05T10:00:00']


def test_canceled_appointments_leave_slots_open(client, db_session, host, intro_call, monday_schedule) -> None:
    add_appointment(
        db_session, host, intro_call, datetime(2026, 1, 5, 10, 0), datetime(2026, 1, 5, 10, 30), status='canceled'
    )

    slots = client.get(f'/availability/{host.id}', params=MONDAY_RANGE).json()

    assert all(slot['available'] for slot in slots)


def test_available_only_filter(client, db_session, host, intro_call, monday_schedule) -> None:
    add_appointment(db_session, host, intro_call, datetime(2026, 1, 5, 9, 0), datetime(2026, 1, 5, 11, 0))

    response = client.get(f'/availability/{host.id}', params={**MONDAY_RANGE, 'available_only': True})

    assert [slot['start'] for slot in response.json()] == ['2026-01-05T11:00:00', '2026-01-05T11:30:00']


def test_missing_schedule_is_not_found(client, host) -> None:
    response = client.get(f'/availability/{host.id}', params=MONDAY_RANGE)

    assert response.status_code == 404
    assert response.json()['detail'] == 'No schedule found for this user'


def test_corrupted_schedule_is_a_server_error(client, db_session, host) -> None:
    db_session.add(Schedule(user_id=host.id, availability='[{"day": "monday", "windows": "always"}]'))
    db_session.commit()

    response = client.get(f'/availability/{host.id}', params=MONDAY_RANGE)

    assert response.status_code == 500
    assert response.json()['detail'] == 'Invalid availability data format'


def test_inverted_range_returns_empty_list(client, host, monday_schedule) -> None:
    response = client.get(
        f'/availability/{host.id}',
        params={'start_date': '2026-01-06T00:00:00', 'end_date': '2026-01-05T00:00:00'},
    )

    assert response.status_code == 200
    assert response.json() == []


def test_range_longer_than_limit_is_rejected(client, host, monday_schedule) -> None:
    response = client.get(
        f'/availability/{host.id}',
        params={'start_date': '2026-01-01T00:00:00', 'end_date': '2027-01-01T00:00:00'},
    )

    assert response.status_code == 400


def test_missing_range_is_rejected(client, host) -> None:
    assert client.get(f'/availability/{host.id}').status_code == 422


def test_public_booking_takes_open_slot(client, db_session, host, intro_call, monday_schedule) -> None:
    response = client.post(
        f'/availability/{host.id}/bookings',
        json={'event_id': intro_call.id, 'invitee_email': 'Guest@Example.com', 'start_time': '2026-01-05T09:30:00'},
    )

    assert response.status_code == 201
    assert response.json()['end_time'] == '2026-01-05T10:00:00'
    assert response.json()['invitee_email'] == 'guest@example.com'

    slots = client.get(f'/availability/{host.id}', params=MONDAY_RANGE).json()
    assert [slot['start'] for slot in slots if not slot['available']] == ['2026-01-05T09:30:00']


@pytest.mark.parametrize('start_time', ['2026-01-05T10:00:00', '2026-01-05T12:00:00', '2026-01-05T09:10:00'])
def test_public_booking_rejects_unavailable_time(
    client, db_session, host, intro_call, monday_schedule, start_time: str
) -> None:
    add_appointment(db_session, host, intro_call, datetime(2026, 1, 5, 10, 0), datetime(2026, 1, 5, 10, 30))

    response = client.post(
        f'/availability/{host.id}/bookings',
        json={'event_id': intro_call.id, 'invitee_email': 'guest@example.com', 'start_time': start_time},
    )

    assert response.status_code == 409
    assert response.json()['detail'] == 'Requested time is not available.'


def test_public_booking_requires_hosts_event(client, host, monday_schedule) -> None:
    response = client.post(
        f'/availability/{host.id}/bookings',
        json={'event_id': 'missing', 'invitee_email': 'guest@example.com', 'start_time': '2026-01-05T09:30:00'},
    )

    assert response.status_code == 404


def test_hosts_zone_decides_listing_and_booking(client, db_session, host, intro_call, monday_schedule) -> None:
    host.timezone = 'Europe/Berlin'
    db_session.commit()

    listed_with_offset = client.get(
        f'/availability/{host.id}',
        params={'start_date': '2026-01-04T17:00:00-05:00', 'end_date': '2026-01-05T16:59:00-05:00'},
    ).json()
    listed_in_utc = client.get(
        f'/availability/{host.id}',
        params={'start_date': '2026-01-04T22:00:00Z', 'end_date': '2026-01-05T21:59:00Z'},
    ).json()

    assert listed_with_offset == listed_in_utc
    assert listed_with_offset[0] == {
        'start': '2026-01-05T09:00:00+01:00',
        'end': '2026-01-05T09:30:00+01:00',
        'available': True,
    }

    # 09:00 in Berlin, given in UTC
    response = client.post(
        f'/availability/{host.id}/bookings',
        json={
            'event_id': intro_call.id,
            'invitee_email': 'guest@example.com',
            'start_time': '2026-01-05T08:00:00Z',
        },
    )
    assert response.status_code == 201
    assert response.json()['start_time'] == '2026-01-05T08:00:00'

    too_early = client.post(
        f'/availability/{host.id}/bookings',
        json={
            'event_id': intro_call.id,
            'invitee_email': 'guest@example.com',
            'start_time': '2026-01-05T07:00:00Z',
        },
    )
    assert too_early.status_code == 409

    slots = client.get(f'/availability/{host.id}', params=MONDAY_RANGE).json()
    assert [slot['start'] for slot in slots if not slot['available']] == ['2026-01-05T09:00:00+01:00']


def test_host_without_zone_reads_template_as_utc(client, host, intro_call, monday_schedule) -> None:
    slots = client.get(
        f'/availability/{host.id}',
        params={'start_date': '2026-01-04T19:00:00-05:00', 'end_date': '2026-01-05T18:59:00-05:00'},
    ).json()

    assert slots[0]['start'] == '2026-01-05T09:00:00'

    response = client.post(
        f'/availability/{host.id}/bookings',
        json={
            'event_id': intro_call.id,
            'invitee_email': 'guest@example.com',
            'start_time': '2026-01-05T11:00:00+02:00',
        },
    )
    assert response.status_code == 201


def test_database_failure_answers_service_unavailable(client, host, monkeypatch) -> None:
    def fail(self, user_id: str):
        raise OperationalError('SELECT schedules', {}, Exception('connection refused'))

    monkeypatch.setattr(SqlAlchemyRepository, 'get_schedule', fail)

    response = client.get(f'/availability/{host.id}', params=MONDAY_RANGE)

    assert response.status_code == 503
    assert response.json()['detail'] == 'Database unavailable. Verify DATABASE_URL.'
