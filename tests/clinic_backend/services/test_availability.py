from datetime import date, time

import pytest
from sqlalchemy.exc import OperationalError

from clinic_backend.core import config
from clinic_backend.core.errors import InvalidInputError, InvalidTimeFormatError
from clinic_backend.models.appointment import AppointmentStatus
from clinic_backend.services.availability import (
    is_doctor_available,
    parse_time_of_day,
    resolve_working_window,
    times_overlap,
    validate_time_range,
)

MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)
SATURDAY = date(2026, 1, 10)
SUNDAY = date(2026, 1, 11)


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ('09:30', time(9, 30)),
        (' 14:05 ', time(14, 5)),
        ('08:15:00', time(8, 15)),
    ],
)
def test_parse_time_of_day_accepts_hours_and_minutes(value: str, expected: time) -> None:
    assert parse_time_of_day(value) == expected


@pytest.mark.parametrize('value', ['', '9.30', '25:00', 'noon', '10:60'])
def test_parse_time_of_day_rejects_malformed_values(value: str) -> None:
    with pytest.raises(InvalidTimeFormatError):
        parse_time_of_day(value)


def test_validate_time_range_rejects_end_not_after_start() -> None:
    with pytest.raises(InvalidInputError):
        validate_time_range(time(10, 0), time(10, 0))
    with pytest.raises(InvalidInputError):
        validate_time_range(time(11, 0), time(10, 0))


def test_times_overlap_uses_half_open_intervals() -> None:
    assert times_overlap(time(10, 15), time(10, 45), time(10, 0), time(10, 30))
    assert times_overlap(time(9, 0), time(12, 0), time(10, 0), time(10, 30))
    assert not times_overlap(time(10, 30), time(11, 0), time(10, 0), time(10, 30))
    assert not times_overlap(time(9, 0), time(10, 0), time(10, 0), time(10, 30))


@pytest.mark.parametrize(
    ('start_time', 'end_time', 'expected'),
    [
        (time(10, 0), time(11, 0), True),
        (time(9, 0), time(12, 0), True),
        (time(8, 0), time(9, 30), False),
        (time(12, 0), time(13, 0), False),
        (time(11, 30), time(12, 30), False),
    ],
)
def test_configured_working_hours_bound_the_slot(
    appointment_db, make_doctor, start_time: time, end_time: time, expected: bool
) -> None:
    doctor = make_doctor(hours=[(0, time(9, 0), time(12, 0))])

    assert is_doctor_available(appointment_db, doctor.id, MONDAY, start_time, end_time) is expected


@pytest.mark.parametrize('weekend_day', [SATURDAY, SUNDAY])
def test_weekend_without_entry_is_never_available(appointment_db, make_doctor, weekend_day: date) -> None:
    doctor = make_doctor(hours=[(0, time(9, 0), time(12, 0))])

    assert not is_doctor_available(appointment_db, doctor.id, weekend_day, time(10, 0), time(11, 0))
    assert not is_doctor_available(appointment_db, doctor.id, weekend_day, time(0, 0), time(23, 59))


def test_weekend_entry_overrides_fallback(appointment_db, make_doctor) -> None:
    doctor = make_doctor(hours=[(5, time(10, 0), time(14, 0))])

    assert is_doctor_available(appointment_db, doctor.id, SATURDAY, time(11, 0), time(12, 0))
    assert not is_doctor_available(appointment_db, doctor.id, SUNDAY, time(11, 0), time(12, 0))


@pytest.mark.parametrize(
    ('start_time', 'end_time', 'expected'),
    [
        (time(9, 0), time(17, 0), True),
        (time(13, 0), time(13, 30), True),
        (time(8, 30), time(9, 30), False),
        (time(16, 30), time(17, 30), False),
    ],
)
def test_weekday_without_entry_uses_default_workday(
    appointment_db, make_doctor, start_time: time, end_time: time, expected: bool
) -> None:
    doctor = make_doctor(hours=[(0, time(9, 0), time(12, 0))])

    assert is_doctor_available(appointment_db, doctor.id, TUESDAY, start_time, end_time) is expected


def test_strict_fallback_closes_days_without_entry(appointment_db, make_doctor, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'WORKING_HOURS_FALLBACK', 'strict')
    doctor = make_doctor(hours=[(0, time(9, 0), time(12, 0))])

    assert resolve_working_window(appointment_db, doctor.id, TUESDAY) is None
    assert not is_doctor_available(appointment_db, doctor.id, TUESDAY, time(10, 0), time(11, 0))
    assert is_doctor_available(appointment_db, doctor.id, MONDAY, time(10, 0), time(11, 0))


def test_unknown_doctor_is_not_available(appointment_db) -> None:
    assert not is_doctor_available(appointment_db, 999, TUESDAY, time(10, 0), time(11, 0))


def test_end_not_after_start_is_not_available(appointment_db, make_doctor) -> None:
    doctor = make_doctor()

    assert not is_doctor_available(appointment_db, doctor.id, TUESDAY, time(11, 0), time(10, 0))
    assert not is_doctor_available(appointment_db, doctor.id, TUESDAY, time(10, 0), time(10, 0))


def test_overlapping_appointment_blocks_slot(appointment_db, make_doctor, make_patient, make_appointment) -> None:
    doctor = make_doctor()
    patient = make_patient()
    make_appointment(doctor.id, patient.id, TUESDAY, time(10, 0), time(10, 30))

    assert not is_doctor_available(appointment_db, doctor.id, TUESDAY, time(10, 15), time(10, 45))
    assert not is_doctor_available(appointment_db, doctor.id, TUESDAY, time(9, 0), time(12, 0))
    assert is_doctor_available(appointment_db, doctor.id, TUESDAY, time(10, 30), time(11, 0))
    assert is_doctor_available(appointment_db, doctor.id, TUESDAY, time(9, 30), time(10, 0))


def test_cancelled_appointment_does_not_block_slot(
    appointment_db, make_doctor, make_patient, make_appointment
) -> None:
    doctor = make_doctor()
    patient = make_patient()
    make_appointment(doctor.id, patient.id, TUESDAY, time(10, 0), time(10, 30), status=AppointmentStatus.CANCELLED)

    assert is_doctor_available(appointment_db, doctor.id, TUESDAY, time(10, 15), time(10, 45))


@pytest.mark.parametrize('status', [AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW])
def test_non_cancelled_statuses_still_block_slot(
    appointment_db, make_doctor, make_patient, make_appointment, status: AppointmentStatus
) -> None:
    doctor = make_doctor()
    patient = make_patient()
    make_appointment(doctor.id, patient.id, TUESDAY, time(10, 0), time(10, 30), status=status)

    assert not is_doctor_available(appointment_db, doctor.id, TUESDAY, time(10, 15), time(10, 45))


def test_excluded_appointment_does_not_conflict_with_itself(
    appointment_db, make_doctor, make_patient, make_appointment
) -> None:
    doctor = make_doctor()
    patient = make_patient()
    existing = make_appointment(doctor.id, patient.id, TUESDAY, time(10, 0), time(10, 30))

    assert is_doctor_available(
        appointment_db, doctor.id, TUESDAY, time(10, 0), time(10, 30), exclude_appointment_id=existing.id,
    )


def test_other_doctors_and_dates_do_not_conflict(appointment_db, make_doctor, make_patient, make_appointment) -> None:
    doctor = make_doctor()
    colleague = make_doctor(name='Dr. Shepherd')
    patient = make_patient()
    make_appointment(colleague.id, patient.id, TUESDAY, time(10, 0), time(10, 30))
    make_appointment(doctor.id, patient.id, date(2026, 1, 7), time(10, 0), time(10, 30))

    assert is_doctor_available(appointment_db, doctor.id, TUESDAY, time(10, 0), time(10, 30))


class _BrokenSession:
    def query(self, *args, **kwargs):
        raise OperationalError('SELECT doctors', {}, Exception('connection refused'))


def test_lookup_fault_fails_closed() -> None:
    assert is_doctor_available(_BrokenSession(), 1, TUESDAY, time(10, 0), time(11, 0)) is False
