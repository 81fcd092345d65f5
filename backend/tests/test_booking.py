from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from counselbook.core.constants import DEFAULT_REJECTION_NOTE
from counselbook.core.errors import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from counselbook.db import models, schemas
from counselbook.db.session import Base
from counselbook.services import booking_service, notification_service, slot_service

from factories import create_profile, create_routine, next_weekday


def booking_payload(teacher_id, booking_date, booking_time=time(13, 30), **overrides):
    data = dict(
        teacher_id=teacher_id,
        student_name="Ayesha Khan",
        card_number="2021-331-004",
        course="B.Sc. CSE",
        subject="Final year project",
        description="Need advice on scoping the thesis",
        booking_date=booking_date,
        booking_time=booking_time,
    )
    data.update(overrides)
    return schemas.BookingCreate(**data)


@pytest.fixture()
def monday(db_session, teacher):
    create_routine(db_session, teacher.id, day_of_week=1, start=time(9, 0), end=time(17, 0))
    return next_weekday(1)


def test_submit_creates_pending_booking(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )

    assert booking.status == models.BookingStatus.pending
    assert booking.version == 1
    assert booking.notification_sent is False
    assert booking.booking_time == time(13, 30)
    assert slot_service.list_claimed_times(db_session, teacher.id, monday) == {810}

    log = db_session.query(models.AuditLog).filter_by(action="booking_created").one()
    assert log.actor_type == models.ActorType.student
    assert log.payload["booking_id"] == booking.id


def test_second_request_for_same_slot_conflicts(db_session, teacher, student, monday):
    other = create_profile(db_session, "student-2")
    booking_service.submit_booking(db_session, student_id=student.id, payload=booking_payload(teacher.id, monday))

    with pytest.raises(ConflictError):
        booking_service.submit_booking(db_session, student_id=other.id, payload=booking_payload(teacher.id, monday))

    assert db_session.query(models.Booking).count() == 1


def test_unaligned_time_is_rejected(db_session, teacher, student, monday):
    with pytest.raises(ValidationError):
        booking_service.submit_booking(
            db_session,
            student_id=student.id,
            payload=booking_payload(teacher.id, monday, booking_time=time(13, 0)),
        )


def test_slot_outside_routine_weekday_is_rejected(db_session, teacher, student, monday):
    with pytest.raises(ValidationError):
        booking_service.submit_booking(
            db_session,
            student_id=student.id,
            payload=booking_payload(teacher.id, monday + timedelta(days=1)),
        )


def test_past_date_is_rejected(db_session, teacher, student, monday):
    with pytest.raises(ValidationError):
        booking_service.submit_booking(
            db_session,
            student_id=student.id,
            payload=booking_payload(teacher.id, date.today() - timedelta(days=7)),
        )


def test_blank_subject_is_rejected(db_session, teacher, student, monday):
    with pytest.raises(ValidationError, match="Subject is required"):
        booking_service.submit_booking(
            db_session,
            student_id=student.id,
            payload=booking_payload(teacher.id, monday, subject="   "),
        )


def test_unknown_teacher_is_not_found(db_session, student, monday):
    with pytest.raises(NotFoundError):
        booking_service.submit_booking(
            db_session, student_id=student.id, payload=booking_payload("nobody", monday)
        )


def test_rejected_booking_frees_the_slot(db_session, teacher, student, monday):
    first = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    booking_service.reject_booking(db_session, first.id, teacher_id=teacher.id)

    second = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    assert second.id != first.id
    assert second.status == models.BookingStatus.pending


def test_create_maps_unique_index_violation_to_conflict(db_session, teacher, student, monday, monkeypatch):
    booking_service.create_booking(db_session, student_id=student.id, payload=booking_payload(teacher.id, monday))

    # stale read: the pre-check sees no claims, the index still refuses the row
    monkeypatch.setattr(slot_service, "list_claimed_times", lambda *_args: set())
    with pytest.raises(ConflictError):
        booking_service.create_booking(
            db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
        )

    assert db_session.query(models.Booking).count() == 1


def test_approve_schedules_reminder(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )

    approved = booking_service.approve_booking(db_session, booking.id, teacher_id=teacher.id)

    assert approved.status == models.BookingStatus.approved
    assert approved.version == 2
    assert approved.notification_sent is True
    reminder = db_session.query(models.BookingReminder).one()
    assert reminder.scheduled_at == datetime.combine(monday, time(11, 30))
    assert reminder.student_email == "student-1@example.edu"
    assert reminder.teacher_email == "teacher-1@example.edu"
    assert reminder.teacher_name == "Dr. Rahman"
    assert reminder.subject == "Final year project"


def test_approve_twice_is_invalid(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    booking_service.approve_booking(db_session, booking.id, teacher_id=teacher.id)

    with pytest.raises(InvalidTransitionError):
        booking_service.approve_booking(db_session, booking.id, teacher_id=teacher.id)


def test_approve_rejected_booking_is_invalid(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    booking_service.reject_booking(db_session, booking.id, teacher_id=teacher.id)

    with pytest.raises(InvalidTransitionError):
        booking_service.approve_booking(db_session, booking.id, teacher_id=teacher.id)


def test_reject_without_notes_uses_placeholder(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )

    rejected = booking_service.reject_booking(db_session, booking.id, teacher_id=teacher.id)

    assert rejected.status == models.BookingStatus.rejected
    assert rejected.teacher_notes == DEFAULT_REJECTION_NOTE == "Booking rejected"
    assert db_session.query(models.BookingReminder).count() == 0


def test_reject_keeps_teacher_notes(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )

    rejected = booking_service.reject_booking(
        db_session, booking.id, teacher_id=teacher.id, notes="Please pick Tuesday"
    )

    assert rejected.teacher_notes == "Please pick Tuesday"


def test_only_owning_teacher_can_decide(db_session, teacher, student, monday):
    other_teacher = create_profile(db_session, "teacher-2", role=models.ProfileRole.teacher)
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )

    with pytest.raises(AuthorizationError):
        booking_service.approve_booking(db_session, booking.id, teacher_id=other_teacher.id)
    with pytest.raises(AuthorizationError):
        booking_service.reject_booking(db_session, booking.id, teacher_id=other_teacher.id)

    db_session.refresh(booking)
    assert booking.status == models.BookingStatus.pending


def test_stale_version_is_a_conflict(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    db_session.query(models.Booking).filter_by(id=booking.id).update({"version": 5})
    db_session.commit()

    with pytest.raises(ConflictError):
        booking_service.approve_booking(db_session, booking.id, teacher_id=teacher.id, expected_version=1)

    current = booking_service.get_booking(db_session, booking.id)
    assert current.status == models.BookingStatus.pending


def test_update_status_reports_transition_lost_to_another_actor(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    booking_service.reject_booking(db_session, booking.id, teacher_id=teacher.id)

    with pytest.raises(InvalidTransitionError):
        booking_service.update_booking_status(
            db_session,
            booking.id,
            models.BookingStatus.pending,
            models.BookingStatus.approved,
            1,
            actor_type=models.ActorType.teacher,
            actor_id=teacher.id,
        )


def test_update_status_refuses_unknown_transition(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )

    with pytest.raises(InvalidTransitionError):
        booking_service.update_booking_status(
            db_session,
            booking.id,
            models.BookingStatus.pending,
            models.BookingStatus.completed,
            booking.version,
            actor_type=models.ActorType.service,
            actor_id=None,
        )


def test_complete_only_from_approved_and_is_repeatable(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    with pytest.raises(InvalidTransitionError):
        booking_service.complete_booking(db_session, booking.id)

    booking_service.approve_booking(db_session, booking.id, teacher_id=teacher.id)
    completed = booking_service.complete_booking(db_session, booking.id)
    again = booking_service.complete_booking(db_session, booking.id)

    assert completed.status == models.BookingStatus.completed
    assert again.status == models.BookingStatus.completed
    assert again.version == completed.version == 3


def test_completed_booking_frees_the_slot(db_session, teacher, student, monday):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    booking_service.approve_booking(db_session, booking.id, teacher_id=teacher.id)
    booking_service.complete_booking(db_session, booking.id)

    assert slot_service.list_claimed_times(db_session, teacher.id, monday) == set()


def test_approval_survives_reminder_store_failure(db_session, teacher, student, monday, monkeypatch):
    from counselbook.core.errors import StoreError

    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )

    def failing_schedule(*_args, **_kwargs):
        raise StoreError()

    monkeypatch.setattr(notification_service, "schedule_reminder", failing_schedule)

    approved = booking_service.approve_booking(db_session, booking.id, teacher_id=teacher.id)

    assert approved.status == models.BookingStatus.approved
    assert approved.notification_sent is False


def test_end_to_end_monday_scenario(db_session, teacher, student, monday):
    second_student = create_profile(db_session, "student-2")

    slots = slot_service.get_availability(db_session, teacher.id, monday)
    assert [slot.start_time for slot in slots] == [540, 630, 720, 810, 900]
    assert all(slot.available for slot in slots)

    first = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    assert first.status == models.BookingStatus.pending

    with pytest.raises(ConflictError):
        booking_service.submit_booking(
            db_session, student_id=second_student.id, payload=booking_payload(teacher.id, monday)
        )

    approved = booking_service.approve_booking(db_session, first.id, teacher_id=teacher.id)
    assert approved.status == models.BookingStatus.approved
    reminder = db_session.query(models.BookingReminder).filter_by(booking_id=first.id).one()
    assert reminder.scheduled_at == datetime.combine(monday, time(13, 30)) - timedelta(hours=2)


def test_booking_queries_and_stats(db_session, teacher, student, monday):
    early = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday, booking_time=time(9, 0))
    )
    late = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday, booking_time=time(15, 0))
    )
    booking_service.reject_booking(db_session, late.id, teacher_id=teacher.id)

    assert [b.id for b in booking_service.list_student_bookings(db_session, student.id)] == [late.id, early.id]
    assert [b.id for b in booking_service.list_teacher_bookings(db_session, teacher.id)] == [early.id, late.id]
    assert [b.id for b in booking_service.list_bookings(db_session, models.BookingStatus.rejected)] == [late.id]

    stats = booking_service.booking_stats(db_session)
    assert stats.total == 2
    assert stats.pending == 1
    assert stats.rejected == 1
    assert stats.approved == 0
    assert stats.completed == 0


def test_time_with_seconds_is_rejected(db_session, teacher, student, monday):
    with pytest.raises(ValidationError):
        booking_service.submit_booking(
            db_session,
            student_id=student.id,
            payload=booking_payload(teacher.id, monday, booking_time=time(13, 30, 45)),
        )
    with pytest.raises(ValidationError):
        booking_service.create_booking(
            db_session,
            student_id=student.id,
            payload=booking_payload(teacher.id, monday, booking_time=time(13, 30, 0, 500)),
        )

    assert db_session.query(models.Booking).count() == 0


def test_student_without_profile_is_not_found(db_session, teacher, monday):
    with pytest.raises(NotFoundError, match="Student profile not found"):
        booking_service.submit_booking(
            db_session, student_id="ghost", payload=booking_payload(teacher.id, monday)
        )


def test_teacher_cannot_book_as_student(db_session, teacher, monday):
    with pytest.raises(NotFoundError, match="Student profile not found"):
        booking_service.submit_booking(
            db_session, student_id=teacher.id, payload=booking_payload(teacher.id, monday)
        )


@pytest.fixture()
def fk_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    @event.listens_for(engine, "connect")
    def _enforce_foreign_keys(dbapi_connection, _record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def test_foreign_key_violation_is_a_validation_error(fk_session):
    teacher = create_profile(fk_session, "teacher-fk", role=models.ProfileRole.teacher)
    create_routine(fk_session, teacher.id, day_of_week=1)
    monday = next_weekday(1)

    with pytest.raises(ValidationError):
        booking_service.create_booking(
            fk_session, student_id="ghost", payload=booking_payload(teacher.id, monday)
        )
    with pytest.raises(NotFoundError):
        booking_service.submit_booking(
            fk_session, student_id="ghost", payload=booking_payload(teacher.id, monday)
        )

    assert fk_session.query(models.Booking).count() == 0


def test_reminder_profile_load_failure_keeps_approval(db_session, teacher, student, monday, monkeypatch):
    booking = booking_service.submit_booking(
        db_session, student_id=student.id, payload=booking_payload(teacher.id, monday)
    )
    booking = booking_service.update_booking_status(
        db_session,
        booking.id,
        models.BookingStatus.pending,
        models.BookingStatus.approved,
        booking.version,
        actor_type=models.ActorType.teacher,
        actor_id=teacher.id,
    )
    db_session.expunge(student)
    db_session.expunge(teacher)
    db_session.expire(booking, ["student", "teacher"])

    def unavailable(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "execute", unavailable)
    booking_service._send_reminder(db_session, booking)
    monkeypatch.undo()

    stored = db_session.get(models.Booking, booking.id)
    assert stored.status == models.BookingStatus.approved
    assert stored.notification_sent is False
    assert db_session.query(models.BookingReminder).count() == 0
