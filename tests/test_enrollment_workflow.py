import pytest

from conftest import identity_of, utc
from tradecert.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from tradecert.crud.course import course_crud
from tradecert.crud.enrollment import enrollment_crud
from tradecert.models.course import Course
from tradecert.models.enrollment import EnrollmentStatus
from tradecert.services import enrollment as workflow

BEFORE = utc(2025, 3, 1, 3, 0)
# default course: 2025-03-10 09:00Z for 3 hours, so codes are good until 14:00Z


def register(db, user, course, now=BEFORE):
    return workflow.register_for_course(db, identity_of(user), user_id=user.id, course_id=course.id, now=now)


# -------------------------- registration --------------------------

def test_register_reserves_seat_and_appends_training(db, make):
    user, trader = make.trader_user()
    course = make.course(max_seats=5)

    out = register(db, user, course)

    assert out.enrollment.status == EnrollmentStatus.pending
    assert out.course.id == course.id
    db.refresh(course)
    assert course.available_seats == 4
    db.refresh(trader)
    assert [(t.course_id, t.is_completed) for t in trader.trainings] == [(course.id, False)]
    assert course_crud.is_registered(db, course.id, user.id)


def test_register_twice_is_rejected(db, make):
    user, trader = make.trader_user()
    course = make.course()
    register(db, user, course)

    with pytest.raises(Conflict) as err:
        register(db, user, course)
    assert err.value.code == "ALREADY_ENROLLED"
    db.refresh(course)
    assert course.available_seats == course.max_seats - 1


def test_register_same_local_day_conflicts(db, make):
    user, trader = make.trader_user()
    morning = make.course(course_date=utc(2025, 3, 10, 2, 0))   # 09:00 in Bangkok
    evening = make.course(course_date=utc(2025, 3, 10, 12, 0))  # 19:00 in Bangkok
    register(db, user, morning)

    with pytest.raises(Conflict) as err:
        register(db, user, evening)
    assert err.value.code == "SCHEDULE_CONFLICT"


def test_register_past_course_rejected_by_local_day(db, make):
    user, trader = make.trader_user()
    course = make.course()

    with pytest.raises(ValidationFailed) as err:
        register(db, user, course, now=utc(2025, 3, 11, 1, 0))
    assert err.value.code == "COURSE_ALREADY_TOOK_PLACE"

    # later on the course day itself is still allowed
    out = register(db, user, course, now=utc(2025, 3, 10, 15, 0))
    assert out.enrollment.status == EnrollmentStatus.pending


def test_register_last_seat_then_no_seats(db, make):
    course = make.course(max_seats=1)
    first, _ = make.trader_user()
    second, _ = make.trader_user()
    register(db, first, course)

    with pytest.raises(Conflict) as err:
        register(db, second, course)
    assert err.value.code == "NO_SEATS"
    db.refresh(course)
    assert course.available_seats == 0


def test_register_losing_seat_race_leaves_no_partial_state(db, make, session_factory):
    course = make.course(max_seats=1)
    user, trader = make.trader_user()
    course_crud.get(db, course.id)  # cached with one seat left

    with session_factory() as other:
        other.query(Course).filter(Course.id == course.id).update({"available_seats": 0})
        other.commit()

    with pytest.raises(Conflict) as err:
        register(db, user, course)
    assert err.value.code == "NO_SEATS"

    assert enrollment_crud.get_for(db, user_id=user.id, course_id=course.id) is None
    db.refresh(trader)
    assert trader.trainings == []
    assert not course_crud.is_registered(db, course.id, user.id)
    db.refresh(course)
    assert course.available_seats == 0


def test_register_preconditions(db, make):
    course = make.course()
    user, _ = make.trader_user(is_deleted=True)

    with pytest.raises(ValidationFailed) as err:
        register(db, user, course)
    assert err.value.code == "TRADER_DEACTIVATED"

    no_trader = make.user()
    with pytest.raises(NotFound) as err:
        register(db, no_trader, course)
    assert err.value.code == "TRADER_NOT_FOUND"

    active_user, _ = make.trader_user()
    gone = make.course(is_deleted=True)
    with pytest.raises(ValidationFailed) as err:
        register(db, active_user, gone)
    assert err.value.code == "COURSE_UNAVAILABLE"

    with pytest.raises(NotFound) as err:
        workflow.register_for_course(db, identity_of(active_user), user_id=active_user.id, course_id=9999, now=BEFORE)
    assert err.value.code == "COURSE_NOT_FOUND"


def test_register_for_someone_else_requires_admin(db, make):
    course = make.course()
    trader = make.trader()
    stranger = make.user()

    with pytest.raises(Forbidden):
        workflow.register_for_course(db, identity_of(stranger), user_id=trader.user_id, course_id=course.id, now=BEFORE)

    admin = make.admin()
    out = workflow.register_for_course(db, identity_of(admin), user_id=trader.user_id, course_id=course.id, now=BEFORE)
    assert out.trader.user_id == trader.user_id


# -------------------------- attendance code --------------------------

def test_code_generation_window(db, make):
    course = make.course()

    with pytest.raises(ValidationFailed) as err:
        workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 8, 59))
    assert err.value.code == "CODE_BEFORE_START"

    with pytest.raises(ValidationFailed) as err:
        workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 14, 1))
    assert err.value.code == "CODE_PERIOD_EXPIRED"

    out = workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 9, 30))
    assert len(out.course_code) == 6 and out.course_code.isdigit()
    assert 100000 <= int(out.course_code) <= 999999
    assert out.valid_until == utc(2025, 3, 10, 14, 0)


def test_code_generated_once_per_session(db, make):
    course = make.course()
    first = workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 9, 30))

    with pytest.raises(Conflict) as err:
        workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 10, 0))
    assert err.value.code == "CODE_ALREADY_GENERATED"
    assert err.value.data == {"existing_code": first.course_code}


def _registered(db, make, **course_fields):
    course = make.course(**course_fields)
    user, trader = make.trader_user()
    register(db, user, course)
    return course, trader, user


def test_validate_code_moves_enrollment_to_validated(db, make):
    course, trader, user = _registered(db, make)
    code = workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 9, 30)).course_code

    out = workflow.validate_attendance_code(db, identity_of(user), entered_code=code, now=utc(2025, 3, 10, 10, 0))

    assert out.enrollment_status == EnrollmentStatus.validated
    assert out.course_name == course.course_name
    enrollment = enrollment_crud.get_for(db, user_id=user.id, course_id=course.id)
    assert enrollment.validation_code == code
    assert course_crud.in_approval_queue(db, course.id, user.id)

    with pytest.raises(Conflict) as err:
        workflow.validate_attendance_code(db, identity_of(user), entered_code=code, now=utc(2025, 3, 10, 10, 5))
    assert err.value.code == "ALREADY_PROCESSED"


def test_validate_code_after_grace_period_expires(db, make):
    course, trader, user = _registered(db, make)
    code = workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 13, 59)).course_code

    with pytest.raises(ValidationFailed) as err:
        workflow.validate_attendance_code(db, identity_of(user), entered_code=code, now=utc(2025, 3, 10, 14, 1))
    assert err.value.code == "CODE_EXPIRED"
    enrollment = enrollment_crud.get_for(db, user_id=user.id, course_id=course.id)
    assert enrollment.status == EnrollmentStatus.pending


def test_validate_code_before_course_start(db, make):
    course, trader, user = _registered(db, make, generated_code="482913", generated_code_at=utc(2025, 3, 9, 9, 0))

    with pytest.raises(ValidationFailed) as err:
        workflow.validate_attendance_code(db, identity_of(user), entered_code="482913", now=utc(2025, 3, 10, 8, 59))
    assert err.value.code == "CODE_NOT_YET_VALID"


def test_validate_code_rejections(db, make):
    course, trader, user = _registered(db, make)
    code = workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 9, 30)).course_code
    at = utc(2025, 3, 10, 10, 0)

    with pytest.raises(ValidationFailed) as err:
        workflow.validate_attendance_code(db, identity_of(user), entered_code="  ", now=at)
    assert err.value.code == "CODE_REQUIRED"

    wrong = "100000" if code != "100000" else "100001"
    with pytest.raises(NotFound) as err:
        workflow.validate_attendance_code(db, identity_of(user), entered_code=wrong, now=at)
    assert err.value.code == "INVALID_CODE"

    outsider = make.user()
    with pytest.raises(ValidationFailed) as err:
        workflow.validate_attendance_code(db, identity_of(outsider), entered_code=code, now=at)
    assert err.value.code == "NOT_REGISTERED"


# -------------------------- admin decision --------------------------

def test_approve_completes_training_and_opens_window(db, make):
    course, trader, user = _registered(db, make)
    admin = make.admin()
    code = workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 9, 30)).course_code
    workflow.validate_attendance_code(db, identity_of(user), entered_code=code, now=utc(2025, 3, 10, 10, 0))

    approved_at = utc(2025, 3, 11, 2, 0)
    out = workflow.apply_admin_action(
        db, identity_of(admin), user_id=user.id, course_id=course.id, action="approve", now=approved_at,
    )

    assert out.status == EnrollmentStatus.approved
    assert out.trader.start_date == approved_at
    assert out.trader.duration_display.years == 2
    db.refresh(trader)
    assert trader.trainings[0].is_completed is True
    enrollment = enrollment_crud.get_for(db, user_id=user.id, course_id=course.id)
    assert enrollment.verified_by == admin.id
    assert not course_crud.in_approval_queue(db, course.id, user.id)
    db.refresh(course)
    assert course.available_seats == course.max_seats - 1


def test_reject_releases_seat_and_removes_training(db, make):
    course, trader, user = _registered(db, make, max_seats=3)
    admin = make.admin()

    out = workflow.apply_admin_action(
        db, identity_of(admin), user_id=user.id, course_id=course.id, action="reject", now=utc(2025, 3, 5),
    )

    assert out.status == EnrollmentStatus.rejected
    assert out.trader is None
    db.refresh(course)
    assert course.available_seats == 3
    db.refresh(trader)
    assert trader.trainings == []
    assert not course_crud.is_registered(db, course.id, user.id)

    with pytest.raises(Conflict) as err:
        workflow.apply_admin_action(
            db, identity_of(admin), user_id=user.id, course_id=course.id, action="approve", now=utc(2025, 3, 6),
        )
    assert err.value.code == "ALREADY_PROCESSED"


def test_reject_validated_enrollment_dequeues_and_releases_seat(db, make):
    course, trader, user = _registered(db, make, max_seats=3)
    admin = make.admin()
    code = workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 9, 30)).course_code
    workflow.validate_attendance_code(db, identity_of(user), entered_code=code, now=utc(2025, 3, 10, 10, 0))
    assert course_crud.in_approval_queue(db, course.id, user.id)

    out = workflow.apply_admin_action(
        db, identity_of(admin), user_id=user.id, course_id=course.id, action="reject", now=utc(2025, 3, 11),
    )

    assert out.status == EnrollmentStatus.rejected
    db.refresh(course)
    assert course.available_seats == 3
    db.refresh(trader)
    assert trader.trainings == []
    assert not course_crud.in_approval_queue(db, course.id, user.id)
    assert not course_crud.is_registered(db, course.id, user.id)


def test_admin_action_errors(db, make):
    course, trader, user = _registered(db, make)
    admin = identity_of(make.admin())

    with pytest.raises(ValidationFailed) as err:
        workflow.apply_admin_action(db, admin, user_id=user.id, course_id=course.id, action="archive")
    assert err.value.code == "INVALID_ACTION"

    with pytest.raises(NotFound) as err:
        workflow.apply_admin_action(db, admin, user_id=user.id, course_id=9999, action="approve")
    assert err.value.code == "TRADER_OR_COURSE_NOT_FOUND"

    other = make.course(course_date=utc(2025, 4, 1, 9, 0))
    with pytest.raises(NotFound) as err:
        workflow.apply_admin_action(db, admin, user_id=user.id, course_id=other.id, action="approve")
    assert err.value.code == "ENROLLMENT_NOT_FOUND"


# -------------------------- queries --------------------------

def test_review_lists(db, make):
    course, trader, user = _registered(db, make)

    pending = workflow.list_for_review(db, EnrollmentStatus.pending)
    assert [i.trader.user_id for i in pending] == [user.id]
    assert pending[0].trader.id_card is None
    assert pending[0].course.date == "2025-03-10"

    code = workflow.generate_attendance_code(db, course_id=course.id, now=utc(2025, 3, 10, 9, 30)).course_code
    workflow.validate_attendance_code(db, identity_of(user), entered_code=code, now=utc(2025, 3, 10, 10, 0))

    assert workflow.list_for_review(db, EnrollmentStatus.pending) == []
    validated = workflow.list_for_review(db, EnrollmentStatus.validated)
    assert validated[0].trader.id_card == trader.id_card[:4] + "XXXXXXX"
    assert validated[0].course.date == "2025-03-10 16:00:00"
    assert validated[0].course.location == "Bangkok"

    with pytest.raises(ValidationFailed):
        workflow.list_for_review(db, EnrollmentStatus.approved)


def test_history_newest_first_and_owner_only(db, make):
    user, trader = make.trader_user()
    older = make.course(course_date=utc(2025, 3, 10, 9, 0))
    newer = make.course(course_date=utc(2025, 3, 20, 9, 0))
    register(db, user, older, now=utc(2025, 3, 1))
    register(db, user, newer, now=utc(2025, 3, 2))

    history = workflow.enrollment_history(db, identity_of(user), user_id=user.id)
    assert [h.course.id for h in history] == [newer.id, older.id]
    assert history[0].enroll_date == "2025-03-02"

    with pytest.raises(Forbidden):
        workflow.enrollment_history(db, identity_of(make.user()), user_id=user.id)


def test_registration_status_ors_all_sources(db, make):
    course, trader, user = _registered(db, make)
    me = identity_of(user)

    status = workflow.registration_status(db, me, user_id=user.id, course_id=course.id)
    assert status.is_registered and status.has_enrollment
    assert status.in_registered_users and status.in_trader_trainings
    assert status.enrollment_status == EnrollmentStatus.pending

    course_crud.remove_registration(db, course.id, user.id)
    db.commit()
    status = workflow.registration_status(db, me, user_id=user.id, course_id=course.id)
    assert status.is_registered and not status.in_registered_users

    with pytest.raises(NotFound) as err:
        workflow.registration_status(db, me, user_id=user.id, course_id=9999)
    assert err.value.code == "COURSE_NOT_FOUND"
