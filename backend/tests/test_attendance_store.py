import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker

from conference_attendance.core.exceptions import RosterUnavailable, SourceImageNotFound, StoreWriteFailure
from conference_attendance.db.session import create_db_engine
from conference_attendance.models import AttendanceRecord, AttendanceStatus, MarkResult, Participant
from conference_attendance.services.attendance_store import SqlAttendanceStore

from conftest import CONFERENCE_ID


def test_list_registered_user_ids(sql_store, seed):
    seed({"11111": ("absent", None), "22222": ("present", None)})
    seed({"33333": ("absent", None)}, conference_id="987654321")

    assert sql_store.list_registered_user_ids(CONFERENCE_ID) == ["11111", "22222"]
    assert sql_store.list_registered_user_ids("987654321") == ["33333"]
    assert sql_store.list_registered_user_ids("555555") == []


def test_mark_present_transitions(sql_store, seed, status_of):
    seed({"11111": ("absent", None)})

    assert sql_store.mark_present(CONFERENCE_ID, "11111") is MarkResult.UPDATED
    assert status_of("11111") is AttendanceStatus.PRESENT
    assert sql_store.mark_present(CONFERENCE_ID, "11111") is MarkResult.ALREADY_PRESENT
    assert sql_store.mark_present(CONFERENCE_ID, "99999") is MarkResult.NOT_FOUND


def test_mark_present_is_scoped_to_conference(sql_store, seed, status_of):
    seed({"11111": ("absent", None)})
    seed({"11111": ("absent", None)}, conference_id="987654321")

    sql_store.mark_present(CONFERENCE_ID, "11111")

    assert status_of("11111") is AttendanceStatus.PRESENT
    assert status_of("11111", conference_id="987654321") is AttendanceStatus.ABSENT


def test_mark_absent_returns_email(sql_store, seed, status_of):
    seed({"11111": ("present", "record@example.com"), "22222": ("absent", None)})

    mark = sql_store.mark_absent(CONFERENCE_ID, "11111")
    assert mark.result is MarkResult.UPDATED
    assert mark.email == "record@example.com"
    assert status_of("11111") is AttendanceStatus.ABSENT

    mark = sql_store.mark_absent(CONFERENCE_ID, "22222")
    assert mark.result is MarkResult.ALREADY_ABSENT
    assert mark.email == "22222@example.com"

    mark = sql_store.mark_absent(CONFERENCE_ID, "99999")
    assert mark.result is MarkResult.NOT_FOUND
    assert mark.email is None


def test_one_record_per_conference_and_user(session_factory, seed):
    seed({"11111": ("absent", None)})

    db = session_factory()
    try:
        db.add(AttendanceRecord(conference_id=CONFERENCE_ID, user_id="11111"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()
    finally:
        db.close()


def test_mark_conference_completed(sql_store, seed):
    seed({"11111": ("absent", None)})

    assert sql_store.get_conference(CONFERENCE_ID).status == "not_completed"
    assert sql_store.mark_conference_completed(CONFERENCE_ID) is True
    assert sql_store.get_conference(CONFERENCE_ID).status == "completed"
    assert sql_store.mark_conference_completed("555555") is False


def test_list_attendance(sql_store, seed):
    seed({"11111": ("absent", None), "22222": ("present", "b@example.com")})

    records = sql_store.list_attendance(CONFERENCE_ID)

    assert [(r.user_id, r.status, r.email) for r in records] == [
        ("11111", "absent", None),
        ("22222", "present", "b@example.com"),
    ]


@pytest.fixture
def broken_store(tmp_path):
    # Tables were never created, so every statement fails
    engine = create_db_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    yield SqlAttendanceStore(sessionmaker(bind=engine))
    engine.dispose()


def test_roster_unavailable_when_database_fails(broken_store):
    with pytest.raises(RosterUnavailable) as excinfo:
        broken_store.list_registered_user_ids(CONFERENCE_ID)
    assert isinstance(excinfo.value.__cause__, OperationalError)


@pytest.mark.parametrize("operation", ["mark_present", "mark_absent"])
def test_write_failure_when_database_fails(broken_store, operation):
    with pytest.raises(StoreWriteFailure):
        getattr(broken_store, operation)(CONFERENCE_ID, "11111")


def test_reference_image_key(sql_store, seed, session_factory):
    seed({"11111": ("absent", None), "22222": ("absent", None)})
    db = session_factory()
    try:
        db.query(Participant).filter(Participant.user_id == "22222").update(
            {Participant.reference_image_key: "enrollment/22222-2019.jpg"}
        )
        db.commit()
    finally:
        db.close()

    assert sql_store.reference_image_key("22222") == "enrollment/22222-2019.jpg"
    assert sql_store.reference_image_key("11111") == "11111"
    assert sql_store.reference_image_key("99999") == "99999"


def test_reference_image_key_when_database_fails(broken_store):
    with pytest.raises(SourceImageNotFound):
        broken_store.reference_image_key("11111")
