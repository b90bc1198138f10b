import uuid

import pytest
import pytest_asyncio

from exam_portal.exceptions import NotFoundError, UnauthorizedError, ValidationError
from exam_portal.schemas.progress_schema import ProgressSave
from exam_portal.schemas.test_schema import TestCreate
from exam_portal.services import progress_service, test_service


STUDENT = {"student_email": "Student@Example.com", "student_name": "Ada", "roll_number": "R-1"}


@pytest_asyncio.fixture
async def sample_test(db_session, admin, scenario_test_data):
    return await test_service.create_test(db_session, admin.id, TestCreate(**scenario_test_data))


def snapshot(test_id, answers=(), **overrides) -> ProgressSave:
    data = {
        "test_id": test_id,
        **STUDENT,
        "current_section": 0,
        "current_question": 0,
        "answers": list(answers),
        "time_spent": 0,
    }
    data.update(overrides)
    return ProgressSave(**data)


@pytest.mark.asyncio
async def test_save_then_get_returns_latest_snapshot(db_session, sample_test):
    await progress_service.save_progress(db_session, snapshot(sample_test.id, [
        {"question_index": 0, "selected_option": 1},
        {"question_index": 1, "selected_option": 0},
    ], current_question=1, time_spent=40))

    # full replace: the second snapshot drops question 1 entirely
    await progress_service.save_progress(db_session, snapshot(sample_test.id, [
        {"question_index": 0, "selected_option": 0},
    ], current_question=2, time_spent=95))

    progress = await progress_service.get_progress(db_session, sample_test.id, "student@example.com")
    assert progress.current_question == 2
    assert progress.time_spent == 95
    assert [(a["question_index"], a["selected_option"]) for a in progress.answers] == [(0, 0)]
    assert progress.is_completed is False


@pytest.mark.asyncio
async def test_repeated_saves_keep_one_record(db_session, sample_test, admin):
    for seconds in (10, 20, 30):
        await progress_service.save_progress(db_session, snapshot(sample_test.id, time_spent=seconds))

    records = await progress_service.list_progress(db_session, sample_test.id, admin.id)
    assert len(records) == 1
    assert records[0].time_spent == 30


@pytest.mark.asyncio
async def test_email_is_matched_case_insensitively(db_session, sample_test):
    await progress_service.save_progress(db_session, snapshot(sample_test.id))
    progress = await progress_service.get_progress(db_session, sample_test.id, "  STUDENT@example.COM ")
    assert progress.student_email == "student@example.com"


@pytest.mark.asyncio
async def test_get_missing_progress_is_not_found(db_session, sample_test):
    with pytest.raises(NotFoundError):
        await progress_service.get_progress(db_session, sample_test.id, "nobody@example.com")


@pytest.mark.asyncio
async def test_completed_progress_is_not_resumable(db_session, sample_test):
    await progress_service.save_progress(db_session, snapshot(sample_test.id))
    completed = await progress_service.complete_progress(db_session, sample_test.id, STUDENT["student_email"])
    assert completed.is_completed is True

    with pytest.raises(NotFoundError):
        await progress_service.get_progress(db_session, sample_test.id, STUDENT["student_email"])


@pytest.mark.asyncio
async def test_save_after_complete_does_not_reopen(db_session, sample_test):
    await progress_service.save_progress(db_session, snapshot(sample_test.id))
    await progress_service.complete_progress(db_session, sample_test.id, STUDENT["student_email"])

    saved = await progress_service.save_progress(db_session, snapshot(sample_test.id, time_spent=500))

    assert saved.is_completed is True
    with pytest.raises(NotFoundError):
        await progress_service.get_progress(db_session, sample_test.id, STUDENT["student_email"])


@pytest.mark.asyncio
async def test_complete_without_progress_is_not_found(db_session, sample_test):
    with pytest.raises(NotFoundError):
        await progress_service.complete_progress(db_session, sample_test.id, "nobody@example.com")


@pytest.mark.asyncio
async def test_reset_deletes_progress(db_session, sample_test):
    await progress_service.save_progress(db_session, snapshot(sample_test.id))
    await progress_service.reset_progress(db_session, sample_test.id, STUDENT["student_email"])

    with pytest.raises(NotFoundError):
        await progress_service.get_progress(db_session, sample_test.id, STUDENT["student_email"])
    with pytest.raises(NotFoundError):
        await progress_service.reset_progress(db_session, sample_test.id, STUDENT["student_email"])


@pytest.mark.asyncio
async def test_save_for_unknown_test_is_not_found(db_session, sample_test):
    with pytest.raises(NotFoundError):
        await progress_service.save_progress(db_session, snapshot(uuid.uuid4()))


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"student_email": "not-an-email"},
    {"student_name": "   "},
    {"roll_number": ""},
])
async def test_save_requires_student_identity(db_session, sample_test, overrides):
    with pytest.raises(ValidationError):
        await progress_service.save_progress(db_session, snapshot(sample_test.id, **overrides))


@pytest.mark.asyncio
async def test_warnings_count_up_to_the_limit(db_session, sample_test):
    await progress_service.save_progress(db_session, snapshot(sample_test.id))

    reached = []
    for _ in range(3):
        progress, max_warnings, limit_reached = await progress_service.record_warning(
            db_session, sample_test.id, STUDENT["student_email"]
        )
        reached.append(limit_reached)

    assert max_warnings == 3
    assert progress.warning_count == 3
    assert reached == [False, False, True]


@pytest.mark.asyncio
async def test_list_progress_hides_completed_and_checks_owner(db_session, sample_test, admin, other_admin):
    await progress_service.save_progress(db_session, snapshot(sample_test.id))
    await progress_service.save_progress(db_session, snapshot(sample_test.id, student_email="second@example.com"))
    await progress_service.complete_progress(db_session, sample_test.id, "second@example.com")

    records = await progress_service.list_progress(db_session, sample_test.id, admin.id)
    assert [r.student_email for r in records] == ["student@example.com"]

    with pytest.raises(UnauthorizedError):
        await progress_service.list_progress(db_session, sample_test.id, other_admin.id)


@pytest.mark.asyncio
async def test_concurrent_first_save_becomes_an_update(db_session, session_maker, sample_test, admin, monkeypatch):
    test_id, admin_id = sample_test.id, admin.id

    # a competing request inserts the row first
    async with session_maker() as other:
        await progress_service.save_progress(other, snapshot(test_id, time_spent=10))

    real_find = progress_service._find
    lookups = []

    async def stale_find(session, test_id, email):
        lookups.append(email)
        if len(lookups) == 1:
            # this request looked before the competing insert landed
            return None
        return await real_find(session, test_id, email)

    monkeypatch.setattr(progress_service, "_find", stale_find)

    saved = await progress_service.save_progress(db_session, snapshot(test_id, [
        {"question_index": 1, "selected_option": 1},
    ], time_spent=75))

    assert len(lookups) == 2
    assert saved.time_spent == 75

    monkeypatch.setattr(progress_service, "_find", real_find)
    records = await progress_service.list_progress(db_session, test_id, admin_id)
    assert len(records) == 1
    assert records[0].time_spent == 75
    assert [a["selected_option"] for a in records[0].answers] == [1]
