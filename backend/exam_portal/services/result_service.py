from typing import List, Optional
import os
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from dotenv import load_dotenv

from ..exceptions import NotFoundError, ConflictError, ValidationError
from ..models.result_model import Result
from ..models.progress_model import AttemptProgress
from ..models.test_model import Test, _utcnow
from ..schemas.result_schema import SubmitPayload
from .grading_service import grade_submission, merge_manual_score, recompute_score, section_breakdown
from .progress_service import normalize_email, require_student_fields
from .test_service import get_test, get_test_for_grading, get_owned_test, normalize_sections

load_dotenv()
# seconds a submission may run past the test duration before it is flagged
SUBMISSION_GRACE_SECONDS = int(os.getenv("SUBMISSION_GRACE_SECONDS", "60"))

logger = logging.getLogger(__name__)


def submission_summary(result: Result, test: Test) -> dict:
    """Redacted view of a submission: no answer-level detail."""
    summary = {
        "submitted": True,
        "score": None,
        "total_marks": None,
        "submitted_at": result.created_at,
    }
    if test.show_score:
        summary["score"] = result.score
        summary["total_marks"] = result.total_marks
    return summary


async def _find_result(session: AsyncSession, test_id, email: str) -> Optional[Result]:
    res = await session.execute(select(Result).where(Result.test_id == test_id, Result.student_email == email))
    return res.scalar_one_or_none()


def _check_coding_languages(sections, coding_answers):
    for ans in coding_answers:
        s_idx, c_idx = ans.section_index, ans.coding_question_index
        if s_idx >= len(sections) or c_idx >= len(sections[s_idx].coding_questions):
            continue
        allowed = sections[s_idx].coding_questions[c_idx].allowed_languages
        if ans.language not in allowed:
            raise ValidationError(
                f"Language '{ans.language.value}' is not allowed for coding question {c_idx + 1} of section {s_idx + 1}"
            )


async def _find_progress(session: AsyncSession, test_id, email: str) -> Optional[AttemptProgress]:
    res = await session.execute(
        select(AttemptProgress).where(AttemptProgress.test_id == test_id, AttemptProgress.student_email == email)
    )
    return res.scalar_one_or_none()


async def _mark_progress_completed(session: AsyncSession, progress: Optional[AttemptProgress]):
    # A student may submit without ever having saved progress
    if progress is None:
        return
    progress.is_completed = True
    progress.last_saved = _utcnow()
    await session.commit()


async def submit(session: AsyncSession, payload: SubmitPayload) -> tuple[Result, Test]:
    """
    Score a finished attempt and write its single Result.

    Timer and proctoring auto-submits come through here too, so a second
    near-simultaneous call is expected; the unique (test, email) constraint
    turns it into a ConflictError carrying the first submission's summary.
    """
    test, sections = await get_test_for_grading(session, payload.test_id)
    email = normalize_email(payload.student_email)
    require_student_fields(payload.student_name, payload.roll_number)
    _check_coding_languages(sections, payload.coding_answers)

    outcome = grade_submission(
        sections,
        [a.model_dump(mode="json") for a in payload.answers],
        [c.model_dump(mode="json") for c in payload.coding_answers],
    )

    progress = await _find_progress(session, test.id, email)
    warning_count = payload.warning_count
    if progress is not None:
        # warnings recorded server-side cannot be lowered by the client
        warning_count = max(warning_count, progress.warning_count or 0)

    time_exceeded = payload.time_spent > test.duration * 60 + SUBMISSION_GRACE_SECONDS
    if time_exceeded:
        logger.warning(
            "Submission for test_id=%s student=%s claims %ss against a %s minute limit",
            str(test.id), email, payload.time_spent, test.duration,
        )

    result = Result(
        test_id=test.id,
        student_name=payload.student_name.strip(),
        student_email=email,
        roll_number=payload.roll_number.strip(),
        answers=outcome.answers,
        descriptive_answers=outcome.descriptive_answers,
        coding_answers=outcome.coding_answers,
        objective_score=outcome.objective_score,
        score=outcome.score,
        total_marks=outcome.total_marks,
        time_spent=payload.time_spent,
        time_exceeded=time_exceeded,
        is_resumed=payload.is_resumed,
        submission_reason=payload.submission_reason,
        warning_count=warning_count,
    )
    session.add(result)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        # rollback expires everything loaded in this session
        await session.refresh(test)
        existing = await _find_result(session, test.id, email)
        if existing is None:
            raise
        logger.info("Rejected duplicate submission for test_id=%s student=%s", str(test.id), email)
        raise ConflictError("You have already submitted this test", **_jsonable_summary(existing, test))

    await session.refresh(result)
    await _mark_progress_completed(session, progress)
    return result, test


def _jsonable_summary(result: Result, test: Test) -> dict:
    summary = submission_summary(result, test)
    summary["submitted_at"] = summary["submitted_at"].isoformat() if summary["submitted_at"] else None
    return {"submission": summary}


async def check_submission_status(session: AsyncSession, test_id, email: str) -> dict:
    test = await get_test(session, test_id)
    result = await _find_result(session, test.id, normalize_email(email))
    if result is None:
        return {"submitted": False}
    return submission_summary(result, test)


async def get_results_by_test(session: AsyncSession, test_id, requester_id) -> List[Result]:
    await get_owned_test(session, test_id, requester_id)
    res = await session.execute(select(Result).where(Result.test_id == test_id).order_by(Result.created_at))
    return list(res.scalars().all())


async def get_result_for_admin(session: AsyncSession, result_id, requester_id) -> Result:
    res = await session.execute(select(Result).where(Result.id == result_id))
    result = res.scalar_one_or_none()
    if result is None:
        raise NotFoundError("Result not found")
    await get_owned_test(session, result.test_id, requester_id)
    return result


async def get_student_result(session: AsyncSession, test_id, email: str, roll_number: str) -> dict:
    test = await get_test(session, test_id)
    result = await _find_result(session, test.id, normalize_email(email))
    if result is None or result.roll_number.strip().lower() != (roll_number or "").strip().lower():
        raise NotFoundError("No result found for this roll number and email")

    view = {
        "test_title": test.title,
        "student_name": result.student_name,
        "roll_number": result.roll_number,
        "submitted_at": result.created_at,
        "score": None,
        "total_marks": None,
        "sections": [],
        "feedback": [],
    }
    if not test.show_score:
        return view

    titles = [s.title for s in normalize_sections(test)]
    view["score"] = result.score
    view["total_marks"] = result.total_marks
    view["sections"] = section_breakdown(result.answers, result.descriptive_answers, result.coding_answers, titles)
    for record in result.descriptive_answers or []:
        view["feedback"].append({
            "kind": "descriptive",
            "section_index": record["section_index"],
            "index": record["question_index"],
            "score": record.get("score"),
            "max_score": record["max_score"],
            "feedback": record.get("feedback"),
        })
    for record in result.coding_answers or []:
        view["feedback"].append({
            "kind": "coding",
            "section_index": record["section_index"],
            "index": record["coding_question_index"],
            "score": record.get("score"),
            "max_score": record["max_score"],
            "feedback": record.get("feedback"),
        })
    return view


async def _evaluate(session: AsyncSession, result_id, requester_id, field: str, index_key: str,
                    section_index: int, index: int, score: float, feedback: Optional[str]) -> Result:
    result = await get_result_for_admin(session, result_id, requester_id)

    records, _ = merge_manual_score(getattr(result, field), index_key, section_index, index, score, feedback)
    # assign a new list so the JSON column change is detected
    setattr(result, field, records)
    result.score = recompute_score(result.objective_score, result.descriptive_answers, result.coding_answers)
    result.graded_at = _utcnow()

    # record and aggregate land in the same commit
    await session.commit()
    await session.refresh(result)
    logger.info("Graded %s section=%s index=%s on result %s: %s", field, section_index, index, str(result.id), score)
    return result


async def evaluate_descriptive(session: AsyncSession, result_id, section_index: int, question_index: int,
                               score: float, feedback: Optional[str], requester_id) -> Result:
    return await _evaluate(session, result_id, requester_id, "descriptive_answers", "question_index",
                           section_index, question_index, score, feedback)


async def evaluate_coding(session: AsyncSession, result_id, section_index: int, coding_question_index: int,
                          score: float, feedback: Optional[str], requester_id) -> Result:
    return await _evaluate(session, result_id, requester_id, "coding_answers", "coding_question_index",
                           section_index, coding_question_index, score, feedback)
