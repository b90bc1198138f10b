from typing import List
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotFoundError, ValidationError
from ..models.progress_model import AttemptProgress
from ..schemas.progress_schema import ProgressSave
from ..models.test_model import _utcnow
from .test_service import get_test, get_owned_test

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid student email is required")
    return email


def require_student_fields(name: str, roll_number: str):
    if not (name or "").strip():
        raise ValidationError("Student name is required")
    if not (roll_number or "").strip():
        raise ValidationError("Roll number is required")


async def _find(session: AsyncSession, test_id, email: str) -> AttemptProgress | None:
    res = await session.execute(
        select(AttemptProgress).where(AttemptProgress.test_id == test_id, AttemptProgress.student_email == email)
    )
    return res.scalar_one_or_none()


def _apply_snapshot(progress: AttemptProgress, payload: ProgressSave):
    # full replace of the in-flight state; no merge with what was stored
    progress.student_name = payload.student_name.strip()
    progress.roll_number = payload.roll_number.strip()
    progress.current_section = payload.current_section
    progress.current_question = payload.current_question
    progress.answers = [a.model_dump(mode="json") for a in payload.answers]
    progress.coding_answers = [c.model_dump(mode="json") for c in payload.coding_answers]
    progress.time_spent = payload.time_spent
    progress.last_saved = _utcnow()


async def save_progress(session: AsyncSession, payload: ProgressSave) -> AttemptProgress:
    """
    Upsert the single progress row for (test, student) with the given snapshot.

    Last write wins. A save arriving after completion is stored, but
    is_completed is left as it was so the record stays non-resumable.
    """
    await get_test(session, payload.test_id)
    email = normalize_email(payload.student_email)
    require_student_fields(payload.student_name, payload.roll_number)

    existing = await _find(session, payload.test_id, email)
    if existing is None:
        existing = AttemptProgress(test_id=payload.test_id, student_email=email)
        _apply_snapshot(existing, payload)
        session.add(existing)
        try:
            await session.commit()
        except IntegrityError:
            # another save for the same student won the insert; update that row instead
            await session.rollback()
            logger.warning("Concurrent first save for test_id=%s student=%s, retrying as update", str(payload.test_id), email)
            existing = await _find(session, payload.test_id, email)
            if existing is None:
                raise
            _apply_snapshot(existing, payload)
            await session.commit()
    else:
        _apply_snapshot(existing, payload)
        await session.commit()

    await session.refresh(existing)
    return existing


async def get_progress(session: AsyncSession, test_id, email: str) -> AttemptProgress:
    progress = await _find(session, test_id, normalize_email(email))
    # completed attempts are presented exactly like missing ones
    if progress is None or progress.is_completed:
        raise NotFoundError("No progress found for this student and test")
    return progress


async def complete_progress(session: AsyncSession, test_id, email: str) -> AttemptProgress:
    progress = await _find(session, test_id, normalize_email(email))
    if progress is None:
        raise NotFoundError("Progress record not found")
    progress.is_completed = True
    progress.last_saved = _utcnow()
    await session.commit()
    await session.refresh(progress)
    return progress


async def reset_progress(session: AsyncSession, test_id, email: str) -> None:
    progress = await _find(session, test_id, normalize_email(email))
    if progress is None:
        raise NotFoundError("No progress found to reset")
    await session.delete(progress)
    await session.commit()


async def record_warning(session: AsyncSession, test_id, email: str) -> tuple[AttemptProgress, int, bool]:
    """Count one proctoring warning; report whether the test's limit is reached."""
    test = await get_test(session, test_id)
    progress = await _find(session, test_id, normalize_email(email))
    if progress is None or progress.is_completed:
        raise NotFoundError("No progress found for this student and test")
    progress.warning_count = (progress.warning_count or 0) + 1
    progress.last_saved = _utcnow()
    await session.commit()
    await session.refresh(progress)
    return progress, test.max_warnings, progress.warning_count >= test.max_warnings


async def list_progress(session: AsyncSession, test_id, admin_id) -> List[AttemptProgress]:
    await get_owned_test(session, test_id, admin_id)
    res = await session.execute(
        select(AttemptProgress)
        .where(AttemptProgress.test_id == test_id, AttemptProgress.is_completed == False)
        .order_by(AttemptProgress.last_saved.desc())
    )
    return list(res.scalars().all())
