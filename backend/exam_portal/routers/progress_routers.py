from fastapi import APIRouter, Depends
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import current_admin
from ..schemas.progress_schema import ProgressSave, ProgressRead, ProgressKey, WarningResponse
from ..services import progress_service
from ..services.test_service import get_owned_test

router = APIRouter(prefix="/progress", tags=["Progress"])


# Autosave and on-change saves from the student's browser
@router.post("/save", response_model=ProgressRead)
async def save_progress(payload: ProgressSave, session: AsyncSession = Depends(get_async_session)):
    return await progress_service.save_progress(session, payload)


@router.post("/complete", response_model=ProgressRead)
async def complete_progress(payload: ProgressKey, session: AsyncSession = Depends(get_async_session)):
    return await progress_service.complete_progress(session, payload.test_id, payload.student_email)


# Called by the proctoring layer each time it raises a warning
@router.post("/warning", response_model=WarningResponse)
async def record_warning(payload: ProgressKey, session: AsyncSession = Depends(get_async_session)):
    progress, max_warnings, limit_reached = await progress_service.record_warning(session, payload.test_id, payload.student_email)
    return {"warning_count": progress.warning_count, "max_warnings": max_warnings, "limit_reached": limit_reached}


@router.get("/{test_id}", response_model=List[ProgressRead])
async def list_progress(test_id: UUID, admin=Depends(current_admin), session: AsyncSession = Depends(get_async_session)):
    return await progress_service.list_progress(session, test_id, admin.id)


@router.get("/{test_id}/{email}", response_model=ProgressRead)
async def get_progress(test_id: UUID, email: str, session: AsyncSession = Depends(get_async_session)):
    return await progress_service.get_progress(session, test_id, email)


@router.delete("/{test_id}/{email}")
async def reset_progress(test_id: UUID, email: str, admin=Depends(current_admin), session: AsyncSession = Depends(get_async_session)):
    # only the test's owner may re-open a student's attempt
    await get_owned_test(session, test_id, admin.id)
    await progress_service.reset_progress(session, test_id, email)
    return {"ok": True, "message": "Progress reset successfully"}
