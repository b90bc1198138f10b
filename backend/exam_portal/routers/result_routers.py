from fastapi import APIRouter, Depends, status
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..dependencies import current_admin
from ..schemas.result_schema import (
    SubmitPayload,
    SubmitResponse,
    SubmissionStatus,
    ResultRead,
    EvaluateDescriptivePayload,
    EvaluateCodingPayload,
    EvaluateResponse,
    StudentResultLookup,
    StudentResultView,
)
from ..services import result_service

router = APIRouter(prefix="/results", tags=["Results"])


def _evaluate_response(result) -> dict:
    return {
        "result_id": result.id,
        "score": result.score,
        "total_marks": result.total_marks,
        "graded_at": result.graded_at,
    }


@router.post("/submit", response_model=SubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_test(payload: SubmitPayload, session: AsyncSession = Depends(get_async_session)):
    result, test = await result_service.submit(session, payload)
    out = {"result_id": result.id, "message": "Test submitted successfully!"}
    if test.show_score:
        out["score"] = result.score
        out["total_marks"] = result.total_marks
    return out


@router.get("/status/{test_id}/{email}", response_model=SubmissionStatus)
async def check_submission_status(test_id: UUID, email: str, session: AsyncSession = Depends(get_async_session)):
    return await result_service.check_submission_status(session, test_id, email)


@router.post("/student/{test_id}", response_model=StudentResultView)
async def get_student_result(test_id: UUID, payload: StudentResultLookup, session: AsyncSession = Depends(get_async_session)):
    return await result_service.get_student_result(session, test_id, payload.student_email, payload.roll_number)


@router.get("/detail/{result_id}", response_model=ResultRead)
async def get_result(result_id: UUID, admin=Depends(current_admin), session: AsyncSession = Depends(get_async_session)):
    return await result_service.get_result_for_admin(session, result_id, admin.id)


@router.get("/{test_id}", response_model=List[ResultRead])
async def get_results_by_test(test_id: UUID, admin=Depends(current_admin), session: AsyncSession = Depends(get_async_session)):
    return await result_service.get_results_by_test(session, test_id, admin.id)


@router.post("/{result_id}/evaluate-descriptive", response_model=EvaluateResponse)
async def evaluate_descriptive(result_id: UUID, payload: EvaluateDescriptivePayload, admin=Depends(current_admin), session: AsyncSession = Depends(get_async_session)):
    result = await result_service.evaluate_descriptive(
        session, result_id, payload.section_index, payload.question_index, payload.score, payload.feedback, admin.id
    )
    return _evaluate_response(result)


@router.post("/{result_id}/evaluate-coding", response_model=EvaluateResponse)
async def evaluate_coding(result_id: UUID, payload: EvaluateCodingPayload, admin=Depends(current_admin), session: AsyncSession = Depends(get_async_session)):
    result = await result_service.evaluate_coding(
        session, result_id, payload.section_index, payload.coding_question_index, payload.score, payload.feedback, admin.id
    )
    return _evaluate_response(result)
