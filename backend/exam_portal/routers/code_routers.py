from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_async_session
from ..schemas.code_schema import RunRequest, RunResponse, PracticeRequest, PracticeResponse
from ..services.execution_service import ExecutionConfig, execute, run_practice, load_execution_config

router = APIRouter(prefix="/code", tags=["Code"])


def get_execution_config() -> ExecutionConfig:
    return load_execution_config()


# Single run with custom stdin; a failure here never touches saved progress
@router.post("/run", response_model=RunResponse)
async def run_code(payload: RunRequest, config: ExecutionConfig = Depends(get_execution_config)):
    return await execute(payload.source_code, payload.language, payload.stdin, config)


@router.post("/practice", response_model=PracticeResponse)
async def practice(payload: PracticeRequest, session: AsyncSession = Depends(get_async_session), config: ExecutionConfig = Depends(get_execution_config)):
    return await run_practice(
        session,
        payload.test_id,
        payload.section_index,
        payload.coding_question_index,
        payload.source_code,
        payload.language,
        config,
    )
