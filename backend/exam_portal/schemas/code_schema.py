from pydantic import BaseModel, Field
from typing import Optional, List, Any
from uuid import UUID

from .test_schema import Language


class RunRequest(BaseModel):
    source_code: str
    language: Language = Language.javascript
    stdin: str = ""


class RunResponse(BaseModel):
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    compile_output: Optional[str] = None
    status: Optional[Any] = None
    time: Optional[str] = None
    memory: Optional[int] = None


class PracticeRequest(BaseModel):
    test_id: UUID
    section_index: int = Field(0, ge=0)
    coding_question_index: int = Field(..., ge=0)
    source_code: str
    language: Language = Language.javascript


class PracticeCase(BaseModel):
    index: int
    passed: bool
    status: Optional[Any] = None
    stderr: Optional[str] = None


class PracticeResponse(BaseModel):
    passed_count: int
    total_count: int
    earned_weight: int
    max_weight: int
    cases: List[PracticeCase] = []
