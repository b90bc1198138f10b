from pydantic import BaseModel, Field
from typing import Optional, List, Union
from uuid import UUID
from datetime import datetime

from .test_schema import Language


class AnswerItem(BaseModel):
    section_index: int = Field(0, ge=0)
    # position as shown to the student
    question_index: int = Field(..., ge=0)
    # position in the test definition when questions were shuffled
    original_question_index: Optional[int] = Field(None, ge=0)
    # option index for choice questions, text for fill-blank and descriptive
    selected_option: Union[int, str, None] = None


class CodingAnswerItem(BaseModel):
    section_index: int = Field(0, ge=0)
    coding_question_index: int = Field(..., ge=0)
    source_code: str = ""
    language: Language = Language.javascript


class ProgressSave(BaseModel):
    test_id: UUID
    student_email: str
    student_name: str = ""
    roll_number: str = ""
    current_section: int = Field(0, ge=0)
    current_question: int = Field(0, ge=0)
    answers: List[AnswerItem] = Field(default_factory=list)
    coding_answers: List[CodingAnswerItem] = Field(default_factory=list)
    time_spent: int = Field(0, ge=0)


class ProgressKey(BaseModel):
    test_id: UUID
    student_email: str


class ProgressRead(BaseModel):
    id: UUID
    test_id: UUID
    student_email: str
    student_name: str
    roll_number: str
    current_section: int
    current_question: int
    answers: List[AnswerItem] = []
    coding_answers: List[CodingAnswerItem] = []
    time_spent: int
    warning_count: int
    start_time: datetime
    last_saved: datetime
    is_completed: bool

    class Config:
        from_attributes = True


class WarningResponse(BaseModel):
    warning_count: int
    max_warnings: int
    limit_reached: bool
