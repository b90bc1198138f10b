from pydantic import BaseModel, Field
from typing import Optional, List, Union
from uuid import UUID
from datetime import datetime

from ..models.result_model import SubmissionReason
from .progress_schema import AnswerItem, CodingAnswerItem


class SubmitPayload(BaseModel):
    test_id: UUID
    student_email: str
    student_name: str = ""
    roll_number: str = ""
    answers: List[AnswerItem] = Field(default_factory=list)
    coding_answers: List[CodingAnswerItem] = Field(default_factory=list)
    time_spent: int = Field(0, ge=0)
    is_resumed: bool = False
    submission_reason: SubmissionReason = SubmissionReason.MANUAL
    warning_count: int = Field(0, ge=0)


class SubmitResponse(BaseModel):
    result_id: UUID
    message: str
    # None when the test hides scores from students
    score: Optional[float] = None
    total_marks: Optional[float] = None


class SubmissionStatus(BaseModel):
    submitted: bool
    score: Optional[float] = None
    total_marks: Optional[float] = None
    submitted_at: Optional[datetime] = None


class GradedAnswer(BaseModel):
    section_index: int
    question_index: int
    selected_option: Union[int, str, None] = None
    is_correct: bool
    points_awarded: float
    max_points: float


class DescriptiveAnswerRecord(BaseModel):
    section_index: int
    question_index: int
    answer: str = ""
    max_score: float
    score: Optional[float] = None
    feedback: Optional[str] = None


class CodingAnswerRecord(BaseModel):
    section_index: int
    coding_question_index: int
    source_code: str = ""
    language: Optional[str] = None
    max_score: float
    score: Optional[float] = None
    feedback: Optional[str] = None


class ResultRead(BaseModel):
    id: UUID
    test_id: UUID
    student_name: str
    student_email: str
    roll_number: str
    answers: List[GradedAnswer] = []
    descriptive_answers: List[DescriptiveAnswerRecord] = []
    coding_answers: List[CodingAnswerRecord] = []
    objective_score: float
    score: float
    total_marks: float
    time_spent: int
    time_exceeded: bool
    is_resumed: bool
    submission_reason: SubmissionReason
    warning_count: int
    created_at: datetime
    graded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EvaluateDescriptivePayload(BaseModel):
    section_index: int = Field(0, ge=0)
    question_index: int = Field(..., ge=0)
    score: float = Field(..., allow_inf_nan=False)
    feedback: str = ""


class EvaluateCodingPayload(BaseModel):
    section_index: int = Field(0, ge=0)
    coding_question_index: int = Field(..., ge=0)
    score: float = Field(..., allow_inf_nan=False)
    feedback: str = ""


class EvaluateResponse(BaseModel):
    result_id: UUID
    score: float
    total_marks: float
    graded_at: datetime


class StudentResultLookup(BaseModel):
    student_email: str
    roll_number: str


class SectionScore(BaseModel):
    section_index: int
    title: str
    score: float
    total_marks: float


class GradedFeedback(BaseModel):
    kind: str
    section_index: int
    index: int
    score: Optional[float] = None
    max_score: float
    feedback: Optional[str] = None


class StudentResultView(BaseModel):
    test_title: str
    student_name: str
    roll_number: str
    submitted_at: datetime
    score: Optional[float] = None
    total_marks: Optional[float] = None
    sections: List[SectionScore] = []
    feedback: List[GradedFeedback] = []
