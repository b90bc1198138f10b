from exam_portal.db import Base, JSONType
from sqlalchemy import Column, Integer, Float, String, Boolean, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.ext.mutable import MutableList
import uuid
import enum

from .test_model import _utcnow


class SubmissionReason(str, enum.Enum):
    MANUAL = "manual"
    TIMER = "timer"
    PROCTORING = "proctoring"


class Result(Base):
    __tablename__ = "results"
    # the storage-level guard against a second submission for the same student
    __table_args__ = (UniqueConstraint('test_id', 'student_email', name='uq_result_test_student'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    test_id = Column(Uuid, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)

    student_name = Column(String, nullable=False)
    student_email = Column(String, nullable=False)
    roll_number = Column(String, nullable=False)

    answers = Column(MutableList.as_mutable(JSONType), nullable=False, default=list)
    coding_answers = Column(MutableList.as_mutable(JSONType), nullable=False, default=list)
    descriptive_answers = Column(MutableList.as_mutable(JSONType), nullable=False, default=list)

    # objective_score and total_marks are frozen at submission
    objective_score = Column(Float, nullable=False, default=0.0)
    score = Column(Float, nullable=False, default=0.0)
    total_marks = Column(Float, nullable=False)

    time_spent = Column(Integer, default=0, nullable=False)
    time_exceeded = Column(Boolean, default=False, nullable=False)
    is_resumed = Column(Boolean, default=False, nullable=False)
    submission_reason = Column(SAEnum(SubmissionReason), default=SubmissionReason.MANUAL, nullable=False)
    warning_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=_utcnow, nullable=False)
    graded_at = Column(DateTime, nullable=True)
