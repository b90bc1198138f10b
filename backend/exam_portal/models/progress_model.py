from exam_portal.db import Base, JSONType
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.ext.mutable import MutableList
import uuid

from .test_model import _utcnow


class AttemptProgress(Base):
    __tablename__ = "test_progress"
    __table_args__ = (UniqueConstraint('test_id', 'student_email', name='uq_progress_test_student'),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    test_id = Column(Uuid, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)

    # stored lower-cased; the lookup key together with test_id
    student_email = Column(String, nullable=False)
    student_name = Column(String, nullable=False)
    roll_number = Column(String, nullable=False)

    current_section = Column(Integer, default=0, nullable=False)
    current_question = Column(Integer, default=0, nullable=False)

    answers = Column(MutableList.as_mutable(JSONType), nullable=False, default=list)
    coding_answers = Column(MutableList.as_mutable(JSONType), nullable=False, default=list)

    time_spent = Column(Integer, default=0, nullable=False)  # seconds
    warning_count = Column(Integer, default=0, nullable=False)
    start_time = Column(DateTime, default=_utcnow, nullable=False)
    last_saved = Column(DateTime, default=_utcnow, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
