import math
from dataclasses import dataclass, field
from typing import Dict, Any, Tuple, List, Optional, Iterable

from ..exceptions import NotFoundError, ValidationError
from ..schemas.test_schema import CHOICE_TYPES

# Max score of a coding question that has no test cases to weigh it by
DEFAULT_CODING_MAX = 10.0


@dataclass
class GradingOutcome:
    answers: List[Dict[str, Any]] = field(default_factory=list)
    descriptive_answers: List[Dict[str, Any]] = field(default_factory=list)
    coding_answers: List[Dict[str, Any]] = field(default_factory=list)
    objective_score: float = 0.0
    total_marks: float = 0.0

    @property
    def score(self) -> float:
        return recompute_score(self.objective_score, self.descriptive_answers, self.coding_answers)


def coding_max_score(coding_question) -> float:
    weights = [tc.weight or 1 for tc in coding_question.test_cases]
    if not weights:
        return DEFAULT_CODING_MAX
    return float(sum(weights))


def total_marks(sections) -> float:
    total = 0.0
    for section in sections:
        total += sum(float(q.points) for q in section.questions)
        total += sum(coding_max_score(cq) for cq in section.coding_questions)
    return total


def is_correct(question, selected) -> Optional[bool]:
    """
    Compare one submitted value against a question's key.

    Returns None for descriptive questions, which have no key.
    """
    if question.question_type in CHOICE_TYPES:
        # bool is an int subclass; True must not match index 1
        if isinstance(selected, bool) or not isinstance(selected, int):
            return False
        return selected == question.correct_answer

    if question.question_type == "fill-blank":
        if not isinstance(selected, str) or not selected.strip():
            return False
        submitted = selected.strip()
        for accepted in question.acceptable_answers:
            accepted = accepted.strip()
            if question.case_sensitive:
                if submitted == accepted:
                    return True
            elif submitted.casefold() == accepted.casefold():
                return True
        return False

    return None


def _index_answers(answers: Iterable[Dict[str, Any]]) -> Dict[Tuple[int, int], Any]:
    # Later entries for the same coordinate overwrite earlier ones
    indexed = {}
    for ans in answers:
        section_index = ans.get("section_index") or 0
        question_index = ans.get("original_question_index")
        if question_index is None:
            question_index = ans.get("question_index")
        if question_index is None:
            continue
        indexed[(section_index, question_index)] = ans.get("selected_option")
    return indexed


def _index_coding_answers(coding_answers: Iterable[Dict[str, Any]]) -> Dict[Tuple[int, int], Dict[str, Any]]:
    indexed = {}
    for ans in coding_answers:
        key = (ans.get("section_index") or 0, ans.get("coding_question_index"))
        if key[1] is None:
            continue
        indexed[key] = ans
    return indexed


def grade_submission(sections, answers: List[Dict[str, Any]], coding_answers: List[Dict[str, Any]]) -> GradingOutcome:
    """
    Grade a finished attempt against a normalized list of sections.

    - answers: dicts with section_index, question_index, optional
      original_question_index and selected_option
    - coding_answers: dicts with section_index, coding_question_index,
      source_code and language

    Objective questions get one record each, answered or not. Descriptive and
    coding questions get a record with score None, to be graded by an admin.
    Answers that point outside the definition are ignored.
    """
    outcome = GradingOutcome()
    submitted = _index_answers(answers)
    submitted_code = _index_coding_answers(coding_answers)

    for s_idx, section in enumerate(sections):
        for q_idx, question in enumerate(section.questions):
            selected = submitted.get((s_idx, q_idx))
            max_points = float(question.points)

            if question.question_type == "descriptive":
                outcome.descriptive_answers.append({
                    "section_index": s_idx,
                    "question_index": q_idx,
                    "answer": selected if isinstance(selected, str) else "",
                    "max_score": max_points,
                    "score": None,
                    "feedback": None,
                })
                continue

            correct = bool(is_correct(question, selected))
            awarded = max_points if correct else 0.0
            outcome.answers.append({
                "section_index": s_idx,
                "question_index": q_idx,
                "selected_option": selected,
                "is_correct": correct,
                "points_awarded": awarded,
                "max_points": max_points,
            })
            outcome.objective_score += awarded

        for c_idx, coding_question in enumerate(section.coding_questions):
            ans = submitted_code.get((s_idx, c_idx)) or {}
            language = ans.get("language")
            if hasattr(language, "value"):
                language = language.value
            outcome.coding_answers.append({
                "section_index": s_idx,
                "coding_question_index": c_idx,
                "source_code": ans.get("source_code") or "",
                "language": language,
                "max_score": coding_max_score(coding_question),
                "score": None,
                "feedback": None,
            })

    outcome.total_marks = total_marks(sections)
    return outcome


def recompute_score(objective_score: float, descriptive_answers, coding_answers) -> float:
    total = float(objective_score or 0)
    for record in list(descriptive_answers or []) + list(coding_answers or []):
        if record.get("score") is not None:
            total += float(record["score"])
    return total


def merge_manual_score(records, index_key: str, section_index: int, index: int, score: float, feedback: Optional[str]):
    """
    Return a copy of ``records`` with the score/feedback of one coordinate replaced.

    index_key is "question_index" for descriptive records and
    "coding_question_index" for coding records. The bound checked is the
    max_score frozen on the record at submission.
    """
    new_records = [dict(r) for r in records or []]
    target = None
    for record in new_records:
        if record.get("section_index") == section_index and record.get(index_key) == index:
            target = record
    if target is None:
        raise NotFoundError(f"No gradable answer at section {section_index}, question {index}")

    max_score = float(target.get("max_score") or 0)
    if score is None or not math.isfinite(score) or score < 0 or score > max_score:
        raise ValidationError(f"score must be between 0 and {max_score:g}")

    target["score"] = float(score)
    target["feedback"] = feedback
    return new_records, target


def section_breakdown(answers, descriptive_answers, coding_answers, titles: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """Per-section score and total, built only from what was frozen on a result."""
    sections: Dict[int, Dict[str, float]] = {}

    def bucket(idx):
        return sections.setdefault(idx, {"score": 0.0, "total_marks": 0.0})

    for a in answers or []:
        b = bucket(a.get("section_index") or 0)
        b["score"] += float(a.get("points_awarded") or 0)
        b["total_marks"] += float(a.get("max_points") or 0)
    for r in list(descriptive_answers or []) + list(coding_answers or []):
        b = bucket(r.get("section_index") or 0)
        if r.get("score") is not None:
            b["score"] += float(r["score"])
        b["total_marks"] += float(r.get("max_score") or 0)

    titles = titles or []
    out = []
    for idx in sorted(sections):
        title = titles[idx] if idx < len(titles) and titles[idx] else f"Section {idx + 1}"
        out.append({"section_index": idx, "title": title, **sections[idx]})
    return out
