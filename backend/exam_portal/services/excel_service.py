import pandas as pd
import json


REQUIRED_COLUMNS = [
    "question_type",
    "question_text",
    "options(json)",
    "correct_answer",
    "acceptable_answers(json)",
    "case_sensitive",
    "points",
]


def _is_blank(value) -> bool:
    return value is None or (not isinstance(value, (list, dict)) and pd.isna(value)) or (isinstance(value, str) and not value.strip())


def _as_bool(value) -> bool:
    if _is_blank(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def parse_excel(file):
    """
    Read draft questions from a spreadsheet.

    Rows are returned as plain dicts shaped like the question payloads of a
    test; they are validated when the admin saves the test, not here.
    """
    df = pd.read_excel(file)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        # Raise KeyError so upstream router can return a HTTP 400 with a helpful message
        raise KeyError(missing[0])

    questions = []

    def get_json_value(value):
        return json.loads(value) if not _is_blank(value) else []

    for _, row in df.iterrows():
        q_type = str(row["question_type"]).strip() if not _is_blank(row["question_type"]) else "mcq"
        points = row.get("points")
        q = {
            "question_type": q_type,
            "question_text": str(row["question_text"]).strip(),
            "points": int(points) if not _is_blank(points) else 1,
        }

        correct = row.get("correct_answer")
        if q_type == "fill-blank":
            q["correct_answer"] = None if _is_blank(correct) else str(correct).strip()
            q["acceptable_answers"] = get_json_value(row.get("acceptable_answers(json)"))
            q["case_sensitive"] = _as_bool(row.get("case_sensitive"))
        elif q_type == "descriptive":
            q["model_answer"] = "" if _is_blank(correct) else str(correct)
        else:
            q["options"] = get_json_value(row["options(json)"])
            q["correct_answer"] = None if _is_blank(correct) else int(correct)

        questions.append(q)

    return questions
