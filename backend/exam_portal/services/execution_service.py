from dataclasses import dataclass, field
from typing import Dict, Optional, Any, List
import os
import logging

import httpx
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotFoundError, UpstreamError, ValidationError
from ..schemas.test_schema import Language
from .test_service import get_test_for_grading

load_dotenv()
logger = logging.getLogger(__name__)

# Judge0 CE language ids
DEFAULT_LANGUAGE_IDS = {
    Language.javascript: 63,
    Language.python: 71,
    Language.cpp: 54,
    Language.java: 62,
}


@dataclass
class ExecutionConfig:
    """Where and how to reach the judge. Passed into every call."""
    base_url: str = "https://judge0-ce.p.rapidapi.com"
    api_key: str = ""
    api_host: str = "judge0-ce.p.rapidapi.com"
    timeout: float = 30.0
    language_ids: Dict[Language, int] = field(default_factory=lambda: dict(DEFAULT_LANGUAGE_IDS))
    # set in tests to route requests to an in-process handler
    transport: Optional[httpx.AsyncBaseTransport] = None

    def headers(self) -> Dict[str, str]:
        headers = {"content-type": "application/json"}
        if self.api_key:
            headers["X-RapidAPI-Host"] = self.api_host
            headers["X-RapidAPI-Key"] = self.api_key
        return headers


def load_execution_config() -> ExecutionConfig:
    return ExecutionConfig(
        base_url=os.getenv("JUDGE0_URL", "https://judge0-ce.p.rapidapi.com"),
        api_key=os.getenv("JUDGE0_KEY", ""),
        api_host=os.getenv("JUDGE0_HOST", "judge0-ce.p.rapidapi.com"),
        timeout=float(os.getenv("JUDGE0_TIMEOUT", "30")),
    )


async def execute(source_code: str, language: Language, stdin: str, config: ExecutionConfig) -> Dict[str, Any]:
    """Run source once on the judge and return its raw verdict (stdout, stderr, status, ...)."""
    language_id = config.language_ids.get(language)
    if language_id is None:
        raise ValidationError(f"Unsupported language: {language}")

    data = {
        "source_code": source_code,
        "language_id": language_id,
        "stdin": stdin or "",
    }
    try:
        async with httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout, transport=config.transport) as client:
            response = await client.post(
                "/submissions",
                params={"base64_encoded": "false", "wait": "true"},
                json=data,
                headers=config.headers(),
            )
            response.raise_for_status()
            return response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.exception("Judge call failed for language=%s: %s", language, e)
        raise UpstreamError("Execution failed") from e


def _normalize_output(value: Optional[str]) -> str:
    return (value or "").strip()


async def run_practice(session: AsyncSession, test_id, section_index: int, coding_question_index: int,
                       source_code: str, language: Language, config: ExecutionConfig) -> Dict[str, Any]:
    """
    Run a student's code against a coding question's test cases.

    Only pass/fail is reported back; inputs and expected outputs stay hidden.
    This never feeds into a result's score.
    """
    _, sections = await get_test_for_grading(session, test_id)
    if section_index >= len(sections) or coding_question_index >= len(sections[section_index].coding_questions):
        raise NotFoundError("Coding question not found")
    question = sections[section_index].coding_questions[coding_question_index]
    if language not in question.allowed_languages:
        raise ValidationError(f"Language '{language.value}' is not allowed for this question")

    # end the read transaction; judge calls are slow and must not hold a connection
    await session.commit()

    cases: List[Dict[str, Any]] = []
    earned = 0
    for idx, tc in enumerate(question.test_cases):
        verdict = await execute(source_code, language, tc.input, config)
        passed = _normalize_output(verdict.get("stdout")) == _normalize_output(tc.expected_output)
        if passed:
            earned += tc.weight
        cases.append({
            "index": idx,
            "passed": passed,
            "status": verdict.get("status"),
            "stderr": verdict.get("stderr"),
        })

    return {
        "passed_count": sum(1 for c in cases if c["passed"]),
        "total_count": len(cases),
        "earned_weight": earned,
        "max_weight": sum(tc.weight for tc in question.test_cases),
        "cases": cases,
    }
