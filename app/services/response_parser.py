"""
Turns free-text LLM responses back into structured fields.

Parsing never raises. Each field is located independently; when a label is
missing or its value is unusable the field falls back to a default and its
name is recorded in ``missing``. A label counts only at the start of a line
(any case, optional markdown bold), so prose such as "your final score: ..."
inside a field does not cut it short. The last occurrence wins, so a model
that echoes the template before answering still parses.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Pattern

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK = "No feedback provided"
WELCOME_FEEDBACK = "Welcome to your interview practice!"
DEFAULT_NEXT_QUESTION = "Could not generate the next question."
DEFAULT_OVERALL_FEEDBACK = "No overall feedback provided"

MIN_SCORE = 0
MAX_SCORE = 10

_FLAGS = re.IGNORECASE | re.DOTALL | re.MULTILINE

_LINE_START = r"^[ \t]*(?:[-*][ \t]+)?"

_FEEDBACK_LABEL = _LINE_START + r"Feedback:"
_SCORE_LABEL = _LINE_START + r"Score:"
_CODE_FEEDBACK_LABEL = _LINE_START + r"Code Feedback:"
_CODE_SCORE_LABEL = _LINE_START + r"Code Score:"
_NEXT_QUESTION_LABEL = _LINE_START + r"Next Question:"
_OVERALL_FEEDBACK_LABEL = _LINE_START + r"Overall Feedback:"

_ANY_LABEL = "|".join(
    [
        _FEEDBACK_LABEL,
        _SCORE_LABEL,
        _CODE_FEEDBACK_LABEL,
        _CODE_SCORE_LABEL,
        _NEXT_QUESTION_LABEL,
        _OVERALL_FEEDBACK_LABEL,
        _LINE_START + r"Overall Score:",
        _LINE_START + r"Areas for Improvement:",
    ]
)

_BOLD_LABEL = re.compile(
    r"\*{1,2}((?:Code |Overall )?(?:Feedback|Score)|Next Question|Areas for Improvement)\*{0,2}:\*{0,2}",
    re.IGNORECASE,
)


def _section(label: str) -> Pattern[str]:
    return re.compile(label + r"\s*(.*?)(?=" + _ANY_LABEL + r"|\Z)", _FLAGS)


def _to_end(label: str) -> Pattern[str]:
    # Runs to the end of the text; a repeated label starts a new match
    return re.compile(label + r"\s*(.*?)(?=" + label + r"|\Z)", _FLAGS)


_FEEDBACK_RE = _section(_FEEDBACK_LABEL)
_CODE_FEEDBACK_RE = _section(_CODE_FEEDBACK_LABEL)
_SCORE_RE = _section(_SCORE_LABEL)
_CODE_SCORE_RE = _section(_CODE_SCORE_LABEL)
_NEXT_QUESTION_RE = _to_end(_NEXT_QUESTION_LABEL)
_OVERALL_FEEDBACK_RE = _to_end(_OVERALL_FEEDBACK_LABEL)
_LEADING_INT_RE = re.compile(r"\s*\[?\s*(\d+)")


@dataclass
class ParsedTurn:
    feedback: str
    score: Optional[int]
    next_question_text: str
    code_feedback: Optional[str] = None
    code_score: Optional[int] = None
    missing: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing


def _normalize(text: Optional[str]) -> str:
    if not text:
        return ""
    return _BOLD_LABEL.sub(r"\1:", text)


def _last_group(pattern: Pattern[str], text: str) -> Optional[str]:
    value = None
    for match in pattern.finditer(text):
        value = match.group(1)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _score(pattern: Pattern[str], text: str) -> Optional[int]:
    raw = _last_group(pattern, text)
    if raw is None:
        return None
    match = _LEADING_INT_RE.match(raw)
    if not match:
        return None
    value = int(match.group(1))
    if value < MIN_SCORE or value > MAX_SCORE:
        return None
    return value


def parse(
    response_text: Optional[str],
    default_feedback: str = DEFAULT_FEEDBACK,
    expect_code: bool = False,
    expect_next_question: bool = True,
) -> ParsedTurn:
    """
    Extract feedback, score, next question and (optionally) code fields.

    ``expect_code`` and ``expect_next_question`` only decide which absent
    fields count as ``missing``; every field is always looked for.
    """
    text = _normalize(response_text)
    missing = []

    feedback = _last_group(_FEEDBACK_RE, text)
    if feedback is None:
        missing.append("feedback")
        feedback = default_feedback

    score = _score(_SCORE_RE, text)

    next_question = _last_group(_NEXT_QUESTION_RE, text)
    if next_question is None:
        if expect_next_question:
            missing.append("next_question")
        next_question = DEFAULT_NEXT_QUESTION

    code_feedback = _last_group(_CODE_FEEDBACK_RE, text)
    code_score = _score(_CODE_SCORE_RE, text)
    if expect_code and code_feedback is None:
        missing.append("code_feedback")

    if missing:
        logger.warning("LLM response missing %s; using defaults", ", ".join(missing))

    return ParsedTurn(
        feedback=feedback,
        score=score,
        next_question_text=next_question,
        code_feedback=code_feedback,
        code_score=code_score,
        missing=missing,
    )


def parse_overall_feedback(response_text: Optional[str]) -> str:
    text = _normalize(response_text)
    overall = _last_group(_OVERALL_FEEDBACK_RE, text)
    if overall is None:
        logger.warning("LLM response missing overall feedback; using default")
        return DEFAULT_OVERALL_FEEDBACK
    return overall
