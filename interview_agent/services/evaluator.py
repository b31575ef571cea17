"""Answer scoring.

MCQ answers are scored by exact match on the option index. Subjective
answers are scored by the LLM against the question's key points. Nothing in
this module raises for a bad answer or a provider failure: the subjective
path degrades to a fixed manual-review result, and every structured score
is clamped into ``[0, marks]`` before it leaves.
"""
import math

from flask import current_app

from . import llm
from ..errors import LLMError
from ..models.question import MCQ, SUBJECTIVE

FALLBACK_RATIONALE = "Error evaluating response. Please review manually."
EVALUATION_TEMPERATURE = 0.3


def clamp_score(value, marks):
    """Clamp ``value`` into [0, marks] and round half-up to an integer."""
    try:
        value = float(value)
    except OverflowError:
        return int(marks) if value > 0 else 0
    if math.isnan(value):
        return 0
    value = min(max(value, 0.0), float(marks))
    return int(math.floor(value + 0.5))


def evaluate_mcq(question, candidate_answer):
    try:
        selected = int(str(candidate_answer).strip())
    except (TypeError, ValueError):
        selected = None
    is_correct = selected is not None and selected == question.correct_option
    return {
        "score": question.marks if is_correct else 0,
        "is_correct": is_correct,
        "rationale": f"Answer evaluated: {'Correct' if is_correct else 'Incorrect'}",
        "covered_points": [],
        "missed_points": [],
    }


def _fallback(key_points):
    return {
        "score": 0,
        "rationale": FALLBACK_RATIONALE,
        "covered_points": [],
        "missed_points": list(key_points),
    }


def build_rubric_prompt(question_text, key_points, candidate_answer, marks):
    points = "\n".join(f"{i}. {p}" for i, p in enumerate(key_points, start=1))
    return f"""You are an expert evaluator for interview responses.

Question: {question_text}

Key Points (that should be covered):
{points}

Candidate's Answer:
\"\"\"
{candidate_answer}
\"\"\"

Evaluate the answer and:
1. Assign a score out of {marks} marks
2. Provide brief constructive feedback
3. List which key points were covered
4. List which key points were missed

Return ONLY valid JSON with this structure:
{{
  "score": <number between 0 and {marks}>,
  "feedback": "Brief feedback here",
  "coveredPoints": ["Point text", ...],
  "missedPoints": ["Point text", ...]
}}

Be fair and consider partial credit. Return only JSON, no additional text."""


def _string_list(value):
    if not isinstance(value, list):
        return None
    return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _parse_rubric_result(text, key_points, marks):
    data = llm.extract_json(text, kind='object')
    raw_score = data.get("score")
    if isinstance(raw_score, bool) or not isinstance(raw_score, (int, float, str)):
        raise ValueError("score missing from evaluation")
    score = clamp_score(raw_score, marks)

    covered = _string_list(data.get("coveredPoints", data.get("covered_points")))
    missed = _string_list(data.get("missedPoints", data.get("missed_points")))
    if covered is None:
        covered = []
    if missed is None:
        missed = [p for p in key_points if p not in covered]
    feedback = data.get("feedback") or data.get("rationale") or ""
    return {
        "score": score,
        "rationale": str(feedback).strip(),
        "covered_points": covered,
        "missed_points": missed,
    }


def evaluate_subjective(question, candidate_answer):
    key_points = list(question.key_points or [])
    prompt = build_rubric_prompt(question.question_text, key_points, candidate_answer or "", question.marks)
    try:
        text = llm.complete(prompt, temperature=EVALUATION_TEMPERATURE)
    except LLMError:
        current_app.logger.exception('Subjective evaluation failed for question %s, using fallback', question.id)
        return _fallback(key_points)
    try:
        return _parse_rubric_result(text, key_points, question.marks)
    except (ValueError, TypeError, AttributeError, OverflowError):
        current_app.logger.warning('Unparseable evaluation for question %s, using fallback; output=%s',
                                   question.id, (text or '')[:500])
        return _fallback(key_points)


def evaluate(question, candidate_answer):
    """Score ``candidate_answer`` for ``question``.

    Returns a dict with ``score``, ``rationale``, ``covered_points``,
    ``missed_points`` and, for MCQ, ``is_correct``.
    """
    if question.type == MCQ:
        return evaluate_mcq(question, candidate_answer)
    if question.type == SUBJECTIVE:
        return evaluate_subjective(question, candidate_answer)
    raise ValueError(f"unknown question type {question.type!r}")
