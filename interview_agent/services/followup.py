from flask import current_app

from . import llm
from .evaluator import evaluate_subjective
from ..errors import InvalidQuestionForFollowUp, LLMError
from ..models.question import SUBJECTIVE

FALLBACK_FOLLOW_UP = (
    "Is there anything else you'd like to add to your answer? "
    "Perhaps some additional aspects we haven't covered yet?"
)
FOLLOW_UP_TEMPERATURE = 0.8


def build_follow_up_prompt(question_text, candidate_answer, missed_points):
    missed = ", ".join(missed_points) if missed_points else "some key aspects"
    return f"""You are conducting an interview. The candidate answered a subjective question, but missed some important points.

Original Question: {question_text}

Candidate's Answer:
\"\"\"
{candidate_answer}
\"\"\"

Key points that were missed or not fully covered:
{missed}

Generate ONE interactive, conversational follow-up question that:
- Asks the candidate what they might have missed in their first response
- Encourages them to think about additional aspects they haven't covered
- Is friendly and helpful, not confrontational
- Guides them to cover the missed points without directly stating them
- Feels natural and conversational

Return ONLY the follow-up question, nothing else."""


def _clean(text):
    text = (text or "").strip()
    # models like to wrap the question in quotes
    if len(text) >= 2 and text[0] in "\"'" and text[-1] in "\"'":
        text = text[1:-1].strip()
    return text


def generate_follow_up(question, candidate_answer, evaluation=None):
    """Return one follow-up prompt for a subjective question.

    Uses ``evaluation`` when the caller already has one, otherwise
    re-evaluates the answer to find the missed key points. Never persists
    anything and never raises for provider failures.
    """
    if question is None or question.type != SUBJECTIVE:
        raise InvalidQuestionForFollowUp()

    if evaluation is None:
        evaluation = evaluate_subjective(question, candidate_answer)
    missed = evaluation.get("missed_points") or []

    prompt = build_follow_up_prompt(question.question_text, candidate_answer or "", missed)
    try:
        text = _clean(llm.complete(prompt, temperature=FOLLOW_UP_TEMPERATURE))
    except LLMError:
        current_app.logger.exception('Follow-up generation failed for question %s, using fallback', question.id)
        return FALLBACK_FOLLOW_UP
    return text or FALLBACK_FOLLOW_UP
