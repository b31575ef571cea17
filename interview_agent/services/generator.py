"""LLM prompts for question generation.

Each function returns raw dicts shaped like ``Question.build`` keyword
arguments; the caller validates them. Provider failures and unparseable
output raise ``QuestionGenerationFailed``.
"""
from flask import current_app

from . import llm
from ..errors import LLMError, QuestionGenerationFailed

GENERATION_TEMPERATURE = 0.8


def _ask(prompt, kind, what):
    try:
        text = llm.complete(prompt, temperature=GENERATION_TEMPERATURE)
        return llm.extract_json(text, kind=kind)
    except LLMError as e:
        current_app.logger.exception('Generating %s failed', what)
        raise QuestionGenerationFailed(f"Failed to generate {what}") from e
    except ValueError as e:
        current_app.logger.warning('Unparseable %s from model: %s', what, e)
        raise QuestionGenerationFailed(f"Failed to generate {what}") from e


def _mcq_fields(item, marks):
    if not isinstance(item, dict):
        return None
    return {
        "type": "mcq",
        "question_text": item.get("questionText") or item.get("question_text"),
        "options": item.get("options"),
        "correct_option": item.get("correctOption", item.get("correct_option")),
        "marks": marks,
    }


def _subjective_fields(item, marks):
    if not isinstance(item, dict):
        return None
    return {
        "type": "subjective",
        "question_text": item.get("questionText") or item.get("question_text"),
        "key_points": item.get("keyPoints") or item.get("key_points"),
        "marks": marks,
    }


def generate_mcqs(content, count, marks_per_question):
    prompt = f"""You are an expert at creating multiple-choice questions for interviews and assessments.

Based on the following content, generate exactly {count} multiple-choice questions.

Content:
\"\"\"
{content}
\"\"\"

Requirements:
- Each question should have 4 options (A, B, C, D)
- Questions should test understanding, not just memorization
- Vary the difficulty levels
- Mark each question as worth {marks_per_question} marks
- One option must be clearly correct

Return ONLY a valid JSON array with this exact structure:
[
  {{
    "questionText": "The question here?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctOption": 0,
    "marks": {marks_per_question}
  }}
]

Return only the JSON array, no additional text."""
    items = _ask(prompt, 'array', 'MCQ questions')
    return [f for f in (_mcq_fields(i, marks_per_question) for i in items[:count]) if f]


def generate_subjective(content, count, marks_per_question):
    prompt = f"""You are an expert at creating subjective interview questions that test deep understanding.

Based on the following content, generate exactly {count} subjective (essay-type) questions.

Content:
\"\"\"
{content}
\"\"\"

Requirements:
- Questions should require detailed, thoughtful answers
- For each question, provide 3-5 key points that a good answer should cover
- Vary the difficulty and scope of questions
- Each question is worth {marks_per_question} marks

Return ONLY a valid JSON array with this exact structure:
[
  {{
    "questionText": "Explain the concept...",
    "keyPoints": ["Point 1", "Point 2", "Point 3", "Point 4"],
    "marks": {marks_per_question}
  }}
]

Return only the JSON array, no additional text."""
    items = _ask(prompt, 'array', 'subjective questions')
    return [f for f in (_subjective_fields(i, marks_per_question) for i in items[:count]) if f]


def generate_from_topic(topic, mcq_count, subjective_count, marks_per_mcq, marks_per_subjective):
    """Generate both kinds in one call when all we have is a topic name."""
    prompt = f"""You are creating an interview assessment for the topic: "{topic}"

Generate:
- {mcq_count} multiple-choice questions (4 options each, {marks_per_mcq} marks each)
- {subjective_count} subjective questions (with 3-5 key points each, {marks_per_subjective} marks each)

Questions should cover various aspects and difficulty levels of {topic}.

Return ONLY valid JSON with this structure:
{{
  "mcqs": [
    {{
      "questionText": "Question here?",
      "options": ["A", "B", "C", "D"],
      "correctOption": 0,
      "marks": {marks_per_mcq}
    }}
  ],
  "subjective": [
    {{
      "questionText": "Question here?",
      "keyPoints": ["Point 1", "Point 2", "Point 3"],
      "marks": {marks_per_subjective}
    }}
  ]
}}

Return only JSON, no additional text."""
    data = _ask(prompt, 'object', 'questions from topic')
    mcqs = data.get("mcqs") if isinstance(data.get("mcqs"), list) else []
    subjective = data.get("subjective") if isinstance(data.get("subjective"), list) else []
    out = [f for f in (_mcq_fields(i, marks_per_mcq) for i in mcqs[:mcq_count]) if f]
    out += [f for f in (_subjective_fields(i, marks_per_subjective) for i in subjective[:subjective_count]) if f]
    return out
