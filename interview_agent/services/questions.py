"""Question bank operations.

Every mutation recomputes ``InterviewAgent.total_marks`` from the stored
questions before committing, so the denormalized total never drifts.
"""
from flask import current_app
from sqlalchemy import func

from . import generator
from .agents import recompute_total_marks, require_owned_agent
from .knowledge import combined_content
from ..extensions import db
from ..errors import (InvalidSourceRequest, MalformedQuestionDefinition, QuestionGenerationFailed,
                      QuestionNotFound)
from ..models.knowledge_source import KnowledgeSource
from ..models.question import Question

QUESTION_FIELDS = ("question_text", "order", "marks", "options", "correct_option", "key_points")


def _next_order(agent_id):
    current = db.session.query(func.max(Question.order)).filter(Question.agent_id == agent_id).scalar()
    return (current or 0) + 1


def _owned_question(user_id, question_id):
    question = db.session.get(Question, question_id)
    if question is None:
        raise QuestionNotFound()
    agent = require_owned_agent(user_id, question.agent_id)
    return question, agent


def list_questions(user_id, agent_id):
    agent = require_owned_agent(user_id, agent_id)
    return list(agent.questions)


def create_question(user_id, agent_id, type, **fields):
    agent = require_owned_agent(user_id, agent_id)
    fields = {k: v for k, v in fields.items() if k in QUESTION_FIELDS}
    if fields.get("order") is None:
        fields["order"] = _next_order(agent.id)
    question = Question.build(type, agent_id=agent.id, **fields)
    db.session.add(question)
    recompute_total_marks(agent)
    db.session.commit()
    return question


def update_question(user_id, question_id, **changes):
    question, agent = _owned_question(user_id, question_id)
    new_type = changes.pop("type", None)
    if new_type and new_type != question.type:
        raise MalformedQuestionDefinition("Question type cannot be changed")
    question.apply_changes(**{k: v for k, v in changes.items() if k in QUESTION_FIELDS})
    recompute_total_marks(agent)
    db.session.commit()
    return question


def delete_question(user_id, question_id):
    question, agent = _owned_question(user_id, question_id)
    db.session.delete(question)
    recompute_total_marks(agent)
    db.session.commit()


def delete_all_questions(user_id, agent_id):
    agent = require_owned_agent(user_id, agent_id)
    deleted = Question.query.filter_by(agent_id=agent.id).delete(synchronize_session=False)
    db.session.expire(agent, ["questions"])
    recompute_total_marks(agent)
    db.session.commit()
    return deleted


def reorder_questions(user_id, agent_id, question_ids):
    """Assign orders 1..n following ``question_ids``."""
    agent = require_owned_agent(user_id, agent_id)
    by_id = {q.id: q for q in Question.query.filter_by(agent_id=agent.id).all()}
    missing = [qid for qid in question_ids if qid not in by_id]
    if missing:
        raise QuestionNotFound(f"Questions not in this agent: {missing}")
    for index, qid in enumerate(question_ids, start=1):
        by_id[qid].order = index
    db.session.commit()
    db.session.expire(agent, ["questions"])
    return list(agent.questions)


def _check_generation_request(mcq_count, subjective_count, marks_per_mcq, marks_per_subjective):
    for name, value in (("mcq_count", mcq_count), ("subjective_count", subjective_count)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise MalformedQuestionDefinition(f"{name} must be a non-negative integer")
    for name, value in (("marks_per_mcq", marks_per_mcq), ("marks_per_subjective", marks_per_subjective)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise MalformedQuestionDefinition(f"{name} must be a positive integer")
    if mcq_count == 0 and subjective_count == 0:
        raise MalformedQuestionDefinition("Nothing to generate")


def generate_questions(user_id, agent_id, mcq_count=5, subjective_count=3,
                       marks_per_mcq=2, marks_per_subjective=10):
    """Generate questions from the agent's knowledge sources and append them.

    A single topic source uses the topic prompt; anything else uses the
    combined source text. Generated items that fail validation are skipped.
    """
    _check_generation_request(mcq_count, subjective_count, marks_per_mcq, marks_per_subjective)
    agent = require_owned_agent(user_id, agent_id)
    sources = KnowledgeSource.query.filter_by(agent_id=agent.id).all()
    content = combined_content(agent.id)
    if not content:
        raise InvalidSourceRequest("No knowledge sources found")
    topic_only = len(sources) == 1 and sources[0].type == "topic"
    topic = sources[0].content if topic_only else None
    # no transaction stays open across the LLM calls
    db.session.commit()

    if topic_only:
        items = generator.generate_from_topic(topic, mcq_count, subjective_count,
                                              marks_per_mcq, marks_per_subjective)
    else:
        items = []
        if mcq_count > 0:
            items += generator.generate_mcqs(content, mcq_count, marks_per_mcq)
        if subjective_count > 0:
            items += generator.generate_subjective(content, subjective_count, marks_per_subjective)

    agent = require_owned_agent(user_id, agent_id)
    order = _next_order(agent.id)
    created = []
    for fields in items:
        qtype = fields.pop("type")
        try:
            question = Question.build(qtype, agent_id=agent.id, order=order, **fields)
        except MalformedQuestionDefinition as e:
            current_app.logger.warning('Skipping generated %s question for agent %s: %s', qtype, agent.id, e)
            continue
        db.session.add(question)
        created.append(question)
        order += 1
    if not created:
        db.session.rollback()
        raise QuestionGenerationFailed("The model returned no usable questions")
    recompute_total_marks(agent)
    db.session.commit()
    current_app.logger.info('Generated %s questions for agent %s', len(created), agent.id)
    return created
