from flask import jsonify
from flask_login import login_required
from . import bp
from .forms import (AgentForm, DocumentSourceForm, GenerateQuestionsForm, QuestionForm, ReorderForm,
                    SearchForm, TopicSourceForm, UrlSourceForm, WebSourcesForm)
from ...extensions import rq
from ...jobs.questions import generate_questions_job
from ...services import agents, knowledge, questions
from ...utils.decorators import with_identity
from ...utils.forms import provided, validated

AGENT_FIELDS = ("name", "gender", "appearance", "voice_type", "conversational_style",
                "enable_follow_ups", "max_follow_ups")
QUESTION_FIELDS = ("type", "question_text", "marks", "order", "options", "correct_option", "key_points")


# agents

@bp.get("/agents")
@login_required
@with_identity
def list_agents(user_id):
    return jsonify(agents.list_agents(user_id))


@bp.post("/agents")
@login_required
@with_identity
def create_agent(user_id):
    form = validated(AgentForm)
    agent = agents.create_agent(user_id, **provided(form, *AGENT_FIELDS))
    return jsonify(agent.to_dict()), 201


@bp.get("/agents/<int:agent_id>")
@login_required
@with_identity
def get_agent(agent_id, user_id):
    return jsonify(agents.get_agent(user_id, agent_id))


@bp.patch("/agents/<int:agent_id>")
@login_required
@with_identity
def update_agent(agent_id, user_id):
    form = validated(AgentForm)
    agent = agents.update_agent(user_id, agent_id, **provided(form, *AGENT_FIELDS))
    return jsonify(agent.to_dict())


@bp.delete("/agents/<int:agent_id>")
@login_required
@with_identity
def delete_agent(agent_id, user_id):
    agents.delete_agent(user_id, agent_id)
    return jsonify({"success": True})


@bp.post("/agents/<int:agent_id>/publish")
@login_required
@with_identity
def publish_agent(agent_id, user_id):
    return jsonify(agents.publish_agent(user_id, agent_id).to_dict())


@bp.post("/agents/<int:agent_id>/unpublish")
@login_required
@with_identity
def unpublish_agent(agent_id, user_id):
    return jsonify(agents.unpublish_agent(user_id, agent_id).to_dict())


# questions

@bp.get("/agents/<int:agent_id>/questions")
@login_required
@with_identity
def list_questions(agent_id, user_id):
    return jsonify([q.to_dict() for q in questions.list_questions(user_id, agent_id)])


@bp.post("/agents/<int:agent_id>/questions")
@login_required
@with_identity
def create_question(agent_id, user_id):
    form = validated(QuestionForm)
    fields = provided(form, *QUESTION_FIELDS)
    question = questions.create_question(user_id, agent_id, fields.pop("type", None), **fields)
    return jsonify(question.to_dict()), 201


@bp.delete("/agents/<int:agent_id>/questions")
@login_required
@with_identity
def delete_all_questions(agent_id, user_id):
    deleted = questions.delete_all_questions(user_id, agent_id)
    return jsonify({"deleted": deleted})


@bp.post("/agents/<int:agent_id>/questions/reorder")
@login_required
@with_identity
def reorder_questions(agent_id, user_id):
    form = validated(ReorderForm)
    ordered = questions.reorder_questions(user_id, agent_id, form.question_ids.data)
    return jsonify([q.to_dict() for q in ordered])


@bp.post("/agents/<int:agent_id>/questions/generate")
@login_required
@with_identity
def generate_questions(agent_id, user_id):
    form = validated(GenerateQuestionsForm)
    result = rq.enqueue(
        generate_questions_job,
        user_id,
        agent_id,
        mcq_count=form.mcq_count.data,
        subjective_count=form.subjective_count.data,
        marks_per_mcq=form.marks_per_mcq.data,
        marks_per_subjective=form.marks_per_subjective.data,
        job_timeout=600,
    )
    if isinstance(result, dict):
        # ran inline
        return jsonify(result), 201
    return jsonify({"job_id": result.id, "status": "queued"}), 202


@bp.patch("/questions/<int:question_id>")
@login_required
@with_identity
def update_question(question_id, user_id):
    form = validated(QuestionForm)
    question = questions.update_question(user_id, question_id, **provided(form, *QUESTION_FIELDS))
    return jsonify(question.to_dict())


@bp.delete("/questions/<int:question_id>")
@login_required
@with_identity
def delete_question(question_id, user_id):
    questions.delete_question(user_id, question_id)
    return jsonify({"success": True})


# knowledge sources

@bp.get("/agents/<int:agent_id>/sources")
@login_required
@with_identity
def list_sources(agent_id, user_id):
    return jsonify([s.to_dict() for s in knowledge.list_sources(user_id, agent_id)])


@bp.post("/agents/<int:agent_id>/sources/topic")
@login_required
@with_identity
def add_topic_source(agent_id, user_id):
    form = validated(TopicSourceForm)
    return jsonify(knowledge.add_topic_source(user_id, agent_id, form.topic.data).to_dict()), 201


@bp.post("/agents/<int:agent_id>/sources/url")
@login_required
@with_identity
def add_url_source(agent_id, user_id):
    form = validated(UrlSourceForm)
    return jsonify(knowledge.add_url_source(user_id, agent_id, form.url.data).to_dict()), 201


@bp.post("/agents/<int:agent_id>/sources/web")
@login_required
@with_identity
def add_web_sources(agent_id, user_id):
    form = validated(WebSourcesForm)
    sources = knowledge.add_web_search_sources(user_id, agent_id, form.urls.data)
    return jsonify([s.to_dict() for s in sources]), 201


@bp.post("/agents/<int:agent_id>/sources/document")
@login_required
@with_identity
def add_document_source(agent_id, user_id):
    form = validated(DocumentSourceForm)
    upload = form.file.data
    source = knowledge.add_document_source(
        user_id, agent_id, upload.filename, upload.read(),
        upload.mimetype or "application/octet-stream")
    return jsonify(source.to_dict()), 201


@bp.post("/sources/search")
@login_required
@with_identity
def search_sources(user_id):
    form = validated(SearchForm)
    return jsonify(knowledge.search_web(user_id, form.query.data, max_results=form.max_results.data))


@bp.delete("/sources/<int:source_id>")
@login_required
@with_identity
def delete_source(source_id, user_id):
    knowledge.delete_source(user_id, source_id)
    return jsonify({"success": True})
