import re

import pytest

from interview_agent.errors import (AgentNotFound, AgentNotFoundOrUnpublished, AuthenticationRequired,
                                    CannotPublishWithoutQuestions, InvalidAgentSettings, Unauthorized)
from interview_agent.extensions import db
from interview_agent.models.agent import InterviewAgent
from interview_agent.models.interview import Interview
from interview_agent.models.knowledge_source import KnowledgeSource
from interview_agent.models.question import Question
from interview_agent.services import agents, knowledge, questions, sessions


def _mcq(user_id, agent_id, marks=2):
    return questions.create_question(
        user_id, agent_id, "mcq", question_text="Pick one", marks=marks,
        options=["a", "b", "c", "d"], correct_option=2)


def test_generate_shareable_link_format():
    for _ in range(20):
        assert re.fullmatch(r"[a-z0-9]{10}", agents.generate_shareable_link())


def test_create_agent_defaults(creator_id):
    agent = agents.create_agent(creator_id)
    assert agent.name == "Untitled Interview"
    assert agent.conversational_style == "formal"
    assert agent.enable_follow_ups is True
    assert agent.max_follow_ups == 2
    assert agent.is_published is False
    assert agent.total_marks == 0
    assert re.fullmatch(r"[a-z0-9]{10}", agent.shareable_link)


def test_links_are_unique(creator_id):
    links = {agents.create_agent(creator_id, name=f"Agent {i}").shareable_link for i in range(5)}
    assert len(links) == 5


@pytest.mark.parametrize("settings", [
    {"name": "   "},
    {"gender": "robot"},
    {"conversational_style": "shouty"},
    {"max_follow_ups": -1},
    {"max_follow_ups": "two"},
])
def test_invalid_settings_rejected(creator_id, settings):
    with pytest.raises(InvalidAgentSettings):
        agents.create_agent(creator_id, **settings)


def test_anonymous_caller_is_rejected(ctx):
    with pytest.raises(AuthenticationRequired):
        agents.create_agent(None, name="x")
    with pytest.raises(AuthenticationRequired):
        agents.list_agents(None)


def test_other_users_cannot_touch_agent(creator_id, other_user_id):
    agent = agents.create_agent(creator_id, name="Mine")
    with pytest.raises(Unauthorized):
        agents.update_agent(other_user_id, agent.id, name="Theirs")
    with pytest.raises(Unauthorized):
        agents.get_agent(other_user_id, agent.id)
    with pytest.raises(Unauthorized):
        agents.delete_agent(other_user_id, agent.id)
    with pytest.raises(AgentNotFound):
        agents.get_agent(creator_id, 999999)


def test_update_is_partial(creator_id):
    agent = agents.create_agent(creator_id, name="Before", gender="male")
    updated = agents.update_agent(creator_id, agent.id, name="After", max_follow_ups=0)
    assert updated.name == "After"
    assert updated.gender == "male"
    assert updated.max_follow_ups == 0


def test_publish_requires_questions(creator_id):
    agent = agents.create_agent(creator_id)
    with pytest.raises(CannotPublishWithoutQuestions):
        agents.publish_agent(creator_id, agent.id)
    _mcq(creator_id, agent.id)
    assert agents.publish_agent(creator_id, agent.id).is_published is True
    assert agents.unpublish_agent(creator_id, agent.id).is_published is False


def test_total_marks_follows_question_bank(creator_id):
    agent = agents.create_agent(creator_id)
    first = _mcq(creator_id, agent.id, marks=2)
    _mcq(creator_id, agent.id, marks=5)
    assert db.session.get(InterviewAgent, agent.id).total_marks == 7
    questions.update_question(creator_id, first.id, marks=4)
    assert db.session.get(InterviewAgent, agent.id).total_marks == 9
    questions.delete_question(creator_id, first.id)
    assert db.session.get(InterviewAgent, agent.id).total_marks == 5


def test_public_agent_hides_answers(published_agent):
    public = agents.get_public_agent(published_agent["link"])
    assert public["name"] == "Python Screen"
    assert public["total_marks"] == 12
    assert len(public["questions"]) == 2
    for q in public["questions"]:
        assert "correct_option" not in q
        assert "key_points" not in q


def test_public_agent_must_be_published(creator_id, published_agent):
    agents.unpublish_agent(creator_id, published_agent["agent_id"])
    with pytest.raises(AgentNotFoundOrUnpublished):
        agents.get_public_agent(published_agent["link"])


def test_list_agents_counts_interviews(creator_id, other_user_id, published_agent):
    done = sessions.start_session(published_agent["agent_id"], "A", "a@example.com")["interview_id"]
    sessions.start_session(published_agent["agent_id"], "B", "b@example.com")
    sessions.complete_session(done)
    agents.create_agent(other_user_id, name="Not mine")

    listed = agents.list_agents(creator_id)
    assert [a["id"] for a in listed] == [published_agent["agent_id"]]
    assert listed[0]["interview_count"] == 2
    assert listed[0]["completed_count"] == 1


def test_delete_cascades_bank_and_sources(creator_id, published_agent):
    agent_id = published_agent["agent_id"]
    knowledge.add_topic_source(creator_id, agent_id, "Python closures")
    iid = sessions.start_session(agent_id, "A", "a@example.com")["interview_id"]

    agents.delete_agent(creator_id, agent_id)

    assert db.session.get(InterviewAgent, agent_id) is None
    assert Question.query.filter_by(agent_id=agent_id).count() == 0
    assert KnowledgeSource.query.filter_by(agent_id=agent_id).count() == 0
    assert db.session.get(Interview, iid).agent_id == agent_id
