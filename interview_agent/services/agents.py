"""Agent configuration and publication.

Every creator operation takes the caller's ``user_id`` explicitly; routes
resolve it from Flask-Login and pass it in.
"""
import secrets
import string

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..errors import (AgentNotFound, AgentNotFoundOrUnpublished, AuthenticationRequired,
                      CannotPublishWithoutQuestions, InvalidAgentSettings, Unauthorized)
from ..models.agent import CONVERSATIONAL_STYLES, GENDERS, InterviewAgent
from ..models.interview import COMPLETED, Interview
from ..models.question import Question

LINK_ALPHABET = string.ascii_lowercase + string.digits
LINK_LENGTH = 10

AGENT_SETTINGS = (
    "name", "gender", "appearance", "voice_type", "conversational_style",
    "enable_follow_ups", "max_follow_ups",
)


def generate_shareable_link(length=LINK_LENGTH):
    return "".join(secrets.choice(LINK_ALPHABET) for _ in range(length))


def _unused_link():
    # uniqueness is enforced by the index; this only avoids a pointless IntegrityError
    while True:
        link = generate_shareable_link()
        if not InterviewAgent.query.filter_by(shareable_link=link).first():
            return link


def require_user(user_id):
    if user_id is None:
        raise AuthenticationRequired()
    return user_id


def require_owned_agent(user_id, agent_id):
    """Load an agent the caller owns or raise."""
    require_user(user_id)
    agent = db.session.get(InterviewAgent, agent_id)
    if agent is None:
        raise AgentNotFound()
    if agent.creator_id != user_id:
        raise Unauthorized()
    return agent


def _clean_settings(settings):
    out = {}
    for key, value in settings.items():
        if key not in AGENT_SETTINGS or value is None:
            continue
        if key == "name":
            if not isinstance(value, str) or not value.strip():
                raise InvalidAgentSettings("Name cannot be empty")
            value = value.strip()
        elif key == "gender" and value not in GENDERS:
            raise InvalidAgentSettings(f"Gender must be one of {', '.join(GENDERS)}")
        elif key == "conversational_style" and value not in CONVERSATIONAL_STYLES:
            raise InvalidAgentSettings(
                f"Conversational style must be one of {', '.join(CONVERSATIONAL_STYLES)}")
        elif key == "max_follow_ups":
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidAgentSettings("max_follow_ups must be a non-negative integer")
        elif key == "enable_follow_ups":
            value = bool(value)
        out[key] = value
    return out


def recompute_total_marks(agent):
    """Set ``agent.total_marks`` from the stored questions. Caller commits."""
    db.session.flush()
    total = (
        db.session.query(func.coalesce(func.sum(Question.marks), 0))
        .filter(Question.agent_id == agent.id)
        .scalar()
    )
    agent.total_marks = int(total or 0)
    return agent.total_marks


def create_agent(user_id, **settings):
    require_user(user_id)
    agent = InterviewAgent(creator_id=user_id, shareable_link=_unused_link(), **_clean_settings(settings))
    db.session.add(agent)
    db.session.commit()
    current_app.logger.info('Agent %s created by user %s', agent.id, user_id)
    return agent


def update_agent(user_id, agent_id, **changes):
    agent = require_owned_agent(user_id, agent_id)
    for key, value in _clean_settings(changes).items():
        setattr(agent, key, value)
    db.session.commit()
    return agent


def publish_agent(user_id, agent_id):
    agent = require_owned_agent(user_id, agent_id)
    if Question.query.filter_by(agent_id=agent.id).count() == 0:
        raise CannotPublishWithoutQuestions()
    agent.is_published = True
    db.session.commit()
    current_app.logger.info('Agent %s published', agent.id)
    return agent


def unpublish_agent(user_id, agent_id):
    agent = require_owned_agent(user_id, agent_id)
    agent.is_published = False
    db.session.commit()
    current_app.logger.info('Agent %s unpublished', agent.id)
    return agent


def delete_agent(user_id, agent_id):
    """Delete the agent with its questions and sources. Interviews are kept."""
    agent = require_owned_agent(user_id, agent_id)
    db.session.delete(agent)
    db.session.commit()
    current_app.logger.info('Agent %s deleted by user %s', agent_id, user_id)


def list_agents(user_id):
    require_user(user_id)
    agents = (
        InterviewAgent.query.filter_by(creator_id=user_id)
        .order_by(InterviewAgent.created_at.desc(), InterviewAgent.id.desc())
        .all()
    )
    ids = [a.id for a in agents]
    counts = {}
    if ids:
        rows = (
            db.session.query(
                Interview.agent_id,
                func.count(Interview.id),
                func.sum(case((Interview.status == COMPLETED, 1), else_=0)),
            )
            .filter(Interview.agent_id.in_(ids))
            .group_by(Interview.agent_id)
            .all()
        )
        counts = {agent_id: (total, completed or 0) for agent_id, total, completed in rows}
    out = []
    for a in agents:
        d = a.to_dict()
        total, completed = counts.get(a.id, (0, 0))
        d["interview_count"] = int(total)
        d["completed_count"] = int(completed)
        out.append(d)
    return out


def get_agent(user_id, agent_id):
    agent = require_owned_agent(user_id, agent_id)
    d = agent.to_dict()
    d["questions"] = [q.to_dict() for q in agent.questions]
    d["knowledge_sources"] = [s.to_dict() for s in agent.knowledge_sources]
    return d


def get_public_agent(shareable_link):
    agent = InterviewAgent.query.filter_by(shareable_link=shareable_link).first()
    if agent is None or not agent.is_published:
        raise AgentNotFoundOrUnpublished()
    return agent.to_public_dict()
