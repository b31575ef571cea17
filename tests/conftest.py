import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import TestConfig
from interview_agent import create_app
from interview_agent.errors import LLMError
from interview_agent.extensions import db
from interview_agent.models.user import User
from interview_agent.services import agents, llm, questions


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        # a file, not :memory:, so threads share one database
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"
        LOCAL_STORAGE_DIR = str(tmp_path / 'storage')

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """An app context for calling services directly."""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


class LLMStub:
    """Stands in for ``llm.complete``: returns queued replies in order."""

    def __init__(self):
        self.replies = []
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)
        return self

    def __call__(self, prompt, temperature=0.7, max_tokens=None):
        self.calls.append({"prompt": prompt, "temperature": temperature})
        if not self.replies:
            raise LLMError("no stubbed reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def llm_stub(monkeypatch):
    stub = LLMStub()
    monkeypatch.setattr(llm, "complete", stub)
    return stub


def make_user(email, name="Test User"):
    user = User(email=email, name=name)
    user.set_password("password123")
    db.session.add(user)
    db.session.commit()
    return user.id


@pytest.fixture
def creator_id(ctx):
    return make_user("creator@example.com", "Creator")


@pytest.fixture
def other_user_id(ctx):
    return make_user("someone@example.com", "Someone Else")


KEY_POINTS = ["Defines a closure", "Mentions captured variables", "Gives a practical use"]


@pytest.fixture
def published_agent(creator_id):
    """1 MCQ (2 marks, correct option 1) and 1 subjective question (10 marks)."""
    agent = agents.create_agent(creator_id, name="Python Screen", max_follow_ups=2)
    mcq = questions.create_question(
        creator_id, agent.id, "mcq",
        question_text="Which keyword defines a function?",
        marks=2, options=["class", "def", "lambda", "func"], correct_option=1)
    subjective = questions.create_question(
        creator_id, agent.id, "subjective",
        question_text="Explain closures in Python.",
        marks=10, key_points=list(KEY_POINTS))
    agents.publish_agent(creator_id, agent.id)
    return {
        "agent_id": agent.id,
        "link": agent.shareable_link,
        "mcq_id": mcq.id,
        "subjective_id": subjective.id,
    }
