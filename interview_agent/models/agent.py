from ..extensions import db
from .base import TimestampMixin

GENDERS = ("male", "female", "non_binary")
CONVERSATIONAL_STYLES = ("casual", "formal", "interrogative")


class InterviewAgent(db.Model, TimestampMixin):
    __tablename__ = "interview_agents"

    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # persona
    name = db.Column(db.String(200), nullable=False, default="Untitled Interview")
    gender = db.Column(db.String(20), nullable=False, default="female")
    appearance = db.Column(db.String(255), nullable=False, default="default_avatar")  # avatar image URL or service id
    voice_type = db.Column(db.String(100), nullable=False, default="default")
    conversational_style = db.Column(db.String(20), nullable=False, default="formal")

    # follow-ups per subjective question
    enable_follow_ups = db.Column(db.Boolean, nullable=False, default=True)
    max_follow_ups = db.Column(db.Integer, nullable=False, default=2)

    # publication
    shareable_link = db.Column(db.String(32), nullable=False, unique=True, index=True)
    is_published = db.Column(db.Boolean, nullable=False, default=False, index=True)
    total_marks = db.Column(db.Integer, nullable=False, default=0)  # sum of question marks

    questions = db.relationship(
        "Question",
        backref="agent",
        cascade="all, delete-orphan",
        order_by="Question.order",
        lazy="select",
    )
    knowledge_sources = db.relationship(
        "KnowledgeSource",
        backref="agent",
        cascade="all, delete-orphan",
        order_by="KnowledgeSource.id",
        lazy="select",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "creator_id": self.creator_id,
            "name": self.name,
            "gender": self.gender,
            "appearance": self.appearance,
            "voice_type": self.voice_type,
            "conversational_style": self.conversational_style,
            "enable_follow_ups": self.enable_follow_ups,
            "max_follow_ups": self.max_follow_ups,
            "shareable_link": self.shareable_link,
            "is_published": self.is_published,
            "total_marks": self.total_marks,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_public_dict(self):
        """Persona and sanitized questions for the candidate page."""
        return {
            "id": self.id,
            "name": self.name,
            "gender": self.gender,
            "appearance": self.appearance,
            "voice_type": self.voice_type,
            "conversational_style": self.conversational_style,
            "total_marks": self.total_marks,
            "questions": [q.to_candidate_dict() for q in self.questions],
        }

    def __repr__(self) -> str:
        return f"<InterviewAgent id={self.id} name={self.name!r}>"
