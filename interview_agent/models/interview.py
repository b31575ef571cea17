from ..extensions import db
from .base import TimestampMixin, utcnow

# persisted status
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
ABANDONED = "abandoned"
STATUSES = (IN_PROGRESS, COMPLETED, ABANDONED)

# state machine phase
PHASE_CREATED = "created"
PHASE_INTRO_PENDING = "intro_pending"
PHASE_QUESTIONING = "questioning"
PHASE_COMPLETING = "completing"
PHASE_COMPLETED = "completed"
PHASE_ABANDONED = "abandoned"


class Interview(db.Model, TimestampMixin):
    __tablename__ = "interviews"

    id = db.Column(db.Integer, primary_key=True)
    # no foreign key: interviews are kept when their agent is deleted
    agent_id = db.Column(db.Integer, nullable=False, index=True)

    candidate_name = db.Column(db.String(200), nullable=False)
    candidate_email = db.Column(db.String(254), nullable=False, index=True)
    candidate_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))  # if the candidate is signed in

    status = db.Column(db.String(20), nullable=False, default=IN_PROGRESS, index=True)
    phase = db.Column(db.String(20), nullable=False, default=PHASE_CREATED)
    total_score = db.Column(db.Integer, nullable=False, default=0)
    max_score = db.Column(db.Integer, nullable=False, default=0)  # fixed at start
    question_ids = db.Column(db.JSON, nullable=False, default=list)  # ordered snapshot at start

    candidate_intro = db.Column(db.Text)
    recording_url = db.Column(db.String(1024))
    started_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime)

    responses = db.relationship(
        "InterviewResponse",
        backref="interview",
        cascade="all, delete-orphan",
        order_by="InterviewResponse.id",
        lazy="select",
    )
    recordings = db.relationship(
        "Recording",
        backref="interview",
        cascade="all, delete-orphan",
        order_by="Recording.id",
        lazy="select",
    )

    __table_args__ = (
        db.Index("ix_interviews_agent_status", "agent_id", "status"),
    )

    @property
    def is_open(self):
        return self.status == IN_PROGRESS

    def to_dict(self):
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "candidate_name": self.candidate_name,
            "candidate_email": self.candidate_email,
            "status": self.status,
            "phase": self.phase,
            "total_score": self.total_score,
            "max_score": self.max_score,
            "candidate_intro": self.candidate_intro,
            "recording_url": self.recording_url,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self) -> str:
        return f"<Interview id={self.id} agent_id={self.agent_id} status={self.status}>"
