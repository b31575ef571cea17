from ..extensions import db
from .base import utcnow


class InterviewResponse(db.Model):
    """One ledger row per (interview, question)."""
    __tablename__ = "interview_responses"

    id = db.Column(db.Integer, primary_key=True)
    interview_id = db.Column(db.Integer, db.ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False, index=True)
    # the question may be deleted later; the response keeps its id
    question_id = db.Column(db.Integer, nullable=False, index=True)

    candidate_answer = db.Column(db.Text, nullable=False, default="")  # raw text or option index
    is_correct = db.Column(db.Boolean)  # mcq only
    score = db.Column(db.Integer, nullable=False, default=0)  # best score seen for this question
    evaluation_feedback = db.Column(db.Text)  # creator-only rationale
    follow_up_questions = db.Column(db.JSON, nullable=False, default=list)
    follow_up_answers = db.Column(db.JSON, nullable=False, default=list)
    answered_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("interview_id", "question_id", name="uq_response_interview_question"),
    )

    @property
    def follow_up_rounds(self):
        return len(self.follow_up_questions or [])

    def to_dict(self):
        return {
            "id": self.id,
            "interview_id": self.interview_id,
            "question_id": self.question_id,
            "candidate_answer": self.candidate_answer,
            "is_correct": self.is_correct,
            "score": self.score,
            "evaluation_feedback": self.evaluation_feedback,
            "follow_up_questions": list(self.follow_up_questions or []),
            "follow_up_answers": list(self.follow_up_answers or []),
            "answered_at": self.answered_at.isoformat() if self.answered_at else None,
        }

    def __repr__(self) -> str:
        return f"<InterviewResponse interview_id={self.interview_id} question_id={self.question_id} score={self.score}>"
