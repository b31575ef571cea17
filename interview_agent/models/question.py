"""Question bank rows.

Questions are a tagged variant stored in one table: ``type`` is the
discriminator and each subclass validates its own fields on construction
and on update, so a persisted row always carries exactly the fields of its
kind.
"""
from ..extensions import db
from ..errors import MalformedQuestionDefinition, MalformedMCQDefinition, MalformedSubjectiveDefinition
from .base import TimestampMixin

MCQ = "mcq"
SUBJECTIVE = "subjective"
QUESTION_TYPES = (MCQ, SUBJECTIVE)

MCQ_OPTION_COUNT = 4
MIN_KEY_POINTS = 3


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _present(value):
    return value not in (None, [], "")


def _validate_common(question_text, marks, order):
    if not isinstance(question_text, str) or not question_text.strip():
        raise MalformedQuestionDefinition("Question text is required")
    if not _is_int(marks) or marks <= 0:
        raise MalformedQuestionDefinition("Marks must be a positive integer")
    if order is not None and not _is_int(order):
        raise MalformedQuestionDefinition("Order must be an integer")


class Question(db.Model, TimestampMixin):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("interview_agents.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)
    question_text = db.Column(db.Text, nullable=False)
    order = db.Column(db.Integer, nullable=False, default=1)  # presentation order within the agent
    marks = db.Column(db.Integer, nullable=False)

    # mcq
    options = db.Column(db.JSON)
    correct_option = db.Column(db.Integer)
    # subjective
    key_points = db.Column(db.JSON)

    __table_args__ = (
        db.Index("ix_questions_agent_order", "agent_id", "order"),
    )
    __mapper_args__ = {"polymorphic_on": type}

    variant_fields = ()
    common_fields = ("question_text", "order", "marks")

    def __init__(self, **kwargs):
        _validate_common(kwargs.get("question_text"), kwargs.get("marks"), kwargs.get("order"))
        self._validate_variant(kwargs)
        keep = set(self.common_fields) | set(self.variant_fields) | {"id", "agent_id", "agent"}
        super().__init__(**{k: v for k, v in kwargs.items() if k in keep and v is not None})

    @staticmethod
    def build(type, **fields):
        """Construct the right variant for ``type`` (mcq | subjective)."""
        variants = {MCQ: McqQuestion, SUBJECTIVE: SubjectiveQuestion}
        cls = variants.get(type)
        if cls is None:
            raise MalformedQuestionDefinition(f"Unknown question type: {type!r}")
        return cls(**fields)

    @classmethod
    def _validate_variant(cls, fields):
        raise NotImplementedError

    @property
    def is_subjective(self):
        return self.type == SUBJECTIVE

    def apply_changes(self, **changes):
        """Validate and apply a partial update without changing the variant."""
        allowed = set(self.common_fields) | set(self.variant_fields)
        unknown = [k for k, v in changes.items() if k not in allowed and _present(v)]
        if unknown:
            raise MalformedQuestionDefinition(
                f"Fields not valid for {self.type} question: {', '.join(sorted(unknown))}")
        merged = {name: getattr(self, name) for name in allowed}
        merged.update({k: v for k, v in changes.items() if k in allowed and v is not None})
        _validate_common(merged["question_text"], merged["marks"], merged["order"])
        self._validate_variant(merged)
        for name in allowed:
            setattr(self, name, merged[name])
        return self

    def to_candidate_dict(self):
        # never includes correct_option or key_points
        out = {
            "id": self.id,
            "type": self.type,
            "question_text": self.question_text,
            "order": self.order,
            "marks": self.marks,
        }
        if self.type == MCQ:
            out["options"] = list(self.options or [])
        return out

    def to_dict(self):
        out = self.to_candidate_dict()
        out["agent_id"] = self.agent_id
        if self.type == MCQ:
            out["correct_option"] = self.correct_option
        else:
            out["key_points"] = list(self.key_points or [])
        return out

    def __repr__(self) -> str:
        return f"<Question id={self.id} type={self.type} order={self.order}>"


class McqQuestion(Question):
    __mapper_args__ = {"polymorphic_identity": MCQ}

    variant_fields = ("options", "correct_option")

    @classmethod
    def _validate_variant(cls, fields):
        if _present(fields.get("key_points")):
            raise MalformedMCQDefinition("MCQ cannot carry key points")
        options = fields.get("options")
        if not isinstance(options, (list, tuple)) or len(options) != MCQ_OPTION_COUNT:
            raise MalformedMCQDefinition("MCQ must have exactly 4 options")
        if not all(isinstance(o, str) and o.strip() for o in options):
            raise MalformedMCQDefinition("MCQ options must be non-empty strings")
        correct = fields.get("correct_option")
        if not _is_int(correct) or not 0 <= correct < MCQ_OPTION_COUNT:
            raise MalformedMCQDefinition("MCQ must have a valid correct option (0-3)")
        fields["options"] = list(options)


class SubjectiveQuestion(Question):
    __mapper_args__ = {"polymorphic_identity": SUBJECTIVE}

    variant_fields = ("key_points",)

    @classmethod
    def _validate_variant(cls, fields):
        if _present(fields.get("options")) or fields.get("correct_option") is not None:
            raise MalformedSubjectiveDefinition("Subjective question cannot carry options")
        points = fields.get("key_points")
        if not isinstance(points, (list, tuple)) or len(points) < MIN_KEY_POINTS:
            raise MalformedSubjectiveDefinition()
        if not all(isinstance(p, str) and p.strip() for p in points):
            raise MalformedSubjectiveDefinition("Key points must be non-empty strings")
        fields["key_points"] = list(points)
