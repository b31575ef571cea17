from flask_wtf.file import FileField, FileRequired
from wtforms import StringField, IntegerField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional

from ...utils.forms import JSONForm


class StartForm(JSONForm):
    candidate_name = StringField("Name", validators=[DataRequired(), Length(max=200)])
    candidate_email = StringField("Email", validators=[DataRequired(), Email(), Length(max=254)])


class IntroForm(JSONForm):
    intro_text = StringField("Introduction", validators=[Optional()])


class AnswerForm(JSONForm):
    question_id = IntegerField("Question", validators=[DataRequired()])
    # empty answers are scored like any other
    candidate_answer = StringField("Answer")


class FollowUpAnswerForm(JSONForm):
    question_id = IntegerField("Question", validators=[DataRequired()])
    follow_up_question = StringField("Follow-up question", validators=[DataRequired()])
    follow_up_answer = StringField("Follow-up answer")
    round = IntegerField("Round", validators=[Optional(), NumberRange(min=1)])


class RecordingForm(JSONForm):
    file = FileField("Recording", validators=[FileRequired()])
    duration_sec = IntegerField("Duration", validators=[Optional(), NumberRange(min=0)])


class CompleteForm(JSONForm):
    recording_url = StringField("Recording URL", validators=[Optional(), Length(max=1024)])
