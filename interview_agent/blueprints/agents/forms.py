from flask_wtf.file import FileField, FileRequired
from wtforms import StringField, IntegerField, BooleanField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional

from ...models.agent import CONVERSATIONAL_STYLES, GENDERS
from ...models.question import QUESTION_TYPES
from ...utils.forms import JSONForm, ListField


class AgentForm(JSONForm):
    name = StringField("Name", validators=[Optional(), Length(max=200)])
    gender = StringField("Gender", validators=[Optional(), AnyOf(GENDERS)])
    appearance = StringField("Appearance", validators=[Optional(), Length(max=255)])
    voice_type = StringField("Voice", validators=[Optional(), Length(max=100)])
    conversational_style = StringField("Style", validators=[Optional(), AnyOf(CONVERSATIONAL_STYLES)])
    enable_follow_ups = BooleanField("Follow-ups")
    max_follow_ups = IntegerField("Max follow-ups", validators=[Optional(), NumberRange(min=0)])


class QuestionForm(JSONForm):
    # type is validated here; the variant fields are validated by the model
    type = StringField("Type", validators=[Optional(), AnyOf(QUESTION_TYPES)])
    question_text = StringField("Question", validators=[Optional()])
    marks = IntegerField("Marks", validators=[Optional()])
    order = IntegerField("Order", validators=[Optional()])
    options = ListField("Options")
    correct_option = IntegerField("Correct option", validators=[Optional()])
    key_points = ListField("Key points")


class ReorderForm(JSONForm):
    question_ids = ListField("Question ids", coerce=int)


class GenerateQuestionsForm(JSONForm):
    mcq_count = IntegerField("MCQ count", default=5, validators=[Optional(), NumberRange(min=0, max=50)])
    subjective_count = IntegerField("Subjective count", default=3,
                                    validators=[Optional(), NumberRange(min=0, max=50)])
    marks_per_mcq = IntegerField("Marks per MCQ", default=2, validators=[Optional(), NumberRange(min=1)])
    marks_per_subjective = IntegerField("Marks per subjective", default=10,
                                        validators=[Optional(), NumberRange(min=1)])


class TopicSourceForm(JSONForm):
    topic = StringField("Topic", validators=[DataRequired(), Length(max=500)])


class UrlSourceForm(JSONForm):
    url = StringField("URL", validators=[DataRequired(), Length(max=2048)])


class WebSourcesForm(JSONForm):
    urls = ListField("URLs")


class SearchForm(JSONForm):
    query = StringField("Query", validators=[DataRequired(), Length(max=500)])
    max_results = IntegerField("Max results", default=10, validators=[Optional(), NumberRange(min=1, max=20)])


class DocumentSourceForm(JSONForm):
    file = FileField("Document", validators=[FileRequired()])
