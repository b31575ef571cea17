from wtforms import StringField, PasswordField
from wtforms.validators import DataRequired, Email, Length, Optional

from ...utils.forms import JSONForm


class SignupForm(JSONForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8)])
    name = StringField("Name", validators=[Optional(), Length(max=120)])


class LoginForm(JSONForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])
