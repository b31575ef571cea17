from flask_wtf import FlaskForm
from wtforms import Field

from ..errors import InvalidRequest


class JSONForm(FlaskForm):
    """Base for the JSON API forms. Session cookies are SameSite, no CSRF token."""
    class Meta:
        csrf = False


class ListField(Field):
    """A JSON array of scalars, optionally coerced item by item."""

    def __init__(self, label=None, validators=None, coerce=str, **kwargs):
        super().__init__(label, validators, **kwargs)
        self.coerce = coerce

    def process_formdata(self, valuelist):
        if not valuelist:
            self.data = []
            return
        try:
            self.data = [self.coerce(v) for v in valuelist]
        except (TypeError, ValueError):
            self.data = []
            raise ValueError(self.gettext("Invalid list item"))

    def _value(self):
        return self.data or []


def validated(form_cls, **kwargs):
    form = form_cls(**kwargs)
    if not form.validate_on_submit():
        raise InvalidRequest(fields=form.errors)
    return form


def provided(form, *names):
    """Fields the client actually sent, for partial updates."""
    return {name: form[name].data for name in names if form[name].raw_data}
