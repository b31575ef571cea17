from flask import current_app, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from . import bp
from ...extensions import db
from ...errors import AuthenticationRequired, InvalidRequest
from .forms import LoginForm, SignupForm
from ...models.user import User
from ...utils.forms import validated


@bp.post("/signup")
def signup():
    form = validated(SignupForm)
    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        raise InvalidRequest(fields={"email": ["Email already registered"]})
    user = User(email=email, name=(form.name.data or "").strip() or None)
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()
    login_user(user)
    current_app.logger.info('User %s signed up', user.id)
    return jsonify(user.to_dict()), 201


@bp.post("/login")
def login():
    form = validated(LoginForm)
    user = User.query.filter_by(email=form.email.data.strip().lower()).first()
    if not user or not user.check_password(form.password.data):
        raise AuthenticationRequired("Invalid credentials")
    login_user(user)
    return jsonify(user.to_dict())


@bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@bp.get("/me")
@login_required
def me():
    return jsonify(current_user.to_dict())
