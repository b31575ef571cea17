import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from .extensions import db, login_manager, rq, configure_sqlite
from .errors import AuthenticationRequired, InterviewError

migrate = Migrate()


def _register_error_handlers(app):
    def handle_interview_error(e):
        if e.status_code >= 500:
            app.logger.warning('%s: %s', e.code, e.message)
        return jsonify(e.to_dict()), e.status_code

    def handle_not_found(e):
        return jsonify({"error": "not_found", "message": "Not found"}), 404

    def handle_method_not_allowed(e):
        return jsonify({"error": "method_not_allowed", "message": "Method not allowed"}), 405

    def handle_too_large(e):
        return jsonify({"error": "payload_too_large", "message": "Upload is too large"}), 413

    app.register_error_handler(InterviewError, handle_interview_error)
    app.register_error_handler(404, handle_not_found)
    app.register_error_handler(405, handle_method_not_allowed)
    app.register_error_handler(413, handle_too_large)


def _register_commands(app):
    @app.cli.command("expire-sessions")
    @click.option("--older-than", type=int, default=None, help="Minutes without activity.")
    def expire_sessions(older_than):
        """Abandon stale in-progress interviews (queued when RQ is available)."""
        from .jobs.sessions import expire_stale_sessions
        result = rq.enqueue(expire_stale_sessions, older_than)
        click.echo(f"expire-sessions: {result if isinstance(result, int) else 'queued ' + result.id}")


def create_app(config_object="config.Config"):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    rq.init_app(app)

    with app.app_context():
        configure_sqlite(db.engine)
        from . import models  # noqa: F401

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        e = AuthenticationRequired()
        return jsonify(e.to_dict()), e.status_code

    _register_error_handlers(app)
    _register_commands(app)

    from .blueprints.auth import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")

    from .blueprints.agents import bp as agents_bp
    app.register_blueprint(agents_bp)

    from .blueprints.interviews import bp as interviews_bp
    app.register_blueprint(interviews_bp)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    return app
