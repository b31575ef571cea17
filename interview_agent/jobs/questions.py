from flask import current_app, has_app_context

from ..services.questions import generate_questions


def _run_generate(user_id: int, agent_id: int, **options):
    created = generate_questions(user_id, agent_id, **options)
    agent = created[0].agent
    current_app.logger.info('generate job finished: agent=%s questions=%s', agent_id, len(created))
    return {
        "question_ids": [q.id for q in created],
        "total_marks": agent.total_marks,
    }


def generate_questions_job(user_id: int, agent_id: int, **options):
    """Public job entrypoint: runs inside a Flask app context so RQ workers
    can call it without the caller setting one up.
    """
    if has_app_context():
        return _run_generate(user_id, agent_id, **options)
    # lazy import to avoid circular imports at module import time
    from .. import create_app
    app = create_app()
    with app.app_context():
        return _run_generate(user_id, agent_id, **options)
