from flask import has_app_context

from ..services.sessions import abandon_stale_sessions


def expire_stale_sessions(older_than_minutes: int = None):
    """Periodic job: abandon interviews nobody has touched for a while."""
    if has_app_context():
        return abandon_stale_sessions(older_than_minutes)
    from .. import create_app
    app = create_app()
    with app.app_context():
        return abandon_stale_sessions(older_than_minutes)
