"""Alembic environment for the interview agent schema.

The database URL and metadata come from the Flask app (``wsgi.app``), so
migrations always target the same database the service uses.
"""
from logging.config import fileConfig
import os
import pathlib
import sys

from alembic import context
from sqlalchemy import engine_from_config, pool

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

from wsgi import app  # noqa: E402
from interview_agent.extensions import db  # noqa: E402


def _database_url():
    url = os.getenv("DATABASE_URL") or app.config["SQLALCHEMY_DATABASE_URI"]
    # Flask-SQLAlchemy resolves relative sqlite paths against instance/
    prefix = "sqlite:///"
    if url.startswith(prefix) and not url.startswith(prefix + "/") and ":memory:" not in url:
        instance = pathlib.Path(app.instance_path)
        instance.mkdir(parents=True, exist_ok=True)
        url = prefix + (instance / url[len(prefix):]).as_posix()
    return url


with app.app_context():
    import interview_agent.models  # noqa: F401,E402
    DATABASE_URL = _database_url()
    target_metadata = db.metadata

# batch mode lets ALTERs run on sqlite
MIGRATION_OPTIONS = {"target_metadata": target_metadata, "compare_type": True, "render_as_batch": True}


def run_migrations_offline():
    context.configure(url=DATABASE_URL, literal_binds=True, **MIGRATION_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    engine = engine_from_config({"sqlalchemy.url": DATABASE_URL}, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **MIGRATION_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
