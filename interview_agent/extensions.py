from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from redis import Redis
from redis.exceptions import RedisError
from rq import Queue
from sqlalchemy import event
from flask import current_app

# strip common RQ kwargs that are not valid for the function call
RQ_KEYS = {'job_timeout', 'timeout', 'at_front', 'depends_on', 'result_ttl', 'ttl', 'meta', 'description'}


class RQWrapper:
    def __init__(self):
        self.redis = None
        self.queue = None

    def init_app(self, app):
        if not app.config.get("RQ_ENABLED", True):
            app.logger.info('RQ disabled, jobs run synchronously')
            self.redis = None
            self.queue = None
            return
        try:
            self.redis = Redis.from_url(app.config.get("REDIS_URL"))
            self.queue = Queue("default", connection=self.redis)
        except (RedisError, ValueError):
            # if Redis is not available (dev machine, no redis server),
            # leave queue as None and fall back to synchronous execution
            app.logger.exception('Redis/RQ init failed, falling back to sync execution')
            self.redis = None
            self.queue = None

    def _run_sync(self, args, kwargs):
        func = args[0]
        func_args = args[1:]
        safe_kwargs = {k: v for k, v in kwargs.items() if k not in RQ_KEYS}
        return func(*func_args, **safe_kwargs)

    def enqueue(self, *args, **kwargs):
        """Enqueue to RQ when available, otherwise run the job inline.

        Returns the RQ job, or the job's return value for the synchronous path.
        Errors raised by a synchronously executed job propagate to the caller.
        """
        if not self.queue:
            return self._run_sync(args, kwargs)
        try:
            return self.queue.enqueue(*args, **kwargs)
        except RedisError:
            # If enqueue fails due to Redis being down, fall back to sync execution.
            current_app.logger.exception('RQ enqueue failed, falling back to sync execution')
            return self._run_sync(args, kwargs)


def configure_sqlite(engine, busy_timeout_ms=15000):
    """Make SQLite writers queue up instead of failing.

    pysqlite defers BEGIN until the first DML statement, which lets two
    read-modify-write transactions interleave. Emitting BEGIN IMMEDIATE
    takes the write lock up front and the busy timeout makes the second
    writer wait for it.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


db = SQLAlchemy()
login_manager = LoginManager()
rq = RQWrapper()
