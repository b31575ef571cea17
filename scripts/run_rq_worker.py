"""Run an RQ worker for question generation and session expiry.

Usage:
  python scripts/run_rq_worker.py                # long-running worker on "default"
  python scripts/run_rq_worker.py --burst        # drain the queue and exit
  python scripts/run_rq_worker.py --expire-in 30

The worker runs inside the Flask app context, so jobs can use ``current_app``
and the Flask-SQLAlchemy session. ``--expire-in`` schedules one
``expire_stale_sessions`` run on the worker's scheduler N minutes out.
"""
import argparse
import os
import sys
from datetime import timedelta

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import redis  # noqa: E402
from rq import Queue, Worker  # noqa: E402

from interview_agent import create_app  # noqa: E402
from interview_agent.jobs.sessions import expire_stale_sessions  # noqa: E402


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("queues", nargs="*", default=["default"])
    parser.add_argument("--burst", action="store_true", help="exit once the queues are empty")
    parser.add_argument("--expire-in", type=int, default=0, metavar="MINUTES",
                        help="schedule one stale-session expiry run after this delay")
    return parser.parse_args(argv)


def main(argv=None):
    args = _parse_args(argv)
    app = create_app()
    conn = redis.from_url(app.config["REDIS_URL"])
    queues = [Queue(name, connection=conn) for name in args.queues]

    with app.app_context():
        if args.expire_in > 0:
            queues[0].enqueue_in(timedelta(minutes=args.expire_in), expire_stale_sessions)
            app.logger.info('Scheduled stale-session expiry in %s minutes', args.expire_in)
        worker = Worker(queues, connection=conn)
        app.logger.info('RQ worker starting on %s (pid %s)', ", ".join(args.queues), os.getpid())
        try:
            worker.work(burst=args.burst, with_scheduler=True, logging_level=app.config.get("LOG_LEVEL", "INFO"))
        finally:
            app.logger.info('RQ worker exiting (pid %s)', os.getpid())


if __name__ == "__main__":
    main()
