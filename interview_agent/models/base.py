from datetime import datetime, timezone
from ..extensions import db


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), onupdate=utcnow)
