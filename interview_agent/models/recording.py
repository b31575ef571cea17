from ..extensions import db
from .base import utcnow


class Recording(db.Model):
    __tablename__ = "recordings"
    id = db.Column(db.Integer, primary_key=True)
    interview_id = db.Column(db.Integer, db.ForeignKey("interviews.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_key = db.Column(db.String(512), nullable=False, index=True)
    storage_url = db.Column(db.String(1024), nullable=False)
    public_url = db.Column(db.String(1024))
    file_size = db.Column(db.Integer, nullable=False, default=0)  # bytes
    duration_sec = db.Column(db.Integer)
    mime_type = db.Column(db.String(100), nullable=False)
    uploaded_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "interview_id": self.interview_id,
            "storage_key": self.storage_key,
            "storage_url": self.storage_url,
            "public_url": self.public_url,
            "file_size": self.file_size,
            "duration_sec": self.duration_sec,
            "mime_type": self.mime_type,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
