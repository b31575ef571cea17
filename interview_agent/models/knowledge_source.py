from ..extensions import db
from .base import utcnow

SOURCE_TYPES = ("topic", "url", "web_search", "document")


class KnowledgeSource(db.Model):
    __tablename__ = "knowledge_sources"
    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("interview_agents.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)
    content = db.Column(db.Text, nullable=False)  # topic text, URL, search query or document filename
    scraped_content = db.Column(db.Text)
    document_url = db.Column(db.String(1024))  # object storage URL for uploaded documents
    source_metadata = db.Column("metadata", db.JSON)  # {"title": ..., "fileSize": ..., "contentType": ...}
    created_at = db.Column(db.DateTime, default=utcnow, server_default=db.func.now(), nullable=False)

    def to_dict(self, include_content=False):
        out = {
            "id": self.id,
            "agent_id": self.agent_id,
            "type": self.type,
            "content": self.content,
            "document_url": self.document_url,
            "metadata": self.source_metadata or {},
            "scraped_length": len(self.scraped_content or ""),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_content:
            out["scraped_content"] = self.scraped_content
        return out
