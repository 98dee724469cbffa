from app.db.models.article import Article, ContentStatus
from app.db.models.audit_log import AuditAction, AuditLog
from app.db.models.faq_item import FAQItem
from app.db.models.ingest_job import IngestJob, IngestJobStatus
from app.db.models.question import Question
from app.db.models.topic import Topic

__all__ = [
    "Article",
    "AuditAction",
    "AuditLog",
    "ContentStatus",
    "FAQItem",
    "IngestJob",
    "IngestJobStatus",
    "Question",
    "Topic",
]
