from pdfquiz.db.document_store import LocalDocumentStore, SupabaseDocumentStore
from pdfquiz.db.models import Base, QuestionEmbedding, QuestionRow
from pdfquiz.db.question_store import AsyncQuestionStore

__all__ = [
    "Base",
    "QuestionRow",
    "QuestionEmbedding",
    "AsyncQuestionStore",
    "SupabaseDocumentStore",
    "LocalDocumentStore",
]
