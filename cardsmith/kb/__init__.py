"""Knowledge base access: retrieval contract, file store and reference store."""

from cardsmith.kb.base import KBFilters, RetrievalClient
from cardsmith.kb.file_store import FileKnowledgeBase, KnowledgeBaseError
from cardsmith.kb.reference_store import DatabaseError, ReferenceStore

__all__ = [
    "DatabaseError",
    "FileKnowledgeBase",
    "KBFilters",
    "KnowledgeBaseError",
    "ReferenceStore",
    "RetrievalClient",
]
